"""Unit tests for analytics_service."""

import json
from datetime import timedelta

import pytest

from typeb.core.date_utils import now_utc, to_iso
from typeb.core.redis_client import redis_client
from typeb.domain.activity import ActivityAction, EntityType
from typeb.services import activity_service, analytics_service, task_service


async def _log_points(family_id, user_id, points, *, action=ActivityAction.COMPLETED):
    await activity_service.log_activity(
        family_id=family_id,
        user_id=user_id,
        action=action,
        entity_type=EntityType.TASK,
        entity_id="1",
        metadata={"points": points},
    )


async def _completed_on(db, family_setup, days_ago):
    await db.create_record(
        collection="tasks",
        data={
            "family_id": family_setup["family"]["id"],
            "assigned_to": family_setup["child"]["id"],
            "completed_by": family_setup["child"]["id"],
            "status": "completed",
            "completed_at": to_iso(now_utc() - timedelta(days=days_ago)),
        },
    )


@pytest.mark.unit
class TestLeaderboard:
    """Tests for the points leaderboard."""

    async def test_ranks_by_points(self, family_setup):
        """Test members are ranked by points earned, with every member listed."""
        family_id = family_setup["family"]["id"]
        parent_id = family_setup["parent"]["id"]
        child_id = family_setup["child"]["id"]
        await _log_points(family_id, child_id, 15)
        await _log_points(family_id, child_id, 20, action=ActivityAction.VALIDATED)
        await _log_points(family_id, parent_id, 10)

        leaderboard = await analytics_service.get_leaderboard(family_id=family_id)

        assert [(e.user_id, e.points, e.tasks_completed, e.rank) for e in leaderboard] == [
            (child_id, 35, 2, 1),
            (parent_id, 10, 1, 2),
        ]

    async def test_members_without_points(self, family_setup):
        """Test idle members appear with zero points, ordered by name."""
        leaderboard = await analytics_service.get_leaderboard(family_id=family_setup["family"]["id"])

        assert [e.display_name for e in leaderboard] == ["Casey Child", "Pat Parent"]
        assert all(e.points == 0 for e in leaderboard)
        assert [e.rank for e in leaderboard] == [1, 2]

    async def test_ignores_old_and_non_point_activity(self, family_setup, patched_db):
        """Test activity outside the period or without points is not counted."""
        family_id = family_setup["family"]["id"]
        child_id = family_setup["child"]["id"]
        await patched_db.create_record(
            collection="activity_logs",
            data={
                "family_id": family_id,
                "user_id": child_id,
                "action": "completed",
                "metadata": {"points": 99},
                "timestamp": to_iso(now_utc() - timedelta(days=40)),
            },
        )
        await _log_points(family_id, child_id, 5, action=ActivityAction.REDEEMED)

        leaderboard = await analytics_service.get_leaderboard(family_id=family_id, period_days=30)

        assert all(e.points == 0 for e in leaderboard)

    async def test_completion_flows_into_leaderboard(self, family_setup, sample_task_input):
        """Test completing a task credits the assignee on the leaderboard."""
        task = await task_service.create_task(
            family_id=family_setup["family"]["id"],
            user_id=family_setup["parent"]["id"],
            task_input=sample_task_input,
        )
        await task_service.complete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

        leaderboard = await analytics_service.get_leaderboard(family_id=family_setup["family"]["id"])

        assert leaderboard[0].user_id == family_setup["child"]["id"]
        assert leaderboard[0].points == 15

    async def test_served_from_cache(self, family_setup, monkeypatch):
        """Test a cached leaderboard is returned without querying the database."""
        cached = [{"user_id": "1", "display_name": "Cached", "points": 7, "tasks_completed": 1, "rank": 1}]

        async def _get(key):
            return json.dumps(cached)

        monkeypatch.setattr(redis_client, "get", _get)

        leaderboard = await analytics_service.get_leaderboard(family_id=family_setup["family"]["id"])

        assert [e.display_name for e in leaderboard] == ["Cached"]

    async def test_corrupt_cache_is_recomputed(self, family_setup, monkeypatch):
        """Test unreadable cache entries fall back to the database."""

        async def _get(key):
            return "{not json"

        monkeypatch.setattr(redis_client, "get", _get)

        leaderboard = await analytics_service.get_leaderboard(family_id=family_setup["family"]["id"])

        assert len(leaderboard) == 2

    async def test_invalidate_deletes_every_period(self, monkeypatch):
        """Test invalidation removes all cached periods for the family."""
        deleted = []

        async def _keys(pattern):
            assert pattern == "typeb:leaderboard:42:*"
            return ["typeb:leaderboard:42:7", "typeb:leaderboard:42:30"]

        async def _delete(*keys):
            deleted.extend(keys)
            return True

        monkeypatch.setattr(redis_client, "keys", _keys)
        monkeypatch.setattr(redis_client, "delete", _delete)

        await analytics_service.invalidate_leaderboard_cache(family_id="42")

        assert deleted == ["typeb:leaderboard:42:7", "typeb:leaderboard:42:30"]


@pytest.mark.unit
class TestStreaks:
    """Tests for completion streaks."""

    async def test_active_streak(self, family_setup, patched_db):
        """Test a streak including today is active."""
        for days_ago in (0, 1, 2):
            await _completed_on(patched_db, family_setup, days_ago)

        streak = await analytics_service.get_streak(user_id=family_setup["child"]["id"])

        assert streak.status == "active"
        assert streak.current_streak == 3
        assert streak.longest_streak == 3
        assert streak.days_until_break == 2
        assert streak.last_activity_date == now_utc().date().isoformat()

    async def test_at_risk_streak(self, family_setup, patched_db):
        """Test a streak ending yesterday is at risk."""
        for days_ago in (1, 2):
            await _completed_on(patched_db, family_setup, days_ago)

        streak = await analytics_service.get_streak(user_id=family_setup["child"]["id"])

        assert streak.status == "at_risk"
        assert streak.current_streak == 2
        assert streak.days_until_break == 1

    async def test_broken_streak_keeps_longest(self, family_setup, patched_db):
        """Test a gap breaks the streak but the longest run is remembered."""
        for days_ago in (5, 6, 7, 8):
            await _completed_on(patched_db, family_setup, days_ago)

        streak = await analytics_service.get_streak(user_id=family_setup["child"]["id"])

        assert streak.status == "broken"
        assert streak.current_streak == 0
        assert streak.longest_streak == 4

    async def test_multiple_completions_same_day(self, family_setup, patched_db):
        """Test a day counts once regardless of completions."""
        for days_ago in (0, 0, 0):
            await _completed_on(patched_db, family_setup, days_ago)

        streak = await analytics_service.get_streak(user_id=family_setup["child"]["id"])

        assert streak.current_streak == 1

    async def test_no_activity(self, family_setup):
        """Test members without completions have no streak."""
        streak = await analytics_service.get_streak(user_id=family_setup["parent"]["id"])

        assert streak.status == "broken"
        assert streak.longest_streak == 0
        assert streak.last_activity_date is None


@pytest.mark.unit
class TestFamilySummary:
    """Tests for the family summary."""

    async def test_summary(self, family_setup, sample_task_input):
        """Test membership, task and review counts."""
        family_id = family_setup["family"]["id"]
        parent_id = family_setup["parent"]["id"]
        first = await task_service.create_task(family_id=family_id, user_id=parent_id, task_input=sample_task_input)
        await task_service.create_task(family_id=family_id, user_id=parent_id, task_input=sample_task_input)
        await task_service.complete_task(
            task_id=first["id"], user_id=family_setup["child"]["id"], photo_url="https://x.example.com/p.jpg"
        )

        summary = await analytics_service.get_family_summary(family_id=family_id)

        assert summary.member_count == 2
        assert summary.parent_count == 1
        assert summary.child_count == 1
        assert summary.task_stats.total == 2
        assert summary.task_stats.completed == 1
        assert summary.pending_validations == 1
