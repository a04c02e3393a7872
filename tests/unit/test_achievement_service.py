"""Unit tests for achievement_service."""

from datetime import UTC, datetime, timedelta

import pytest

from typeb.core.date_utils import now_utc, to_iso
from typeb.domain.achievement import ACHIEVEMENTS_CATALOG
from typeb.services import achievement_service, task_service, validation_service


NOON = datetime(2030, 6, 1, 12, 0, tzinfo=UTC)


def _task(family_setup, completed_at: datetime = NOON) -> dict:
    return {"id": "1", "family_id": family_setup["family"]["id"], "completed_at": to_iso(completed_at)}


async def _unlocked_ids(user_id: str) -> set[str]:
    progress = await achievement_service.get_user_achievements(user_id=user_id)
    return {p.achievement.id for p in progress if p.unlocked}


@pytest.mark.unit
class TestCheckAchievementsAfterTask:
    """Tests for unlocking badges when points are awarded."""

    async def test_first_completion_unlocks_first_step(self, family_setup, sample_task_input, patched_db):
        """Test completing a first task unlocks First Step and notifies the member."""
        child_id = family_setup["child"]["id"]
        task = await task_service.create_task(
            family_id=family_setup["family"]["id"], user_id=family_setup["parent"]["id"], task_input=sample_task_input
        )

        await task_service.complete_task(task_id=task["id"], user_id=child_id)

        assert "first_step" in await _unlocked_ids(child_id)
        assert patched_db.count("notifications", user_id=child_id, type="achievement_unlocked") >= 1
        assert patched_db.count("achievements", user_id=child_id, achievement_id="first_step") == 1

    async def test_unlocked_badges_are_not_awarded_twice(self, family_setup, patched_db):
        """Test a second completion only moves progress on locked badges."""
        child = {**family_setup["child"], "tasks_completed": 1}
        first = await achievement_service.check_achievements_after_task(member=child, task=_task(family_setup))

        child["tasks_completed"] = 2
        second = await achievement_service.check_achievements_after_task(member=child, task=_task(family_setup))

        assert [a.id for a in first] == ["first_step"]
        assert second == []
        progress = {p.achievement.id: p for p in await achievement_service.get_user_achievements(user_id=child["id"])}
        assert progress["getting_started"].progress == 2
        assert not progress["getting_started"].unlocked
        assert patched_db.count("notifications", user_id=child["id"], type="achievement_unlocked") == 1

    async def test_early_bird_uses_member_timezone(self, family_setup, patched_db):
        """Test the completion hour is read in the member's own timezone."""
        early = datetime(2030, 6, 1, 5, 30, tzinfo=UTC)
        child = {**family_setup["child"], "tasks_completed": 1}

        unlocked = await achievement_service.check_achievements_after_task(
            member=child, task=_task(family_setup, early)
        )

        assert "early_bird" in [a.id for a in unlocked]

    async def test_night_owl_in_local_evening(self, family_setup, patched_db):
        """Test an early UTC completion counts as late evening on the US west coast."""
        child = {**family_setup["child"], "tasks_completed": 1, "timezone": "America/Los_Angeles"}
        morning_utc = datetime(2030, 6, 1, 5, 30, tzinfo=UTC)

        unlocked = [
            a.id
            for a in await achievement_service.check_achievements_after_task(
                member=child, task=_task(family_setup, morning_utc)
            )
        ]

        assert "night_owl" in unlocked
        assert "early_bird" not in unlocked

    async def test_streak_badge(self, family_setup, patched_db):
        """Test three consecutive days of completions unlock On a Roll."""
        child_id = family_setup["child"]["id"]
        for days_ago in range(3):
            await patched_db.create_record(
                collection="tasks",
                data={
                    "family_id": family_setup["family"]["id"],
                    "title": f"Day {days_ago}",
                    "status": "completed",
                    "completed_by": child_id,
                    "completed_at": to_iso(now_utc() - timedelta(days=days_ago)),
                },
            )

        unlocked = await achievement_service.check_achievements_after_task(
            member={**family_setup["child"], "tasks_completed": 3}, task=_task(family_setup)
        )

        assert "three_day_streak" in [a.id for a in unlocked]

    async def test_photo_task_unlocks_on_approval(self, family_setup, sample_task_input, patched_db):
        """Test a photo completion earns nothing until a parent approves it."""
        child_id = family_setup["child"]["id"]
        task = await task_service.create_task(
            family_id=family_setup["family"]["id"],
            user_id=family_setup["parent"]["id"],
            task_input={**sample_task_input, "requires_photo": True},
        )

        await task_service.complete_task(
            task_id=task["id"], user_id=child_id, photo_url="https://example.com/dishes.jpg"
        )
        assert await _unlocked_ids(child_id) == set()

        submission = await patched_db.get_first_record(
            collection="task_submissions", filter_query=f'task_id = "{task["id"]}"'
        )
        await validation_service.review_submission(
            submission_id=submission["id"], reviewer_id=family_setup["parent"]["id"], approved=True
        )

        assert "first_step" in await _unlocked_ids(child_id)


@pytest.mark.unit
class TestGetUserAchievements:
    """Tests for listing badge progress."""

    async def test_new_member_sees_whole_catalog_locked(self, family_setup, patched_db):
        """Test every catalog entry is listed with zero progress."""
        progress = await achievement_service.get_user_achievements(user_id=family_setup["child"]["id"])

        assert [p.achievement.id for p in progress] == [a.id for a in ACHIEVEMENTS_CATALOG]
        assert all(p.progress == 0 and not p.unlocked for p in progress)
        assert progress[-1].max_progress == 1
