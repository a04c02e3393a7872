"""Unit tests for task_service."""

from datetime import timedelta

import pytest

from typeb.core.config import settings
from typeb.core.date_utils import now_utc, to_datetime, to_iso
from typeb.domain.task import TaskStatus, ValidationStatus
from typeb.services import family_service, task_service, validation_service


async def _create(family_setup, task_input, *, by="parent", **overrides):
    return await task_service.create_task(
        family_id=family_setup["family"]["id"],
        user_id=family_setup[by]["id"],
        task_input={**task_input, **overrides},
    )


async def _join(family_setup, user):
    await family_service.join_family(user_id=user["id"], invite_code=family_setup["family"]["invite_code"])


@pytest.mark.unit
class TestCreateTask:
    """Tests for task creation."""

    async def test_create_task(self, family_setup, sample_task_input, patched_db):
        """Test a task is stored pending with the family category embedded."""
        task = await _create(family_setup, sample_task_input)

        assert task["status"] == TaskStatus.PENDING
        assert task["title"] == "Empty the dishwasher"
        assert task["category"]["name"] == "Chores"
        assert task["created_by"] == family_setup["parent"]["id"]
        assert task["points"] == 15
        assert task["escalation_level"] == 0
        assert patched_db.count("activity_logs", entity_id=task["id"], action="created") == 1

    async def test_assignee_is_notified(self, family_setup, sample_task_input, patched_db):
        """Test the assignee receives a task-assigned notification."""
        task = await _create(family_setup, sample_task_input)

        notifications = await patched_db.list_records(
            collection="notifications",
            filter_query=f'user_id = "{family_setup["child"]["id"]}" && type = "task_assigned"',
        )
        assert len(notifications) == 1
        assert notifications[0]["data"] == {"task_id": task["id"]}

    async def test_priority_defaults_to_medium(self, family_setup, sample_task_input):
        """Test a missing priority falls back to medium."""
        task = await _create(family_setup, sample_task_input, priority=None)

        assert task["priority"] == "medium"

    async def test_children_can_create_tasks(self, family_setup, sample_task_input):
        """Test any member may create tasks."""
        task = await _create(family_setup, sample_task_input, by="child")

        assert task["created_by"] == family_setup["child"]["id"]

    async def test_kill_switch(self, family_setup, sample_task_input, monkeypatch):
        """Test task creation can be switched off."""
        monkeypatch.setattr(settings, "feature_flags", {"kill_switch_task_creation": True})

        with pytest.raises(ValueError, match="Task creation is temporarily disabled"):
            await _create(family_setup, sample_task_input)

    async def test_assignee_must_be_member(self, family_setup, sample_task_input, user_factory):
        """Test tasks cannot be assigned outside the family."""
        outsider = await user_factory()

        with pytest.raises(ValueError, match="Cannot assign task to non-family member"):
            await _create(family_setup, sample_task_input, assigned_to=outsider["id"])

    async def test_unknown_category(self, family_setup, sample_task_input):
        """Test the category must exist in the family."""
        with pytest.raises(ValueError, match="Invalid task category"):
            await _create(family_setup, sample_task_input, category_id="99")

    async def test_validation_errors_are_collected(self, family_setup, sample_task_input):
        """Test every invalid field is reported together."""
        with pytest.raises(ValueError, match="Title must be at least 3 characters.*Points must be between"):
            await _create(family_setup, sample_task_input, title="ab", points=5000)

    async def test_past_due_date_rejected(self, family_setup, sample_task_input):
        """Test due dates before today are refused."""
        yesterday = to_iso(now_utc() - timedelta(days=2))

        with pytest.raises(ValueError, match="Due date cannot be in the past"):
            await _create(family_setup, sample_task_input, due_date=yesterday)

    async def test_photo_requirement_needs_premium(self, family_setup, sample_task_input):
        """Test photo proof is a premium feature."""
        with pytest.raises(PermissionError, match="Premium subscription required"):
            await _create(family_setup, sample_task_input, requires_photo=True)

    async def test_outsider_cannot_create(self, family_setup, sample_task_input, user_factory):
        """Test non-members cannot create tasks in the family."""
        outsider = await user_factory()

        with pytest.raises(PermissionError, match="not a member of this family"):
            await task_service.create_task(
                family_id=family_setup["family"]["id"],
                user_id=outsider["id"],
                task_input=sample_task_input,
            )


@pytest.mark.unit
class TestUpdateTask:
    """Tests for task updates."""

    async def test_parent_reassigns(self, family_setup, sample_task_input, patched_db, user_factory):
        """Test reassignment is logged as an assignment and notifies the new assignee."""
        sibling = await user_factory()
        await _join(family_setup, sibling)
        task = await _create(family_setup, sample_task_input)

        await task_service.update_task(
            task_id=task["id"], user_id=family_setup["parent"]["id"], updates={"assigned_to": sibling["id"]}
        )

        assert patched_db.count("activity_logs", entity_id=task["id"], action="assigned") == 1
        assert patched_db.count("notifications", user_id=sibling["id"], type="task_assigned") == 1

    async def test_unknown_fields_ignored(self, family_setup, sample_task_input):
        """Test non-editable fields are dropped."""
        task = await _create(family_setup, sample_task_input)

        updated = await task_service.update_task(
            task_id=task["id"],
            user_id=family_setup["parent"]["id"],
            updates={"title": "  Load the dishwasher ", "family_id": "999", "created_by": "1"},
        )

        assert updated["title"] == "Load the dishwasher"
        assert updated["family_id"] == family_setup["family"]["id"]
        assert updated["created_by"] == family_setup["parent"]["id"]

    async def test_change_category(self, family_setup, sample_task_input):
        """Test category ids resolve to the embedded category."""
        task = await _create(family_setup, sample_task_input)

        updated = await task_service.update_task(
            task_id=task["id"], user_id=family_setup["parent"]["id"], updates={"category_id": "2"}
        )

        assert updated["category"]["name"] == "Homework"

    async def test_new_due_date_resets_escalation(self, family_setup, sample_task_input, patched_db):
        """Test moving the due date clears the escalation level."""
        task = await _create(family_setup, sample_task_input)
        await patched_db.update_record(collection="tasks", record_id=task["id"], data={"escalation_level": 2})

        updated = await task_service.update_task(
            task_id=task["id"],
            user_id=family_setup["parent"]["id"],
            updates={"due_date": to_iso(now_utc() + timedelta(days=3))},
        )

        assert updated["escalation_level"] == 0

    async def test_non_assignee_child_denied(self, family_setup, sample_task_input, user_factory):
        """Test children can only edit tasks assigned to them."""
        sibling = await user_factory()
        await _join(family_setup, sibling)
        task = await _create(family_setup, sample_task_input)

        with pytest.raises(PermissionError, match="Only parents or the assignee"):
            await task_service.update_task(task_id=task["id"], user_id=sibling["id"], updates={"title": "Mine now"})

    async def test_invalid_status(self, family_setup, sample_task_input):
        """Test status values are validated."""
        task = await _create(family_setup, sample_task_input)

        with pytest.raises(ValueError, match="Invalid status"):
            await task_service.update_task(
                task_id=task["id"], user_id=family_setup["parent"]["id"], updates={"status": "done-ish"}
            )

    async def test_empty_update_returns_task(self, family_setup, sample_task_input):
        """Test an update without editable fields is a no-op."""
        task = await _create(family_setup, sample_task_input)

        unchanged = await task_service.update_task(
            task_id=task["id"], user_id=family_setup["parent"]["id"], updates={}
        )

        assert unchanged == task

    async def test_assignee_cannot_change_points(self, family_setup, sample_task_input, patched_db):
        """Test points stay parent-controlled."""
        task = await _create(family_setup, sample_task_input)

        with pytest.raises(PermissionError, match="Only parents can change points"):
            await task_service.update_task(
                task_id=task["id"], user_id=family_setup["child"]["id"], updates={"points": 1000}
            )

        assert (await patched_db.get_record(collection="tasks", record_id=task["id"]))["points"] == 15

    async def test_assignee_cannot_drop_photo_requirement(self, family_setup, sample_task_input, patched_db):
        """Test the photo requirement stays parent-controlled."""
        task = await _create(family_setup, sample_task_input)
        await patched_db.update_record(collection="tasks", record_id=task["id"], data={"requires_photo": True})

        with pytest.raises(PermissionError, match="Only parents can change requires photo"):
            await task_service.update_task(
                task_id=task["id"], user_id=family_setup["child"]["id"], updates={"requires_photo": False}
            )

    async def test_assignee_cannot_reassign(self, family_setup, sample_task_input):
        """Test children cannot hand their task to someone else."""
        task = await _create(family_setup, sample_task_input)

        with pytest.raises(PermissionError, match="Only parents can change assigned to"):
            await task_service.update_task(
                task_id=task["id"],
                user_id=family_setup["child"]["id"],
                updates={"assigned_to": family_setup["parent"]["id"]},
            )

    async def test_assignee_updates_progress(self, family_setup, sample_task_input):
        """Test assignees may edit details and unchanged parent-only values."""
        task = await _create(family_setup, sample_task_input)

        updated = await task_service.update_task(
            task_id=task["id"],
            user_id=family_setup["child"]["id"],
            updates={"status": "in_progress", "description": "Halfway there", "points": 15},
        )

        assert updated["status"] == TaskStatus.IN_PROGRESS
        assert updated["description"] == "Halfway there"

    async def test_status_completed_is_refused(self, family_setup, sample_task_input, patched_db):
        """Test completion cannot skip the completion rules through an update."""
        task = await _create(family_setup, sample_task_input)

        for user in (family_setup["child"], family_setup["parent"]):
            with pytest.raises(ValueError, match="Use the complete action"):
                await task_service.update_task(task_id=task["id"], user_id=user["id"], updates={"status": "completed"})

        child = await patched_db.get_record(collection="users", record_id=family_setup["child"]["id"])
        assert child["points"] == 0
        assert (await patched_db.get_record(collection="tasks", record_id=task["id"]))["status"] == TaskStatus.PENDING

    async def test_completed_task_cannot_be_reopened(self, family_setup, sample_task_input):
        """Test a completed task keeps its status so it cannot earn twice."""
        task = await _create(family_setup, sample_task_input)
        await task_service.complete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

        with pytest.raises(ValueError, match="Completed tasks cannot be reopened"):
            await task_service.update_task(
                task_id=task["id"], user_id=family_setup["child"]["id"], updates={"status": "pending"}
            )


@pytest.mark.unit
class TestCompleteTask:
    """Tests for task completion."""

    async def test_complete_awards_points(self, family_setup, sample_task_input, patched_db):
        """Test completing without a photo credits the assignee immediately."""
        task = await _create(family_setup, sample_task_input)
        child_id = family_setup["child"]["id"]

        completed = await task_service.complete_task(task_id=task["id"], user_id=child_id)

        assert completed["status"] == TaskStatus.COMPLETED
        assert completed["completed_by"] == child_id
        assert completed["points_awarded"] == 15
        child = await patched_db.get_record(collection="users", record_id=child_id)
        assert child["points"] == 15
        assert child["total_points_earned"] == 15
        assert child["tasks_completed"] == 1

    async def test_default_points(self, family_setup, sample_task_input, patched_db):
        """Test tasks without points award the default."""
        task = await _create(family_setup, sample_task_input, points=None)

        await task_service.complete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

        child = await patched_db.get_record(collection="users", record_id=family_setup["child"]["id"])
        assert child["points"] == settings.default_task_points

    async def test_parent_completes_for_child(self, family_setup, sample_task_input, patched_db):
        """Test a parent completing a task still credits the assignee."""
        task = await _create(family_setup, sample_task_input)

        await task_service.complete_task(task_id=task["id"], user_id=family_setup["parent"]["id"])

        child = await patched_db.get_record(collection="users", record_id=family_setup["child"]["id"])
        parent = await patched_db.get_record(collection="users", record_id=family_setup["parent"]["id"])
        assert child["points"] == 15
        assert parent["points"] == 0

    async def test_parents_notified(self, family_setup, sample_task_input, patched_db):
        """Test parents hear about completions by other members."""
        task = await _create(family_setup, sample_task_input)

        await task_service.complete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

        assert patched_db.count("notifications", user_id=family_setup["parent"]["id"], type="task_completed") == 1

    async def test_already_completed(self, family_setup, sample_task_input):
        """Test completing twice is refused and points are not awarded twice."""
        task = await _create(family_setup, sample_task_input)
        await task_service.complete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

        with pytest.raises(ValueError, match="Task is already completed"):
            await task_service.complete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

    async def test_cancelled_task(self, family_setup, sample_task_input):
        """Test cancelled tasks cannot be completed."""
        task = await _create(family_setup, sample_task_input)
        await task_service.update_task(
            task_id=task["id"], user_id=family_setup["parent"]["id"], updates={"status": "cancelled"}
        )

        with pytest.raises(ValueError, match="Cannot complete a cancelled task"):
            await task_service.complete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

    async def test_photo_required(self, family_setup, sample_task_input, patched_db):
        """Test photo tasks need a photo URL."""
        task = await _create(family_setup, sample_task_input)
        await patched_db.update_record(collection="tasks", record_id=task["id"], data={"requires_photo": True})

        with pytest.raises(ValueError, match="This task requires a photo"):
            await task_service.complete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

    async def test_photo_completion_waits_for_review(self, family_setup, sample_task_input, patched_db):
        """Test a photo creates a pending submission and defers points."""
        task = await _create(family_setup, sample_task_input)
        child_id = family_setup["child"]["id"]

        completed = await task_service.complete_task(
            task_id=task["id"], user_id=child_id, photo_url="https://photos.example.com/dishes.jpg"
        )

        assert completed["validation_status"] == ValidationStatus.PENDING
        assert patched_db.count("task_submissions", task_id=task["id"], status="pending") == 1
        assert (await patched_db.get_record(collection="users", record_id=child_id))["points"] == 0
        assert patched_db.count("notifications", type="validation_required") == 1

    async def test_photo_upload_kill_switch(self, family_setup, sample_task_input, monkeypatch):
        """Test photo completions respect the photo upload kill switch."""
        task = await _create(family_setup, sample_task_input)
        monkeypatch.setattr(settings, "feature_flags", {"kill_switch_photo_upload": True})

        with pytest.raises(ValueError, match="Photo upload is temporarily disabled"):
            await task_service.complete_task(
                task_id=task["id"], user_id=family_setup["child"]["id"], photo_url="https://x.example.com/a.jpg"
            )

    async def test_other_child_cannot_complete(self, family_setup, sample_task_input, user_factory):
        """Test only the assignee or a parent may complete a task."""
        sibling = await user_factory()
        await _join(family_setup, sibling)
        task = await _create(family_setup, sample_task_input)

        with pytest.raises(PermissionError, match="Only the assignee or a parent"):
            await task_service.complete_task(task_id=task["id"], user_id=sibling["id"])

    async def test_recurring_task_spawns_next(self, family_setup, sample_task_input, patched_db):
        """Test completing a recurring task creates the next occurrence."""
        due = now_utc() + timedelta(days=1)
        task = await _create(
            family_setup,
            sample_task_input,
            due_date=to_iso(due),
            is_recurring=True,
            recurrence_pattern={"frequency": "weekly", "interval": 1},
        )

        await task_service.complete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

        pending = await task_service.get_family_tasks(family_id=family_setup["family"]["id"], status="pending")
        assert len(pending) == 1
        assert pending[0]["id"] != task["id"]
        assert to_datetime(pending[0]["due_date"]) == to_datetime(to_iso(due + timedelta(weeks=1)))

    async def test_recurrence_stops_at_end_date(self, family_setup, sample_task_input):
        """Test no occurrence is spawned past the pattern's end date."""
        due = now_utc() + timedelta(days=1)
        task = await _create(
            family_setup,
            sample_task_input,
            due_date=to_iso(due),
            is_recurring=True,
            recurrence_pattern={"frequency": "monthly", "end_date": to_iso(due + timedelta(days=5))},
        )

        await task_service.complete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

        assert await task_service.get_family_tasks(family_id=family_setup["family"]["id"], status="pending") == []

    async def test_photo_completion_defers_next_occurrence(self, family_setup, sample_task_input):
        """Test a rejected photo completion does not leave a duplicate occurrence behind."""
        family_id = family_setup["family"]["id"]
        child_id = family_setup["child"]["id"]
        parent_id = family_setup["parent"]["id"]
        due = now_utc() + timedelta(days=1)
        task = await _create(
            family_setup,
            sample_task_input,
            due_date=to_iso(due),
            is_recurring=True,
            recurrence_pattern={"frequency": "daily", "interval": 1},
        )
        photo = "https://photos.example.com/dishes.jpg"

        await task_service.complete_task(task_id=task["id"], user_id=child_id, photo_url=photo)
        assert await task_service.get_family_tasks(family_id=family_id, status="pending") == []

        await validation_service.validate_task(task_id=task["id"], validator_id=parent_id, approved=False)
        await task_service.complete_task(task_id=task["id"], user_id=child_id, photo_url=photo)
        await validation_service.validate_task(task_id=task["id"], validator_id=parent_id, approved=True)

        pending = await task_service.get_family_tasks(family_id=family_id, status="pending")
        assert len(pending) == 1
        assert to_datetime(pending[0]["due_date"]) == to_datetime(to_iso(due + timedelta(days=1)))


@pytest.mark.unit
class TestDeleteTask:
    """Tests for task deletion."""

    async def test_creator_can_delete(self, family_setup, sample_task_input, patched_db):
        """Test the creator may delete their task."""
        task = await _create(family_setup, sample_task_input, by="child")

        await task_service.delete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

        with pytest.raises(KeyError):
            await patched_db.get_record(collection="tasks", record_id=task["id"])
        assert patched_db.count("activity_logs", entity_id=task["id"], action="deleted") == 1

    async def test_assignee_cannot_delete_parent_task(self, family_setup, sample_task_input):
        """Test being the assignee is not enough to delete."""
        task = await _create(family_setup, sample_task_input)

        with pytest.raises(PermissionError, match="Only parents or the task creator"):
            await task_service.delete_task(task_id=task["id"], user_id=family_setup["child"]["id"])

    async def test_missing_task(self, family_setup):
        """Test deleting an unknown task raises KeyError."""
        with pytest.raises(KeyError):
            await task_service.delete_task(task_id="999999", user_id=family_setup["parent"]["id"])


@pytest.mark.unit
class TestTaskQueries:
    """Tests for task listings and stats."""

    async def test_family_and_user_tasks(self, family_setup, sample_task_input):
        """Test filters by assignee and status."""
        family_id = family_setup["family"]["id"]
        parent_id = family_setup["parent"]["id"]
        child_id = family_setup["child"]["id"]
        first = await _create(family_setup, sample_task_input)
        await _create(family_setup, sample_task_input, title="Walk the dog", assigned_to=parent_id)
        await task_service.complete_task(task_id=first["id"], user_id=child_id)

        assert len(await task_service.get_family_tasks(family_id=family_id)) == 2
        assert [t["title"] for t in await task_service.get_user_tasks(user_id=parent_id, family_id=family_id)] == [
            "Walk the dog"
        ]
        completed = await task_service.get_user_tasks(user_id=child_id, family_id=family_id, status="completed")
        assert [t["id"] for t in completed] == [first["id"]]

    async def test_newest_first(self, family_setup, sample_task_input):
        """Test listings are ordered newest first."""
        first = await _create(family_setup, sample_task_input)
        second = await _create(family_setup, sample_task_input, title="Fold the laundry")

        tasks = await task_service.get_family_tasks(family_id=family_setup["family"]["id"])

        assert [t["id"] for t in tasks] == [second["id"], first["id"]]

    async def test_overdue_tasks(self, family_setup, sample_task_input, patched_db):
        """Test only pending tasks past their due date are overdue, oldest first."""
        now = now_utc()
        late = await _create(family_setup, sample_task_input)
        later = await _create(family_setup, sample_task_input, title="Feed the cat")
        done = await _create(family_setup, sample_task_input, title="Water plants")
        await _create(family_setup, sample_task_input, title="Future chore", due_date=to_iso(now + timedelta(days=2)))
        await patched_db.update_record(
            collection="tasks", record_id=late["id"], data={"due_date": to_iso(now - timedelta(days=2))}
        )
        await patched_db.update_record(
            collection="tasks", record_id=later["id"], data={"due_date": to_iso(now - timedelta(hours=1))}
        )
        await patched_db.update_record(
            collection="tasks",
            record_id=done["id"],
            data={"due_date": to_iso(now - timedelta(days=1)), "status": "completed"},
        )

        overdue = await task_service.get_overdue_tasks(family_id=family_setup["family"]["id"], now=now)

        assert [t["id"] for t in overdue] == [late["id"], later["id"]]

    async def test_task_stats(self, family_setup, sample_task_input, patched_db):
        """Test counts and the completion percentage."""
        family_id = family_setup["family"]["id"]
        tasks = [await _create(family_setup, sample_task_input, title=f"Chore {i}") for i in range(3)]
        await task_service.complete_task(task_id=tasks[0]["id"], user_id=family_setup["child"]["id"])
        await patched_db.update_record(
            collection="tasks", record_id=tasks[1]["id"], data={"due_date": to_iso(now_utc() - timedelta(days=1))}
        )

        stats = await task_service.get_task_stats(family_id=family_id)

        assert stats.total == 3
        assert stats.completed == 1
        assert stats.pending == 2
        assert stats.overdue == 1
        assert stats.completion_rate == 33

    async def test_empty_stats(self, family_setup):
        """Test a family without tasks has a zero completion rate."""
        stats = await task_service.get_task_stats(family_id=family_setup["family"]["id"])

        assert stats.total == 0
        assert stats.completion_rate == 0

    async def test_stats_count_past_one_page(self, family_setup, patched_db):
        """Test stats cover every task, not just the first page of results."""
        family_id = family_setup["family"]["id"]
        for i in range(505):
            await patched_db.create_record(
                collection="tasks",
                data={"family_id": family_id, "title": f"Chore {i}", "status": "completed" if i < 5 else "pending"},
            )

        stats = await task_service.get_task_stats(family_id=family_id)

        assert stats.total == 505
        assert stats.completed == 5
        assert stats.pending == 500
