"""Tests for TaskStore projects, tasks, hierarchy and persistence."""

import pytest

from tsk_mcp import TaskPriority, TaskStatus, TaskStore, TaskValidationError
from tsk_mcp.config import TasksOptions
from tsk_mcp.models.task import ProjectData, Task

# ============================================================================
# Projects
# ============================================================================


class TestProjects:
    """Tests for project CRUD."""

    def test_add_project(self, store):
        """Test a new project gets an 8-character id and its own unit."""
        project = store.add_project("Website", "Company site")
        assert len(project.id) == 8
        assert project.name == "Website"
        assert store.repository.exists(project.id)

    def test_add_project_empty_name_fails(self, store):
        """Test a blank project name is rejected."""
        with pytest.raises(TaskValidationError):
            store.add_project("   ")

    def test_list_projects_sorted_by_name(self, store):
        """Test projects are listed alphabetically, ignoring case."""
        store.add_project("beta")
        store.add_project("Alpha")
        store.add_project("Gamma")
        assert [p.name for p in store.list_projects()] == ["Alpha", "beta", "Gamma"]

    def test_get_project_by_prefix(self, store):
        """Test projects resolve from an id prefix."""
        project = store.add_project("Website")
        assert store.get_project(project.id[:4]).id == project.id
        assert store.get_project(project.id.upper()).id == project.id

    def test_resolve_project_by_name(self, store):
        """Test projects resolve from a case-insensitive name."""
        project = store.add_project("Website")
        assert store.resolve_project("website").id == project.id
        assert store.resolve_project("nope") is None
        assert store.resolve_project(None) is None

    def test_update_project(self, store):
        """Test renaming and clearing the description."""
        project = store.add_project("Website", "Old")
        updated = store.update_project(project.id, name="Site", description=None)
        assert updated.name == "Site"
        assert updated.description is None
        assert store.get_project(project.id).name == "Site"

    def test_update_missing_project(self, store):
        """Test updating an unknown project returns None."""
        assert store.update_project("missing", name="x") is None

    def test_delete_project_keeps_tasks(self, sample_tree, store):
        """Test a non-cascade delete moves tasks to the default unit."""
        project = sample_tree["project"]
        assert store.delete_project(project.id)

        design = store.get_task(sample_tree["design"].id)
        wireframes = store.get_task(sample_tree["wireframes"].id)
        assert design.project_id is None
        assert wireframes.project_id is None
        assert wireframes.parent_id == design.id
        assert not store.repository.exists(project.id)
        assert store.list_projects() == []

    def test_delete_project_cascade(self, sample_tree, store):
        """Test a cascade delete removes the project's tasks."""
        assert store.delete_project(sample_tree["project"].id, cascade=True)
        assert store.get_task(sample_tree["design"].id) is None
        assert store.get_task(sample_tree["wireframes"].id) is None
        assert store.get_task(sample_tree["groceries"].id) is not None

    def test_delete_missing_project(self, store):
        """Test deleting an unknown project returns False."""
        assert store.delete_project("missing") is False


# ============================================================================
# Adding and Looking Up Tasks
# ============================================================================


class TestAddTask:
    """Tests for TaskStore.add_task."""

    def test_sibling_orders(self, store):
        """Test root tasks are numbered 0, 1, 2 in creation order."""
        a = store.add_task("A")
        b = store.add_task("B")
        c = store.add_task("C")
        assert [a.order, b.order, c.order] == [0, 1, 2]

    def test_defaults(self, store):
        """Test a new task starts as Todo with Medium priority."""
        task = store.add_task("  Write docs  ")
        assert task.title == "Write docs"
        assert task.status == TaskStatus.TODO
        assert task.priority == TaskPriority.MEDIUM
        assert task.tags == []
        assert task.completed_at is None
        assert task.created_at.tzinfo is not None

    def test_child_inherits_project(self, sample_tree):
        """Test a subtask joins its parent's project."""
        assert sample_tree["wireframes"].project_id == sample_tree["project"].id
        assert sample_tree["wireframes"].parent_id == sample_tree["design"].id

    def test_child_orders(self, sample_tree):
        """Test children are numbered within their parent."""
        assert sample_tree["wireframes"].order == 0
        assert sample_tree["mockups"].order == 1
        assert sample_tree["build"].order == 1

    def test_project_by_name(self, store):
        """Test a project can be given by name."""
        project = store.add_project("Website")
        task = store.add_task("Fix login", project_id="website")
        assert task.project_id == project.id

    def test_unknown_parent_fails(self, store):
        """Test a parent that does not exist is rejected."""
        with pytest.raises(TaskValidationError):
            store.add_task("Orphan", parent_id="deadbeef")

    def test_unknown_project_fails(self, store):
        """Test a project that does not exist is rejected."""
        with pytest.raises(TaskValidationError):
            store.add_task("Lost", project_id="nowhere")

    def test_empty_title_fails(self, store):
        """Test a blank title is rejected."""
        with pytest.raises(TaskValidationError):
            store.add_task("   ")

    def test_default_priority_from_options(self):
        """Test the configured default priority is used."""
        store = TaskStore.in_memory(TasksOptions(default_priority="High"))
        assert store.add_task("Urgent").priority == TaskPriority.HIGH
        assert store.add_task("Calm", priority=TaskPriority.LOW).priority == TaskPriority.LOW

    def test_default_project_from_options(self):
        """Test the configured default project is used when it exists."""
        store = TaskStore.in_memory(TasksOptions(default_project="Inbox"))
        assert store.add_task("Before").project_id is None

        inbox = store.add_project("Inbox")
        assert store.add_task("After").project_id == inbox.id


class TestGetTask:
    """Tests for id and id-prefix lookup."""

    def test_get_by_prefix(self, sample_tree, store):
        """Test a task resolves from a prefix of its id."""
        design = sample_tree["design"]
        assert store.get_task(design.id[:3]) is not None
        assert store.get_task(design.id.upper()).id == design.id

    def test_exact_match_wins(self, store):
        """Test an exact id beats a longer id sharing the prefix."""
        store.repository.save(None, ProjectData(tasks=[Task(id="abc", title="long"), Task(id="ab", title="short")]))
        assert store.get_task("ab").title == "short"
        assert store.get_task("abc").title == "long"

    def test_missing(self, store):
        """Test empty and unknown references return None."""
        store.add_task("Something")
        assert store.get_task("") is None
        assert store.get_task(None) is None
        assert store.get_task("zzzzzzzzz") is None


# ============================================================================
# Listing
# ============================================================================


class TestListTasks:
    """Tests for TaskStore.list_tasks."""

    def test_hides_closed_tasks(self, store):
        """Test Done and Cancelled tasks are hidden by default."""
        open_task = store.add_task("Open")
        done = store.add_task("Done")
        cancelled = store.add_task("Cancelled")
        store.complete_task(done.id)
        store.update_task(cancelled.id, status=TaskStatus.CANCELLED)

        assert [t.id for t in store.list_tasks()] == [open_task.id]
        assert len(store.list_tasks(include_completed=True)) == 3
        assert [t.id for t in store.list_tasks(status=TaskStatus.DONE)] == [done.id]

    def test_sorted_by_priority(self, store):
        """Test higher priorities come first, then order."""
        store.add_task("Low", priority=TaskPriority.LOW)
        store.add_task("Critical", priority=TaskPriority.CRITICAL)
        store.add_task("Medium A")
        store.add_task("Medium B")
        assert [t.title for t in store.list_tasks()] == ["Critical", "Medium A", "Medium B", "Low"]

    def test_filter_by_priority(self, store):
        """Test the priority filter."""
        store.add_task("High", priority=TaskPriority.HIGH)
        store.add_task("Low", priority=TaskPriority.LOW)
        assert [t.title for t in store.list_tasks(priority=TaskPriority.HIGH)] == ["High"]

    def test_filter_by_tag(self, store):
        """Test the tag filter ignores case."""
        store.add_task("Tagged", tags=["Urgent", "home"])
        store.add_task("Plain")
        assert [t.title for t in store.list_tasks(tag="urgent")] == ["Tagged"]

    def test_filter_by_project(self, sample_tree, store):
        """Test the project filter accepts a name."""
        titles = {t.title for t in store.list_tasks(project_id="Website")}
        assert titles == {"Design", "Wireframes", "Mockups", "Build"}
        assert store.list_tasks(project_id="nowhere") == []

    def test_all_units(self, sample_tree, store):
        """Test listing without a project covers every unit."""
        assert len(store.list_tasks()) == 5


# ============================================================================
# Hierarchy
# ============================================================================


class TestTree:
    """Tests for tree building and traversal."""

    def test_get_tree(self, sample_tree, store):
        """Test roots and children come back in order with depths."""
        tree = store.get_tree(sample_tree["project"].id)
        assert [n.task.title for n in tree] == ["Design", "Build"]
        design = tree[0]
        assert [c.task.title for c in design.children] == ["Wireframes", "Mockups"]
        assert design.depth == 0
        assert design.children[0].depth == 1

    def test_flatten_pre_order(self, sample_tree, store):
        """Test flatten visits each node before its children."""
        tree = store.get_tree(sample_tree["project"].id)
        assert [n.task.title for n in store.flatten(tree)] == ["Design", "Wireframes", "Mockups", "Build"]

    def test_missing_parent_becomes_root(self):
        """Test a task whose parent is absent is treated as a root."""
        tasks = [Task(id="a", title="A", parent_id="gone")]
        tree = TaskStore.build_tree(tasks)
        assert [n.task.id for n in tree] == ["a"]

    def test_parent_cycle_in_data(self):
        """Test stored parent cycles still produce a finite tree."""
        tasks = [Task(id="a", title="A", parent_id="b"), Task(id="b", title="B", parent_id="a")]
        tree = TaskStore.build_tree(tasks)
        flat = TaskStore.flatten(tree)
        assert sorted(n.task.id for n in flat) == ["a", "b"]

    def test_tree_hides_completed(self, sample_tree, store):
        """Test closed tasks are left out unless asked for."""
        store.complete_task(sample_tree["build"].id)
        tree = store.get_tree(sample_tree["project"].id)
        assert [n.task.title for n in tree] == ["Design"]
        tree = store.get_tree(sample_tree["project"].id, include_completed=True)
        assert [n.task.title for n in tree] == ["Design", "Build"]

    def test_tree_blocking_ids(self, sample_tree, store):
        """Test nodes carry the ids of their open dependencies."""
        store.add_dependency(sample_tree["build"].id, sample_tree["design"].id)
        tree = store.get_tree(sample_tree["project"].id)
        build = next(n for n in tree if n.task.title == "Build")
        assert build.blocking_dependency_ids == [sample_tree["design"].id]


class TestSubtasks:
    """Tests for TaskStore.get_subtasks."""

    def test_direct_children(self, sample_tree, store):
        """Test only direct children are returned by default."""
        store.add_task("Sketch", parent_id=sample_tree["wireframes"].id)
        subtasks = store.get_subtasks(sample_tree["design"].id)
        assert [t.title for t in subtasks] == ["Wireframes", "Mockups"]

    def test_recursive(self, sample_tree, store):
        """Test recursive returns every descendant in pre-order."""
        store.add_task("Sketch", parent_id=sample_tree["wireframes"].id)
        subtasks = store.get_subtasks(sample_tree["design"].id, recursive=True)
        assert [t.title for t in subtasks] == ["Wireframes", "Sketch", "Mockups"]

    def test_missing_parent(self, store):
        """Test an unknown task has no subtasks."""
        assert store.get_subtasks("missing") == []


# ============================================================================
# Updating
# ============================================================================


class TestUpdateTask:
    """Tests for TaskStore.update_task."""

    def test_no_fields_only_touches_updated_at(self, store):
        """Test an empty update changes nothing but updatedAt."""
        task = store.add_task("Stable", description="desc", tags=["a"])
        updated = store.update_task(task.id)
        assert updated.updated_at >= task.updated_at

        before = task.to_record()
        after = updated.to_record()
        before.pop("updatedAt")
        after.pop("updatedAt")
        assert after == before

    def test_fields(self, store):
        """Test several fields change in one call."""
        task = store.add_task("Old")
        updated = store.update_task(
            task.id, title="New", priority=TaskPriority.CRITICAL, tags=["x", "y"], description="Details"
        )
        assert updated.title == "New"
        assert updated.priority == TaskPriority.CRITICAL
        assert updated.tags == ["x", "y"]
        assert store.get_task(task.id).description == "Details"

    def test_clear_description(self, store):
        """Test an explicit None clears the description."""
        task = store.add_task("T", description="remove me")
        assert store.update_task(task.id, description=None).description is None

    def test_done_sets_completed_at(self, store):
        """Test completedAt follows the Done status."""
        task = store.add_task("T")
        done = store.update_task(task.id, status=TaskStatus.DONE)
        assert done.completed_at is not None
        reopened = store.update_task(task.id, status=TaskStatus.TODO)
        assert reopened.completed_at is None

    def test_reparent(self, sample_tree, store):
        """Test moving a task under another parent appends it to the new siblings."""
        build = store.update_task(sample_tree["build"].id, parent_id=sample_tree["design"].id)
        assert build.parent_id == sample_tree["design"].id
        assert build.order == 2

    def test_reparent_to_root(self, sample_tree, store):
        """Test 'none' detaches a task from its parent."""
        wireframes = store.update_task(sample_tree["wireframes"].id, parent_id="none")
        assert wireframes.parent_id is None
        assert wireframes.order == 2

    def test_reparent_cycle_ignored(self, sample_tree, store):
        """Test a parent change that would create a cycle is skipped but other fields apply."""
        design = store.update_task(sample_tree["design"].id, parent_id=sample_tree["wireframes"].id, title="Design v2")
        assert design.parent_id is None
        assert design.title == "Design v2"

    def test_reparent_to_self_ignored(self, sample_tree, store):
        """Test a task cannot become its own parent."""
        design = store.update_task(sample_tree["design"].id, parent_id=sample_tree["design"].id)
        assert design.parent_id is None

    def test_unknown_parent_ignored(self, sample_tree, store):
        """Test an unknown parent leaves the current parent in place."""
        wireframes = store.update_task(sample_tree["wireframes"].id, parent_id="missing")
        assert wireframes.parent_id == sample_tree["design"].id

    def test_empty_title_fails(self, store):
        """Test a blank title is rejected and nothing changes."""
        task = store.add_task("Keep")
        with pytest.raises(TaskValidationError):
            store.update_task(task.id, title="  ")
        assert store.get_task(task.id).title == "Keep"

    def test_unknown_field_fails(self, store):
        """Test fields that are not updatable are rejected."""
        task = store.add_task("T")
        with pytest.raises(TaskValidationError):
            store.update_task(task.id, project_id="elsewhere")

    def test_missing_task(self, store):
        """Test updating an unknown task returns None."""
        assert store.update_task("missing", title="x") is None


class TestStatusChanges:
    """Tests for complete, start and block."""

    def test_complete_recursive(self, sample_tree, store):
        """Test completing recursively closes every descendant."""
        assert store.complete_task(sample_tree["design"].id, recursive=True)
        for key in ("design", "wireframes", "mockups"):
            assert store.get_task(sample_tree[key].id).status == TaskStatus.DONE
        assert store.get_task(sample_tree["build"].id).status == TaskStatus.TODO

    def test_complete_not_recursive(self, sample_tree, store):
        """Test completing a parent alone leaves children open."""
        store.complete_task(sample_tree["design"].id)
        assert store.get_task(sample_tree["wireframes"].id).status == TaskStatus.TODO

    def test_start_and_block(self, store):
        """Test start and block set their statuses."""
        task = store.add_task("T")
        assert store.start_task(task.id)
        assert store.get_task(task.id).status == TaskStatus.IN_PROGRESS
        assert store.block_task(task.id)
        assert store.get_task(task.id).status == TaskStatus.BLOCKED

    def test_missing_task(self, store):
        """Test status changes on unknown tasks return False."""
        assert store.complete_task("missing") is False
        assert store.start_task("missing") is False
        assert store.block_task("missing") is False


# ============================================================================
# Deleting, Batching, Reordering and Moving
# ============================================================================


class TestDeleteTask:
    """Tests for TaskStore.delete_task."""

    def test_children_move_up(self, store):
        """Test deleting a parent without cascade leaves its child at the top level."""
        parent = store.add_task("Parent")
        child = store.add_task("Child", parent_id=parent.id)
        assert store.delete_task(parent.id)
        assert store.get_task(parent.id) is None
        assert store.get_task(child.id).parent_id is None

    def test_children_move_to_grandparent(self, sample_tree, store):
        """Test orphans join the deleted task's parent after its siblings."""
        sketch = store.add_task("Sketch", parent_id=sample_tree["wireframes"].id)
        store.delete_task(sample_tree["wireframes"].id)
        moved = store.get_task(sketch.id)
        assert moved.parent_id == sample_tree["design"].id
        assert moved.order == 2

    def test_cascade(self, sample_tree, store):
        """Test cascade removes all descendants."""
        assert store.delete_task(sample_tree["design"].id, cascade=True)
        for key in ("design", "wireframes", "mockups"):
            assert store.get_task(sample_tree[key].id) is None
        assert store.get_task(sample_tree["build"].id) is not None

    def test_missing_task(self, store):
        """Test deleting an unknown task returns False."""
        assert store.delete_task("missing") is False


class TestAddMany:
    """Tests for TaskStore.add_many."""

    def test_nested_specs(self, store):
        """Test nested specs create a hierarchy in pre-order."""
        project = store.add_project("Launch")
        created = store.add_many(
            [
                {"title": "Docs", "priority": "high", "subtasks": [{"title": "API"}, {"title": "Guide"}]},
                {"title": "Deploy", "tags": ["ops"]},
            ],
            project_id="Launch",
        )
        assert [t.title for t in created] == ["Docs", "API", "Guide", "Deploy"]
        docs, api, guide, deploy = created
        assert docs.priority == TaskPriority.HIGH
        assert api.parent_id == docs.id
        assert guide.parent_id == docs.id
        assert deploy.parent_id is None
        assert deploy.tags == ["ops"]
        assert all(t.project_id == project.id for t in created)

    def test_under_parent(self, store):
        """Test top-level specs attach to the given parent."""
        parent = store.add_task("Parent")
        created = store.add_many([{"title": "One"}, {"title": "Two"}], parent_id=parent.id)
        assert [t.parent_id for t in created] == [parent.id, parent.id]
        assert [t.order for t in created] == [0, 1]


class TestReorder:
    """Tests for TaskStore.reorder_task."""

    def test_move_to_front(self, store):
        """Test moving the last sibling to the front shifts the others back."""
        a = store.add_task("A")
        b = store.add_task("B")
        c = store.add_task("C")
        assert store.reorder_task(c.id, 0)
        orders = {t.title: t.order for t in store.list_tasks()}
        assert orders == {"C": 0, "A": 1, "B": 2}
        assert [n.task.id for n in store.get_tree()] == [c.id, a.id, b.id]

    def test_missing_task(self, store):
        """Test reordering an unknown task returns False."""
        assert store.reorder_task("missing", 0) is False


class TestMoveToProject:
    """Tests for TaskStore.move_to_project."""

    def test_moves_descendants(self, sample_tree, store):
        """Test the task and its subtasks move, keeping their links."""
        other = store.add_project("Other")
        assert store.move_to_project(sample_tree["design"].id, other.id)

        design = store.get_task(sample_tree["design"].id)
        wireframes = store.get_task(sample_tree["wireframes"].id)
        assert design.project_id == other.id
        assert design.parent_id is None
        assert wireframes.project_id == other.id
        assert wireframes.parent_id == design.id

        remaining = [n.task.title for n in store.flatten(store.get_tree(sample_tree["project"].id))]
        assert remaining == ["Build"]

    def test_subtask_becomes_root(self, sample_tree, store):
        """Test moving a subtask to the default unit clears its parent."""
        assert store.move_to_project(sample_tree["wireframes"].id, None)
        wireframes = store.get_task(sample_tree["wireframes"].id)
        assert wireframes.parent_id is None
        assert wireframes.project_id is None
        assert len(store.get_subtasks(sample_tree["design"].id)) == 1

    def test_unknown_project_fails(self, sample_tree, store):
        """Test moving to a project that does not exist is rejected."""
        with pytest.raises(TaskValidationError):
            store.move_to_project(sample_tree["build"].id, "nowhere")
        assert store.get_task(sample_tree["build"].id).project_id == sample_tree["project"].id

    def test_missing_task(self, store):
        """Test moving an unknown task returns False."""
        assert store.move_to_project("missing", None) is False


# ============================================================================
# Statistics
# ============================================================================


class TestStats:
    """Tests for task statistics."""

    def test_counts(self, sample_tree, store):
        """Test counts by status and priority."""
        store.complete_task(sample_tree["wireframes"].id)
        store.start_task(sample_tree["mockups"].id)
        store.update_task(sample_tree["build"].id, priority=TaskPriority.HIGH)

        stats = store.get_stats(sample_tree["project"].id)
        assert stats.total == 4
        assert stats.done == 1
        assert stats.in_progress == 1
        assert stats.todo == 2
        assert stats.by_priority[TaskPriority.HIGH] == 1
        assert stats.by_priority[TaskPriority.MEDIUM] == 3
        assert stats.by_priority[TaskPriority.CRITICAL] == 0
        assert stats.percent_done == 25

    def test_all_tasks(self, sample_tree, store):
        """Test stats without a project cover every unit."""
        assert store.get_stats().total == 5

    def test_empty(self, store):
        """Test stats over no tasks."""
        stats = store.get_stats()
        assert stats.total == 0
        assert stats.percent_done == 0


# ============================================================================
# Persistence
# ============================================================================


class TestPersistence:
    """Tests for file-backed stores."""

    def test_reopen_reproduces_data(self, file_store, data_dir):
        """Test a fresh store over the same directory sees the same data."""
        project = file_store.add_project("Website")
        parent = file_store.add_task("Parent", project_id=project.id, tags=["a"])
        child = file_store.add_task("Child", parent_id=parent.id)
        loose = file_store.add_task("Loose")
        file_store.add_dependency(loose.id, child.id)

        reopened = TaskStore.from_directory(data_dir)
        assert [p.name for p in reopened.list_projects()] == ["Website"]
        assert reopened.get_task(parent.id).tags == ["a"]
        assert reopened.get_task(child.id).parent_id == parent.id
        assert reopened.get_task(loose.id).depends_on == [child.id]
        assert reopened.get_task(parent.id).created_at == parent.created_at

    def test_unit_files(self, file_store, data_dir):
        """Test one file per project plus the default file."""
        project = file_store.add_project("Website")
        file_store.add_task("In project", project_id=project.id)
        file_store.add_task("Unassigned")
        names = sorted(p.name for p in data_dir.glob("*.json"))
        assert names == sorted(["_default.json", f"{project.id}.json"])
