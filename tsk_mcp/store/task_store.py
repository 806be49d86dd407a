"""The task store: projects, hierarchical tasks and dependency edges.

Every call loads the units it needs from the repository, mutates them and
writes them back before returning. Nothing is cached between calls, so two
stores over the same repository always see the same data.

Lookups by id accept any case-insensitive prefix of the id and scan every
unit, because a task's unit is not known from its id alone.
"""

from __future__ import annotations

import logging
from collections import Counter, deque
from collections.abc import Iterable, Iterator
from datetime import datetime
from pathlib import Path
from typing import Any, NamedTuple

from pydantic import ValidationError

from tsk_mcp.config import TasksOptions, data_directory
from tsk_mcp.enums import TaskPriority, TaskStatus
from tsk_mcp.exceptions import TaskValidationError
from tsk_mcp.models.task import (
    Project,
    ProjectData,
    ProjectUpdate,
    Task,
    TaskNode,
    TaskSpec,
    TaskStats,
    TaskUpdate,
    new_id,
    utcnow,
)
from tsk_mcp.store.repository import InMemoryRepository, JsonFileRepository, UnitRepository

logger = logging.getLogger(__name__)

_CLEAR_VALUES = {"", "none", "null"}


def is_clear_value(value: str | None) -> bool:
    """True for references meaning "no parent" / "no project"."""
    return value is None or value.strip().lower() in _CLEAR_VALUES


def _next_order(tasks: Iterable[Task], parent_id: str | None) -> int:
    orders = [t.order for t in tasks if t.parent_id == parent_id]
    return max(orders) + 1 if orders else 0


def _list_sort_key(task: Task) -> tuple[int, int, datetime]:
    return (-task.priority.rank, task.order, task.created_at)


class _Located(NamedTuple):
    key: str | None
    data: ProjectData
    task: Task


class TaskStore:
    """Facade over a unit repository implementing every task operation."""

    def __init__(self, repository: UnitRepository, options: TasksOptions | None = None) -> None:
        self.repository = repository
        self.options = options or TasksOptions()

    @classmethod
    def from_directory(cls, data_dir: Path | str, options: TasksOptions | None = None) -> TaskStore:
        return cls(JsonFileRepository(data_dir), options)

    @classmethod
    def from_options(cls, options: TasksOptions) -> TaskStore:
        return cls(JsonFileRepository(data_directory(options)), options)

    @classmethod
    def in_memory(cls, options: TasksOptions | None = None) -> TaskStore:
        return cls(InMemoryRepository(), options)

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _units(self) -> Iterator[tuple[str | None, ProjectData]]:
        for key in self.repository.keys():
            yield key, self.repository.load(key)

    def _all_tasks(self) -> list[Task]:
        return [task for _, data in self._units() for task in data.tasks]

    def _index(self) -> dict[str, Task]:
        return {task.id: task for task in self._all_tasks()}

    def _locate(self, ref: str | None) -> _Located | None:
        """Find a task and the unit holding it.

        An exact id match anywhere wins; otherwise the first prefix match in
        unit order is returned.
        """
        needle = (ref or "").strip().lower()
        if not needle:
            return None

        first_prefix: _Located | None = None
        for key, data in self._units():
            for task in data.tasks:
                task_id = task.id.lower()
                if task_id == needle:
                    return _Located(key, data, task)
                if first_prefix is None and task_id.startswith(needle):
                    first_prefix = _Located(key, data, task)
        return first_prefix

    def _new_task_id(self) -> str:
        existing = set(self._index())
        task_id = new_id()
        while task_id in existing:
            task_id = new_id()
        return task_id

    @staticmethod
    def _children_map(tasks: Iterable[Task]) -> dict[str, list[Task]]:
        children: dict[str, list[Task]] = {}
        for task in tasks:
            if task.parent_id:
                children.setdefault(task.parent_id, []).append(task)
        for siblings in children.values():
            siblings.sort(key=lambda t: t.order)
        return children

    @staticmethod
    def _walk_descendants(task_id: str, children: dict[str, list[Task]]) -> list[Task]:
        """Pre-order descendants of ``task_id``, each visited once."""
        result: list[Task] = []
        seen = {task_id}
        stack = list(reversed(children.get(task_id, [])))
        while stack:
            task = stack.pop()
            if task.id in seen:
                continue
            seen.add(task.id)
            result.append(task)
            stack.extend(reversed(children.get(task.id, [])))
        return result

    @staticmethod
    def _merge_into(target: ProjectData, moved: list[Task]) -> None:
        """Append tasks to a unit, re-numbering any whose order is taken by a sibling."""
        for task in moved:
            if any(t.parent_id == task.parent_id and t.order == task.order for t in target.tasks):
                task.order = _next_order(target.tasks, task.parent_id)
            target.tasks.append(task)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def add_project(self, name: str, description: str | None = None) -> Project:
        if not name or not name.strip():
            raise TaskValidationError("Project name is required")

        project = Project(name=name.strip(), description=description)
        while self.repository.exists(project.id):
            project.id = new_id()

        self.repository.save(project.id, ProjectData(project=project))
        logger.debug("Created project %s (%s)", project.id, project.name)
        return project

    def get_project(self, ref: str | None) -> Project | None:
        """Find a project by id or case-insensitive id prefix."""
        needle = (ref or "").strip().lower()
        if not needle:
            return None

        if needle.isalnum() and self.repository.exists(needle):
            project = self.repository.load(needle).project
            if project is not None:
                return project

        for key, data in self._units():
            if key is None or data.project is None:
                continue
            if data.project.id.lower().startswith(needle):
                return data.project
        return None

    def get_project_by_name(self, name: str | None) -> Project | None:
        needle = (name or "").strip().lower()
        if not needle:
            return None
        for key, data in self._units():
            if key is not None and data.project is not None and data.project.name.lower() == needle:
                return data.project
        return None

    def resolve_project(self, ref: str | None) -> Project | None:
        """Resolve a project by id, id prefix, or name."""
        return self.get_project(ref) or self.get_project_by_name(ref)

    def list_projects(self) -> list[Project]:
        projects = [data.project for key, data in self._units() if key is not None and data.project is not None]
        return sorted(projects, key=lambda p: (p.name.lower(), p.name))

    def update_project(self, ref: str, **changes: Any) -> Project | None:
        try:
            update = ProjectUpdate.model_validate(changes)
        except ValidationError as e:
            raise TaskValidationError(str(e)) from e

        project = self.resolve_project(ref)
        if project is None:
            return None

        data = self.repository.load(project.id)
        if data.project is None:
            return None

        provided = update.model_fields_set
        if "name" in provided and update.name is not None:
            data.project.name = update.name
        if "description" in provided:
            data.project.description = update.description
        data.project.updated_at = utcnow()

        self.repository.save(project.id, data)
        return data.project

    def delete_project(self, ref: str, cascade: bool = False) -> bool:
        """Delete a project's unit.

        Without ``cascade`` its tasks move to the default unit with their
        projectId cleared; parent links between them are kept as they are.
        """
        project = self.resolve_project(ref)
        if project is None:
            return False

        if not cascade:
            data = self.repository.load(project.id)
            if data.tasks:
                default = self.repository.load(None)
                for task in data.tasks:
                    task.project_id = None
                self._merge_into(default, data.tasks)
                self.repository.save(None, default)
                logger.debug("Moved %d task(s) from project %s to the default unit", len(data.tasks), project.id)

        self.repository.delete(project.id)
        logger.debug("Deleted project %s (cascade=%s)", project.id, cascade)
        return True

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(
        self,
        title: str,
        description: str | None = None,
        priority: TaskPriority | None = None,
        tags: list[str] | None = None,
        due_date: datetime | None = None,
        parent_id: str | None = None,
        project_id: str | None = None,
    ) -> Task:
        """Create a task.

        The parent must exist; without an explicit project the task joins its
        parent's project. Raises TaskValidationError when the title is empty or
        the parent or project cannot be resolved.
        """
        if not title or not title.strip():
            raise TaskValidationError("Title is required")

        parent: Task | None = None
        if parent_id:
            parent = self.get_task(parent_id)
            if parent is None:
                raise TaskValidationError(f"Parent task not found: {parent_id}")
            if not project_id:
                project_id = parent.project_id
        elif not project_id and self.options.default_project:
            if self.resolve_project(self.options.default_project) is not None:
                project_id = self.options.default_project
            else:
                logger.warning("Default project %r not found, using no project", self.options.default_project)

        resolved_project_id: str | None = None
        if project_id:
            project = self.resolve_project(project_id)
            if project is None:
                raise TaskValidationError(f"Project not found: {project_id}")
            resolved_project_id = project.id

        data = self.repository.load(resolved_project_id)
        parent_key = parent.id if parent else None
        task = Task(
            id=self._new_task_id(),
            title=title.strip(),
            description=description,
            priority=priority or self.options.priority,
            tags=list(tags or []),
            due_date=due_date,
            parent_id=parent_key,
            project_id=resolved_project_id,
            order=_next_order(data.tasks, parent_key),
        )
        data.tasks.append(task)
        self.repository.save(resolved_project_id, data)
        logger.debug("Created task %s in unit %s", task.id, resolved_project_id or "default")
        return task

    def get_task(self, ref: str | None) -> Task | None:
        located = self._locate(ref)
        return located.task if located else None

    def list_tasks(
        self,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        tag: str | None = None,
        project_id: str | None = None,
        include_completed: bool = False,
    ) -> list[Task]:
        """Filter tasks across the store, or within one project.

        Done and Cancelled tasks are left out unless ``include_completed`` is
        set or a status is asked for explicitly. Results are sorted by
        priority (highest first), then order, then creation time.
        """
        if project_id:
            project = self.resolve_project(project_id)
            if project is None:
                return []
            tasks: Iterable[Task] = self.repository.load(project.id).tasks
        else:
            tasks = self._all_tasks()

        if status is not None:
            tasks = [t for t in tasks if t.status == status]
        elif not include_completed:
            tasks = [t for t in tasks if not t.status.is_closed]

        if priority is not None:
            tasks = [t for t in tasks if t.priority == priority]

        if tag:
            needle = tag.strip().lower()
            tasks = [t for t in tasks if any(existing.lower() == needle for existing in t.tags)]

        return sorted(tasks, key=_list_sort_key)

    @staticmethod
    def build_tree(tasks: list[Task]) -> list[TaskNode]:
        """Arrange tasks into a forest.

        Tasks whose parent is not in ``tasks`` become roots. Children and
        roots are ordered by ``order``; depth counts from 0 at the roots.
        """
        nodes: dict[str, TaskNode] = {}
        for task in tasks:
            nodes.setdefault(task.id, TaskNode(task=task))

        roots: list[TaskNode] = []
        for node in nodes.values():
            parent = nodes.get(node.task.parent_id) if node.task.parent_id else None
            if parent is None or parent is node:
                roots.append(node)
            else:
                parent.children.append(node)

        for node in nodes.values():
            node.children.sort(key=lambda n: n.task.order)
        roots.sort(key=lambda n: n.task.order)

        visited: set[str] = set()

        def assign_depths(root: TaskNode) -> None:
            stack = [(root, 0)]
            while stack:
                node, depth = stack.pop()
                if node.task.id in visited:
                    continue
                visited.add(node.task.id)
                node.depth = depth
                stack.extend((child, depth + 1) for child in reversed(node.children))

        for root in roots:
            assign_depths(root)

        # Parent cycles in stored data leave nodes unreachable from any root.
        for node in nodes.values():
            if node.task.id in visited:
                continue
            parent = nodes.get(node.task.parent_id or "")
            if parent is not None:
                parent.children = [c for c in parent.children if c is not node]
            roots.append(node)
            assign_depths(node)

        return roots

    @staticmethod
    def flatten(tree: list[TaskNode]) -> list[TaskNode]:
        """Pre-order walk: each node, then its children in order."""
        result: list[TaskNode] = []
        seen: set[str] = set()
        stack = list(reversed(tree))
        while stack:
            node = stack.pop()
            if node.task.id in seen:
                continue
            seen.add(node.task.id)
            result.append(node)
            stack.extend(reversed(sorted(node.children, key=lambda n: n.task.order)))
        return result

    def get_tree(self, project_id: str | None = None, include_completed: bool = False) -> list[TaskNode]:
        tasks = self.list_tasks(project_id=project_id, include_completed=include_completed)
        tree = self.build_tree(tasks)

        nodes = self.flatten(tree)
        blocking = self.blocking_index(n.task for n in nodes)
        for node in nodes:
            node.blocking_dependency_ids = blocking[node.task.id]
        return tree

    def get_subtasks(self, ref: str, recursive: bool = False) -> list[Task]:
        """Direct children, or every descendant in pre-order when ``recursive``."""
        parent = self.get_task(ref)
        if parent is None:
            return []

        children = self._children_map(self._all_tasks())
        if not recursive:
            return children.get(parent.id, [])
        return self._walk_descendants(parent.id, children)

    def update_task(self, ref: str, **changes: Any) -> Task | None:
        """Apply a partial update and refresh updatedAt.

        Accepted fields: title, description, status, priority, tags, due_date,
        parent_id and order. An explicit None clears description, due_date
        and parent_id. A parent that cannot be resolved, or that would make the
        task its own ancestor, is ignored while the other fields still apply.
        """
        try:
            update = TaskUpdate.model_validate(changes)
        except ValidationError as e:
            raise TaskValidationError(str(e)) from e

        located = self._locate(ref)
        if located is None:
            return None
        key, data, task = located

        provided = update.model_fields_set
        now = utcnow()

        if "title" in provided and update.title is not None:
            task.title = update.title
        if "description" in provided:
            task.description = update.description
        if "status" in provided and update.status is not None:
            task.status = update.status
            task.completed_at = now if update.status == TaskStatus.DONE else None
        if "priority" in provided and update.priority is not None:
            task.priority = update.priority
        if "tags" in provided:
            task.tags = list(update.tags or [])
        if "due_date" in provided:
            task.due_date = update.due_date

        explicit_order = "order" in provided and update.order is not None
        if explicit_order:
            task.order = update.order
        if "parent_id" in provided:
            self._reparent(data, task, update.parent_id, keep_order=explicit_order)

        task.updated_at = now
        self.repository.save(key, data)
        return task

    def _reparent(self, data: ProjectData, task: Task, parent_ref: str | None, keep_order: bool) -> None:
        if is_clear_value(parent_ref):
            new_parent_id = None
        else:
            new_parent = self.get_task(parent_ref)
            if new_parent is None:
                logger.warning("Parent %r not found; parent of %s left unchanged", parent_ref, task.id)
                return
            if self._would_create_cycle(task.id, new_parent.id):
                logger.warning("Making %s a child of %s would create a cycle; ignored", task.id, new_parent.id)
                return
            new_parent_id = new_parent.id

        if new_parent_id == task.parent_id:
            return
        task.parent_id = new_parent_id
        if not keep_order:
            task.order = _next_order((t for t in data.tasks if t is not task), new_parent_id)

    def _would_create_cycle(self, task_id: str, new_parent_id: str) -> bool:
        """Walk up from the new parent looking for ``task_id``."""
        index = self._index()
        seen: set[str] = set()
        current: str | None = new_parent_id
        while current and current not in seen:
            if current == task_id:
                return True
            seen.add(current)
            node = index.get(current)
            current = node.parent_id if node else None
        return False

    def delete_task(self, ref: str, cascade: bool = False) -> bool:
        """Delete a task.

        With ``cascade`` every descendant goes too. Otherwise direct children
        move up to the deleted task's parent (or become roots), appended after
        their new siblings.
        """
        task = self.get_task(ref)
        if task is None:
            return False

        if cascade:
            children = self._children_map(self._all_tasks())
            doomed = {task.id} | {t.id for t in self._walk_descendants(task.id, children)}
        else:
            doomed = {task.id}

        now = utcnow()
        for key in self.repository.keys():
            data = self.repository.load(key)
            remaining = [t for t in data.tasks if t.id not in doomed]
            orphans = [] if cascade else sorted((t for t in remaining if t.parent_id == task.id), key=lambda t: t.order)
            if len(remaining) == len(data.tasks) and not orphans:
                continue

            for child in orphans:
                child.parent_id = task.parent_id
                child.order = _next_order((t for t in remaining if t is not child), task.parent_id)
                child.updated_at = now

            data.tasks = remaining
            self.repository.save(key, data)

        logger.debug("Deleted %d task(s) rooted at %s", len(doomed), task.id)
        return True

    def complete_task(self, ref: str, recursive: bool = False) -> bool:
        task = self.update_task(ref, status=TaskStatus.DONE)
        if task is None:
            return False

        if recursive:
            for child in self.get_subtasks(task.id, recursive=True):
                self.update_task(child.id, status=TaskStatus.DONE)
        return True

    def start_task(self, ref: str) -> bool:
        return self.update_task(ref, status=TaskStatus.IN_PROGRESS) is not None

    def block_task(self, ref: str) -> bool:
        return self.update_task(ref, status=TaskStatus.BLOCKED) is not None

    def add_many(
        self,
        specs: list[TaskSpec] | list[dict[str, Any]],
        project_id: str | None = None,
        parent_id: str | None = None,
    ) -> list[Task]:
        """Create nested tasks; returns the created tasks in pre-order."""
        created: list[Task] = []
        for raw in specs:
            spec = raw if isinstance(raw, TaskSpec) else TaskSpec.model_validate(raw)
            task = self.add_task(
                spec.title,
                description=spec.description,
                priority=spec.priority,
                tags=spec.tags,
                due_date=spec.due_date,
                parent_id=spec.parent_id or parent_id,
                project_id=spec.project_id or project_id,
            )
            created.append(task)
            if spec.subtasks:
                created.extend(self.add_many(spec.subtasks, project_id or task.project_id, task.id))
        return created

    def reorder_task(self, ref: str, new_order: int) -> bool:
        """Place a task at ``new_order`` among its siblings, renumbering the rest."""
        located = self._locate(ref)
        if located is None:
            return False
        key, data, task = located

        new_order = max(new_order, 0)
        siblings = sorted(
            (t for t in data.tasks if t.parent_id == task.parent_id and t is not task),
            key=lambda t: t.order,
        )
        idx = 0
        for sibling in siblings:
            if idx == new_order:
                idx += 1
            sibling.order = idx
            idx += 1
        task.order = new_order
        task.updated_at = utcnow()

        self.repository.save(key, data)
        return True

    def move_to_project(self, ref: str, project_id: str | None = None) -> bool:
        """Move a task and all its descendants into another unit.

        The moved task becomes a root of the target; descendants keep their
        parent links. ``None``, "", "none" or "null" target the default unit.
        Raises TaskValidationError if the project cannot be resolved. The
        target unit is written before the source units are pruned.
        """
        task = self.get_task(ref)
        if task is None:
            return False

        target: str | None = None
        if not is_clear_value(project_id):
            project = self.resolve_project(project_id)
            if project is None:
                raise TaskValidationError(f"Project not found: {project_id}")
            target = project.id

        children = self._children_map(self._all_tasks())
        moving_ids = [task.id] + [t.id for t in self._walk_descendants(task.id, children)]
        moving_set = set(moving_ids)

        sources: dict[str | None, ProjectData] = {}
        by_id: dict[str, Task] = {}
        for key, data in self._units():
            hits = [t for t in data.tasks if t.id in moving_set]
            if hits:
                sources[key] = data
                by_id.update((t.id, t) for t in hits)
                data.tasks = [t for t in data.tasks if t.id not in moving_set]

        moved = [by_id[i] for i in moving_ids if i in by_id]
        now = utcnow()
        for t in moved:
            t.project_id = target
            t.updated_at = now
        moved[0].parent_id = None

        target_data = sources[target] if target in sources else self.repository.load(target)
        self._merge_into(target_data, moved)
        self.repository.save(target, target_data)
        for key, data in sources.items():
            if key != target:
                self.repository.save(key, data)

        logger.debug("Moved %d task(s) rooted at %s to unit %s", len(moved), task.id, target or "default")
        return True

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    @staticmethod
    def compute_stats(tasks: Iterable[Task]) -> TaskStats:
        tasks = list(tasks)
        by_status = Counter(t.status for t in tasks)
        by_priority = Counter(t.priority for t in tasks)
        return TaskStats(
            total=len(tasks),
            todo=by_status[TaskStatus.TODO],
            in_progress=by_status[TaskStatus.IN_PROGRESS],
            done=by_status[TaskStatus.DONE],
            blocked=by_status[TaskStatus.BLOCKED],
            cancelled=by_status[TaskStatus.CANCELLED],
            by_priority={p: by_priority[p] for p in TaskPriority},
        )

    def get_stats(self, project_id: str | None = None) -> TaskStats:
        if project_id:
            project = self.resolve_project(project_id)
            tasks = self.repository.load(project.id).tasks if project else []
        else:
            tasks = self._all_tasks()
        return self.compute_stats(tasks)

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def add_dependency(self, task_ref: str, depends_on_ref: str) -> bool:
        """Record that a task is blocked by another.

        Refuses self-dependencies and edges that would close a cycle. Adding
        an edge that already exists succeeds without duplicating it.
        """
        located = self._locate(task_ref)
        dependency = self.get_task(depends_on_ref)
        if located is None or dependency is None:
            return False
        key, data, task = located

        if task.id == dependency.id:
            logger.warning("Task %s cannot depend on itself", task.id)
            return False
        if self._would_create_dependency_cycle(task.id, dependency.id):
            logger.warning("Dependency %s -> %s would create a cycle; refused", task.id, dependency.id)
            return False

        if dependency.id not in task.depends_on:
            task.depends_on.append(dependency.id)
            task.updated_at = utcnow()
            self.repository.save(key, data)
        return True

    def _would_create_dependency_cycle(self, task_id: str, new_dependency_id: str) -> bool:
        """Breadth-first search from the new dependency along dependsOn edges."""
        index = self._index()
        visited: set[str] = set()
        queue = deque([new_dependency_id])
        while queue:
            current = queue.popleft()
            if current == task_id:
                return True
            if current in visited:
                continue
            visited.add(current)
            node = index.get(current)
            if node is not None:
                queue.extend(node.depends_on)
        return False

    def remove_dependency(self, task_ref: str, depends_on_ref: str) -> bool:
        located = self._locate(task_ref)
        if located is None:
            return False
        key, data, task = located

        raw = (depends_on_ref or "").strip().lower()
        if raw in task.depends_on:
            dependency_id = raw
        else:
            dependency = self.get_task(depends_on_ref)
            if dependency is None or dependency.id not in task.depends_on:
                return False
            dependency_id = dependency.id

        task.depends_on.remove(dependency_id)
        task.updated_at = utcnow()
        self.repository.save(key, data)
        return True

    def get_dependencies(self, ref: str) -> list[Task]:
        task = self.get_task(ref)
        if task is None:
            return []
        index = self._index()
        return [index[dep_id] for dep_id in task.depends_on if dep_id in index]

    def get_dependents(self, ref: str) -> list[Task]:
        task = self.get_task(ref)
        if task is None:
            return []
        return [t for t in self._all_tasks() if task.id in t.depends_on]

    @staticmethod
    def _blocking_ids(task: Task, index: dict[str, Task]) -> list[str]:
        return [
            dep_id
            for dep_id in task.depends_on
            if (dep := index.get(dep_id)) is not None and not dep.status.is_closed
        ]

    def get_blocking_dependencies(self, ref: str) -> list[str]:
        """Ids of dependencies that exist and are neither Done nor Cancelled."""
        task = self.get_task(ref)
        if task is None:
            return []
        return self._blocking_ids(task, self._index())

    def blocking_index(self, tasks: Iterable[Task]) -> dict[str, list[str]]:
        """Blocking dependency ids for many tasks with a single scan of the store."""
        index = self._index()
        return {task.id: self._blocking_ids(task, index) for task in tasks}

    def can_start(self, ref: str) -> bool:
        return not self.get_blocking_dependencies(ref)

    def can_complete(self, ref: str) -> bool:
        return not self.get_blocking_dependencies(ref)
