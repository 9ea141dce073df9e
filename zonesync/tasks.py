"""
Asynchronous task runner.

Zone operations run as tasks bound to one object id.  Task classes are
added to an explicit registration table with :func:`register_task` at
import time and instantiated by name through :class:`TaskManager`.
A task reports back through :meth:`Task.set_stage_complete` or
:meth:`Task.set_stage_failed`; an exception escaping ``on_init`` is
treated as a failure.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any

from .base.exceptions import TaskError
from .base.logger import zs_logger
from .models import new_id

TASK_REGISTRY: dict[str, type[Task]] = {}


def register_task(cls: type[Task]) -> type[Task]:
    """Class decorator: make *cls* available to :meth:`TaskManager.new_task`."""
    if cls.__name__ in TASK_REGISTRY:
        raise TaskError(f"Task {cls.__name__} registered twice")
    TASK_REGISTRY[cls.__name__] = cls
    return cls


def get_task_class(name: str) -> type[Task]:
    try:
        return TASK_REGISTRY[name]
    except KeyError:
        raise TaskError(f"Unknown task: {name}") from None


class TaskStage(str, Enum):
    INIT = "init"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


class Task:
    """One durable unit of work bound to an object."""

    def __init__(
        self,
        manager: TaskManager,
        obj_id: str,
        params: dict[str, Any] | None = None,
        parent_task_id: str | None = None,
    ) -> None:
        self.id = new_id()
        self.parent_task_id = parent_task_id
        self.name = type(self).__name__
        self.manager = manager
        self.obj_id = obj_id
        self.params: dict[str, Any] = dict(params or {})
        self.stage = TaskStage.INIT
        self.result: Any = None
        self._done = threading.Event()

    @property
    def context(self) -> Any:
        return self.manager.context

    def on_init(self, obj_id: str, params: dict[str, Any]) -> None:
        raise NotImplementedError

    def schedule_run(self) -> None:
        self.manager.dispatch(self)

    def run(self) -> None:
        self.stage = TaskStage.RUNNING
        try:
            self.on_init(self.obj_id, self.params)
        except Exception as e:
            zs_logger.error(
                f"task {self.name} crashed: {e}", task=self.name, zone_id=self.obj_id, exc_info=True
            )
            self.on_error(e)
            return
        if self.stage is TaskStage.RUNNING:
            self.set_stage_complete()

    def on_error(self, error: Exception) -> None:
        """Called with an exception that escaped :meth:`on_init`."""
        self.set_stage_failed(str(error))

    def set_stage_complete(self, data: Any = None) -> None:
        self.stage = TaskStage.COMPLETE
        self.result = data
        zs_logger.info(f"task {self.name} complete", task=self.name, zone_id=self.obj_id)
        self._done.set()

    def set_stage_failed(self, reason: str) -> None:
        self.stage = TaskStage.FAILED
        self.result = reason
        zs_logger.error(f"task {self.name} failed: {reason}", task=self.name, zone_id=self.obj_id)
        self._done.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the task has completed or failed."""
        return self._done.wait(timeout)


class TaskManager:
    """Creates registered tasks and dispatches them to a worker pool.

    Args:
        context: Object handed to every task as :attr:`Task.context`.
        worker_count: Size of the thread pool.
        synchronous: Run tasks inline in the caller's thread.
    """

    def __init__(
        self, context: Any = None, worker_count: int = 4, synchronous: bool = False
    ) -> None:
        self.context = context
        self.synchronous = synchronous
        self._executor = (
            None
            if synchronous
            else ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix="zonesync-task")
        )
        self._lock = threading.Lock()
        self._tasks: dict[str, Task] = {}

    def new_task(
        self,
        name: str,
        obj_id: str,
        params: dict[str, Any] | None = None,
        parent_task_id: str | None = None,
    ) -> Task:
        task = get_task_class(name)(self, obj_id, params, parent_task_id)
        with self._lock:
            self._tasks[task.id] = task
        return task

    def dispatch(self, task: Task) -> None:
        if self._executor is None:
            task.run()
        else:
            self._executor.submit(task.run)

    def tasks_for(self, obj_id: str) -> list[Task]:
        with self._lock:
            return [t for t in self._tasks.values() if t.obj_id == obj_id]

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
