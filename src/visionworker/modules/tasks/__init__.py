from .types import Task, parse_task_line
from .queue import TaskQueue
from .sink import ResultSink
from .router import TaskRouter
from .pool import WorkerContext, WorkerPool, build_worker_context

__all__ = [
    "Task",
    "parse_task_line",
    "TaskQueue",
    "ResultSink",
    "TaskRouter",
    "WorkerContext",
    "WorkerPool",
    "build_worker_context",
]
