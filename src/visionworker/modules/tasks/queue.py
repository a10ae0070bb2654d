"""
任务队列管理
"""
from collections import deque
from threading import Lock
from typing import Deque, Optional

from ...core.logger import logger
from .types import Task


class TaskQueue:
    """任务队列（FIFO，互斥锁保护，无界）"""

    def __init__(self):
        self._queue: Deque[Task] = deque()
        self._lock = Lock()
        self.logger = logger.bind(module="TaskQueue")

    def put(self, task: Task) -> None:
        """添加任务到队尾（不阻塞调用方）"""
        with self._lock:
            self._queue.append(task)
        self.logger.debug(f"任务入队: id={task.id}, command={task.command}")

    def get(self) -> Optional[Task]:
        """
        从队首取出任务

        Returns:
            Task 或 None（队列为空）
        """
        with self._lock:
            if self._queue:
                return self._queue.popleft()
            return None

    def size(self) -> int:
        """获取队列大小"""
        with self._lock:
            return len(self._queue)

