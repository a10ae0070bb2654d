"""
结果输出：每个任务一行 JSON，所有 worker 共享一把输出锁。
"""
from __future__ import annotations

import json
import sys
import threading
from typing import Any, Optional, TextIO


class ResultSink:
    """线程安全的结果输出。

    每次 emit 先在本地拼好完整的一行，再在锁内一次写出并 flush，
    避免与其他 worker 的输出交错。行首的换行符保证结果从新行开始。
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream
        self._lock = threading.Lock()

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def emit(self, task_id: str, success: bool, content: Any) -> None:
        if not isinstance(content, str):
            content = json.dumps(content, ensure_ascii=False)
        line = "\n" + json.dumps(
            {"id": task_id, "success": success, "content": content},
            ensure_ascii=False,
        ) + "\n"
        with self._lock:
            self.stream.write(line)
            self.stream.flush()

    def ok(self, task_id: str, content: Any) -> None:
        self.emit(task_id, True, content)

    def fail(self, task_id: str, reason: str) -> None:
        self.emit(task_id, False, reason)
