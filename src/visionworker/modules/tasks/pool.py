"""
Worker 线程池：N 个线程轮询共享任务队列。

每个线程独占一个 WorkerContext（自己的 EngineRegistry 与 TaskRouter），
识别引擎从不跨线程共享，因此引擎本身无需加锁。
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from ...core.config import LanguageResources, Settings
from ...core.logger import logger
from ..capture import BaseCapture
from ..ocr import EngineRegistry
from ..ocr.engine import EngineFactory
from .queue import TaskQueue
from .router import TaskRouter
from .sink import ResultSink
from .types import Task

DEFAULT_POLL_INTERVAL = 0.01


@dataclass
class WorkerContext:
    index: int
    registry: EngineRegistry
    router: TaskRouter


def build_worker_context(
    index: int,
    cfg: Settings,
    resources: LanguageResources,
    capture: BaseCapture,
    sink: ResultSink,
    engine_factory: Optional[EngineFactory] = None,
) -> WorkerContext:
    """构建单个 worker 的上下文（默认语言引擎在此创建，失败抛 ConfigurationError）"""
    registry = EngineRegistry(cfg, resources, factory=engine_factory)
    router = TaskRouter(cfg, registry, capture, sink)
    return WorkerContext(index=index, registry=registry, router=router)


class WorkerPool:
    """有界 worker、无界队列。

    submit 不阻塞；空闲 worker 每 poll_interval 秒重试一次；shutdown 会先
    处理完队列中剩余任务再让线程退出，执行中的任务不会被中断。
    """

    def __init__(
        self,
        context_factory: Callable[[int], WorkerContext],
        sink: ResultSink,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self._context_factory = context_factory
        self.sink = sink
        self.poll_interval = poll_interval
        self.queue = TaskQueue()
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []
        self._log = logger.bind(module="WorkerPool")

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def submit(self, task: Task) -> None:
        self.queue.put(task)

    def start(self, n: int) -> None:
        """启动 n 个 worker；上下文在调用线程中构建，构建失败直接抛出。"""
        if self._threads:
            raise RuntimeError("worker pool already started")
        self._stop.clear()
        contexts = [self._context_factory(i) for i in range(max(1, n))]
        self._log.info(f"Running with {len(contexts)} workers")
        for ctx in contexts:
            t = threading.Thread(
                target=self._run,
                args=(ctx,),
                name=f"worker-{ctx.index}",
                daemon=True,
            )
            self._threads.append(t)
            t.start()

    def shutdown(self, wait: bool = True) -> None:
        """通知 worker 在队列清空后退出"""
        pending = self.queue.size()
        if pending:
            self._log.info(f"draining {pending} queued tasks before exit")
        self._stop.set()
        if wait:
            for t in self._threads:
                t.join()
            self._threads.clear()
        self._log.info("worker pool stopped")

    def _run(self, ctx: WorkerContext) -> None:
        log = self._log.bind(worker=ctx.index)
        log.info("worker started")
        while True:
            task = self.queue.get()
            if task is None:
                if self._stop.is_set():
                    break
                time.sleep(self.poll_interval)
                continue
            self._execute(ctx, task)
        log.info("worker stopped")

    def _execute(self, ctx: WorkerContext, task: Task) -> None:
        try:
            ctx.router.route(task)
        except Exception as e:
            # 单个任务的异常不能杀死 worker 线程
            self._log.exception(f"task {task.id} crashed: {e}")
            self.sink.fail(task.id, f"internal error: {type(e).__name__}")
