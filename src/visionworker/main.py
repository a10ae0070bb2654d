"""
主程序入口

从 stdin 逐行读取任务（每行一个 JSON），交给 worker 线程池执行，结果逐行
写到 stdout。收到 "DONE" 命令或输入结束时，等待队列中的任务全部完成后退出。
"""
from __future__ import annotations

import argparse
import functools
import sys
from typing import Iterable, Optional, Sequence

from .core.config import LanguageResources, Settings, settings, validate_startup
from .core.constants import DONE_COMMAND
from .core.errors import ConfigurationError
from .core.logger import logger, setup_logger
from .modules.capture import BaseCapture, MssCapture
from .modules.ocr.engine import EngineFactory
from .modules.tasks import ResultSink, WorkerPool, build_worker_context, parse_task_line


def run_workers(
    cfg: Settings,
    lines: Optional[Iterable[str]] = None,
    *,
    sink: Optional[ResultSink] = None,
    capture: Optional[BaseCapture] = None,
    resources: Optional[LanguageResources] = None,
    engine_factory: Optional[EngineFactory] = None,
) -> int:
    """运行服务直到 DONE / 输入结束，返回进程退出码。"""
    resources = resources or LanguageResources(cfg.data_dir)
    sink = sink or ResultSink()
    capture = capture or MssCapture()

    try:
        validate_startup(cfg, resources)
        pool = WorkerPool(
            functools.partial(
                build_worker_context,
                cfg=cfg,
                resources=resources,
                capture=capture,
                sink=sink,
                engine_factory=engine_factory,
            ),
            sink,
            poll_interval=cfg.queue_poll_interval,
        )
        pool.start(cfg.workers_num)
    except ConfigurationError as e:
        logger.error(f"启动失败: {e}")
        return 1

    for line in (sys.stdin if lines is None else lines):
        line = line.strip()
        if not line:
            continue
        if cfg.visualize:
            logger.debug(f"LINE: {line}")
        task = parse_task_line(line)
        if task is None:
            logger.warning(f"illegal task format: {line[:200]}")
            continue
        if task.command == DONE_COMMAND:
            break
        pool.submit(task)

    logger.info("quitting...")
    pool.shutdown(wait=True)
    return 0


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="OCR / locate worker reading JSON tasks from stdin")
    parser.add_argument("--lang", help="default OCR language")
    parser.add_argument("--workers-num", type=int, help="number of worker threads")
    parser.add_argument("--data-dir", help="root directory of model assets")
    parser.add_argument("--output", help="directory for debug images")
    parser.add_argument("--visualize", action="store_true", default=None, help="write debug images")
    parser.add_argument("--benchmark", action="store_true", default=None, help="log per task timing")
    parser.add_argument("--log-level", help="log level")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    for key, value in vars(args).items():
        if value is not None:
            setattr(settings, key, value)
    setup_logger(force=True)
    sys.exit(run_workers(settings))


if __name__ == "__main__":
    main()
