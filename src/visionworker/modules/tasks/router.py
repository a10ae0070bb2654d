"""
任务路由：解析任务内容、校验参数、获取图像并调用对应处理逻辑。

参数校验（区域、方法、模式、动作）全部在读取图像或截图之前完成。
任务级错误以 TaskError 形式在 route() 内转为失败结果；其他异常交给
worker 边界处理。
"""
from __future__ import annotations

import time
from pathlib import Path
from typing import Optional, Tuple

import cv2  # type: ignore
import numpy as np

from ...core.config import Settings
from ...core.constants import (
    LOCATE_MODES,
    REASON_CAPTURE_EMPTY,
    REASON_LOAD_IMAGE,
    REASON_LOCATE_FAILED,
    REASON_MODE_ERROR,
    REASON_REGION_ERROR,
    REASON_WRITE_IMAGE,
    LocateMode,
    TaskCommand,
)
from ...core.errors import ParameterError, ResourceError, TaskError
from ...core.logger import logger
from ..capture import BaseCapture, CaptureError
from ..ocr import EngineRegistry, OcrResult, ocr
from ..vision import MatchEngine, Rect, apply_actions, check_method, crop, parse_actions, parse_region
from ..vision.utils import read_image, to_bgr, write_image
from .sink import ResultSink
from .types import LocateTask, OcrTask, PixelTask, ScreenshotTask, Task, parse_content


def _debug_name(prefix: str, region: Optional[Rect]) -> str:
    if region is None:
        return f"{prefix}_image.png"
    return f"{prefix}_{region.x}_{region.y}_{region.w}_{region.h}.png"


class TaskRouter:
    """单个 worker 线程使用的任务路由器（不跨线程共享）"""

    def __init__(
        self,
        cfg: Settings,
        registry: EngineRegistry,
        capture: BaseCapture,
        sink: ResultSink,
        matcher: Optional[MatchEngine] = None,
    ):
        self.cfg = cfg
        self.registry = registry
        self.capture = capture
        self.sink = sink
        self.matcher = matcher or MatchEngine(
            threads=cfg.locate_threads,
            debug_dir=cfg.output if cfg.visualize else None,
        )
        self._log = logger.bind(module="TaskRouter")
        self._handlers = {
            TaskCommand.OCR: self._do_ocr,
            TaskCommand.LOCATE: self._do_locate,
            TaskCommand.PIXEL: self._do_pixel,
            TaskCommand.SCREENSHOT: self._do_screenshot,
        }

    def route(self, task: Task) -> None:
        command = TaskCommand.parse(task.command)
        if command is None:
            self._log.warning(f"unknown task command: {task.command} (id={task.id})")
            self.sink.fail(task.id, f"unknown command: {task.command}")
            return

        started = time.perf_counter()
        try:
            self._handlers[command](task)
        except TaskError as e:
            self._log.info(f"task failed: id={task.id} command={command.value} reason={e.reason}")
            self.sink.fail(task.id, e.reason)
        finally:
            if self.cfg.benchmark:
                elapsed = (time.perf_counter() - started) * 1000
                self._log.info(f"task {task.id} ({command.value}) took {elapsed:.1f} ms")

    # ── 图像获取 ──

    def _grab(self, region: Rect) -> np.ndarray:
        try:
            return self.capture.capture(region)
        except CaptureError as e:
            self._log.error(f"capture failed: {e}")
            raise ResourceError(REASON_CAPTURE_EMPTY) from e

    def _load_source(
        self, path: str, region: Optional[Rect], flags: int
    ) -> Tuple[np.ndarray, Tuple[int, int]]:
        image = read_image(path, flags)
        if image is None:
            self._log.error(f"can't load the image: {path}")
            raise ResourceError(REASON_LOAD_IMAGE)
        if region is None:
            return image, (0, 0)
        return crop(image, region), (region.x, region.y)

    # ── 处理逻辑 ──

    def _do_ocr(self, task: Task) -> None:
        t = parse_content(OcrTask, task.content)
        region = parse_region(t.region)
        if not t.image and region is None:
            raise ParameterError(REASON_REGION_ERROR)
        actions = parse_actions(t.actions)
        engine = self.registry.engine_for(t.lang)

        if t.image:
            image, offset = self._load_source(t.image, region, cv2.IMREAD_COLOR)
        else:
            image, offset = to_bgr(self._grab(region)), (region.x, region.y)

        working, mapping = apply_actions(image, actions)
        det = self.cfg.det if t.det is None else t.det
        rec = self.cfg.rec if t.rec is None else t.rec
        cls = self.cfg.cls if t.cls is None else t.cls
        visualize_path = None
        if self.cfg.visualize and det:
            visualize_path = str(Path(self.cfg.output) / _debug_name("ocr", region))

        result: OcrResult = ocr(
            engine,
            working,
            mapping=mapping,
            offset=offset,
            det=det,
            rec=rec,
            cls=cls,
            visualize_path=visualize_path,
        )
        self.sink.ok(task.id, result.to_payload())

    def _do_locate(self, task: Task) -> None:
        t = parse_content(LocateTask, task.content)
        resolved = LOCATE_MODES.get(t.mode)
        if resolved is None:
            raise ParameterError(REASON_MODE_ERROR)
        mode, from_screen = resolved
        check_method(t.method, masked=bool(t.mask))
        region = parse_region(t.region)
        if from_screen and region is None:
            raise ParameterError(REASON_REGION_ERROR)
        actions = parse_actions(t.actions)

        if from_screen:
            source, offset = to_bgr(self._grab(region)), (region.x, region.y)
        else:
            # 保留 alpha 通道，auto 掩码需要
            source, offset = self._load_source(t.image, region, cv2.IMREAD_UNCHANGED)

        working, mapping = apply_actions(source, actions)
        if self.cfg.visualize:
            write_image(str(Path(self.cfg.output) / _debug_name("loc", region)), working)

        found = self.matcher.locate(
            working,
            t.images,
            mode=mode,
            method=t.method,
            mask=t.mask or None,
            confidence=t.confidence,
            first_match=t.first_match,
        )
        if found is None:
            self.sink.fail(task.id, REASON_LOCATE_FAILED)
            return

        if mode == LocateMode.CANDIDATES_IN_SOURCE:
            found.region = mapping.rect_to_source(found.region).offset(*offset)
        self.sink.ok(task.id, found.to_payload())

    def _do_pixel(self, task: Task) -> None:
        t = parse_content(PixelTask, task.content)
        try:
            rgba = self.capture.pixel(t.x, t.y)
        except CaptureError as e:
            self._log.error(f"capture failed: {e}")
            raise ResourceError(REASON_CAPTURE_EMPTY) from e
        self.sink.ok(task.id, list(rgba))

    def _do_screenshot(self, task: Task) -> None:
        t = parse_content(ScreenshotTask, task.content)
        region = Rect.from_list(t.region)
        image = self._grab(region)
        if not write_image(t.path, image):
            raise ResourceError(REASON_WRITE_IMAGE)
        self.sink.ok(task.id, "{}")
