"""核心 OCR 识别函数。"""
from __future__ import annotations

from typing import List, Optional, Tuple

import cv2
import numpy as np

from ..vision.actions import CoordinateMapping
from ..vision.utils import to_bgr, write_image
from .engine import OcrEngine
from .types import OcrBox, OcrResult


def ocr(
    engine: OcrEngine,
    image: np.ndarray,
    *,
    mapping: CoordinateMapping,
    offset: Tuple[int, int] = (0, 0),
    det: bool = True,
    rec: bool = True,
    cls: bool = False,
    visualize_path: Optional[str] = None,
) -> OcrResult:
    """对（已经过动作变换的）图像执行 OCR 识别。

    Args:
        engine: 识别引擎
        image: 工作图像（apply_actions 的输出）
        mapping: 工作图像 -> 原图的坐标映射
        offset: 原图在整图 / 屏幕中的偏移（裁剪或截图区域的左上角）
        visualize_path: 非空时将检测框绘制到工作图像并保存到该路径

    Returns:
        OcrResult，坐标为整图 / 屏幕坐标
    """
    raw = engine.recognize(image, det=det, rec=rec, cls=cls)
    if visualize_path:
        draw_boxes(image, raw, visualize_path)
    return OcrResult(boxes=remap_boxes(raw, mapping, offset))


def remap_boxes(
    boxes: List[OcrBox],
    mapping: CoordinateMapping,
    offset: Tuple[int, int] = (0, 0),
) -> List[OcrBox]:
    """将工作图像坐标还原为原图坐标并加上偏移。"""
    offset_x, offset_y = offset
    adjusted: List[OcrBox] = []
    for b in boxes:
        points = []
        for x, y in b.box:
            sx, sy = mapping.point_to_source(x, y)
            points.append((sx + offset_x, sy + offset_y))
        adjusted.append(OcrBox(text=b.text, confidence=b.confidence, box=points))
    return adjusted


def draw_boxes(image: np.ndarray, boxes: List[OcrBox], path: str) -> bool:
    """可视化：在图像上绘制检测框并保存。"""
    canvas = to_bgr(image).copy()
    for b in boxes:
        if len(b.box) < 2:
            continue
        pts = np.array(b.box, dtype=np.int32).reshape((-1, 1, 2))
        cv2.polylines(canvas, [pts], True, (0, 0, 255), 2)
    return write_image(path, canvas)
