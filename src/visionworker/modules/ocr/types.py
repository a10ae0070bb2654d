"""OCR 识别结果数据结构。"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from ...core.constants import MIN_OCR_SCORE


@dataclass
class OcrBox:
    """单个 OCR 识别结果。"""

    text: str
    confidence: float
    # 边界框四点坐标 [(x1,y1), (x2,y2), (x3,y3), (x4,y4)]
    box: List[Tuple[int, int]] = field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "bbox": [[int(x), int(y)] for x, y in self.box],
            "text": self.text,
            "confidence": float(self.confidence),
        }


@dataclass
class OcrResult:
    """OCR 识别结果集合。"""

    boxes: List[OcrBox]

    def to_payload(self) -> List[dict]:
        """输出结构；置信度为 0 的结果（未识别到文字）被过滤。"""
        return [b.to_payload() for b in self.boxes if b.confidence >= MIN_OCR_SCORE]
