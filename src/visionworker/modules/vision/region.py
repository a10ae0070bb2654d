"""
Rectangles in pixel space and region validation / cropping.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ...core.constants import REASON_REGION_ERROR, REASON_REGION_EXCEEDED
from ...core.errors import ParameterError


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    w: int
    h: int

    @classmethod
    def from_list(cls, region: Sequence[int]) -> "Rect":
        """Build from the wire form [x, y, w, h], validating shape and sign."""
        if len(region) != 4:
            raise ParameterError(REASON_REGION_ERROR)
        rect = cls(*(int(v) for v in region))
        if not rect.is_valid():
            raise ParameterError(REASON_REGION_ERROR)
        return rect

    def is_valid(self) -> bool:
        return self.x >= 0 and self.y >= 0 and self.w > 0 and self.h > 0

    def fits_in(self, width: int, height: int) -> bool:
        return self.x + self.w <= width and self.y + self.h <= height

    def to_list(self) -> List[int]:
        return [self.x, self.y, self.w, self.h]

    def offset(self, dx: int, dy: int) -> "Rect":
        return Rect(self.x + dx, self.y + dy, self.w, self.h)


def parse_region(region: Optional[Sequence[int]]) -> Optional[Rect]:
    """None / [] -> None, otherwise a validated Rect."""
    if not region:
        return None
    return Rect.from_list(region)


def crop(img: np.ndarray, rect: Rect) -> np.ndarray:
    """Crop img by rect; raises ParameterError when rect leaves the image."""
    h, w = img.shape[:2]
    if not rect.fits_in(w, h):
        raise ParameterError(REASON_REGION_EXCEEDED)
    return img[rect.y : rect.y + rect.h, rect.x : rect.x + rect.w]


__all__ = ["Rect", "parse_region", "crop"]
