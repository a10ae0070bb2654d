"""
Declarative image transforms applied before recognition or matching.

An action list is parsed up front (so a bad action fails the task before any
image is acquired) and then applied strictly left to right. Applying it yields
the working image plus a CoordinateMapping that maps any coordinate found in
the working image back to the untransformed image.

Wire form of one action, either as an object or as a JSON string:

    {"action": "resize", "params": {"factor": 0.5}}
    {"action": "resize", "params": {"width": 640, "height": 360}}
    {"action": "flip", "params": {"axis": "horizontal"}}   # or {"code": 1}

``params`` may itself be a JSON string.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple, Union

import cv2  # type: ignore
import numpy as np

from ...core.constants import (
    REASON_INVALID_ACTION,
    REASON_INVALID_ACTION_PARAMS,
    REASON_INVALID_FLIP,
    REASON_INVALID_RESIZE,
    RESIZE_EPSILON,
)
from ...core.errors import ParameterError
from .region import Rect
from .utils import size_of


@dataclass(frozen=True)
class ResizeByFactor:
    factor: float


@dataclass(frozen=True)
class ResizeTo:
    width: int
    height: int


@dataclass(frozen=True)
class Flip:
    # cv2.flip code: 0 vertical (around x-axis), >0 horizontal, <0 both
    code: int

    @property
    def mirrors_x(self) -> bool:
        return self.code != 0

    @property
    def mirrors_y(self) -> bool:
        return self.code <= 0


Action = Union[ResizeByFactor, ResizeTo, Flip]

_FLIP_AXES = {"horizontal": 1, "vertical": 0, "both": -1}


def _loads(value: Any, reason: str) -> dict:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            value = json.loads(value) if value.strip() else {}
        except ValueError:
            raise ParameterError(reason) from None
        if isinstance(value, dict):
            return value
    raise ParameterError(reason)


def _number(params: dict, key: str, kind: type, reason: str):
    value = params.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParameterError(reason)
    return kind(value)


def _parse_resize(params: dict) -> Action:
    factor = _number(params, "factor", float, REASON_INVALID_RESIZE)
    if factor is not None and factor > 0:
        return ResizeByFactor(factor)
    width = _number(params, "width", int, REASON_INVALID_RESIZE)
    height = _number(params, "height", int, REASON_INVALID_RESIZE)
    if width is None or height is None or width <= 0 or height <= 0:
        raise ParameterError(REASON_INVALID_RESIZE)
    return ResizeTo(width, height)


def _parse_flip(params: dict) -> Action:
    if "axis" in params:
        code = _FLIP_AXES.get(params["axis"])
        if code is None:
            raise ParameterError(REASON_INVALID_FLIP)
        return Flip(code)
    code = _number(params, "code", int, REASON_INVALID_FLIP)
    if code is None:
        raise ParameterError(REASON_INVALID_FLIP)
    return Flip(code)


_PARSERS = {
    "resize": _parse_resize,
    "flip": _parse_flip,
}


def parse_action(raw: Any) -> Action:
    body = _loads(raw, REASON_INVALID_ACTION)
    name = body.get("action")
    if not isinstance(name, str):
        raise ParameterError(REASON_INVALID_ACTION)
    parser = _PARSERS.get(name)
    if parser is None:
        # 忽略未知动作会得到缩放错误的坐标，必须失败
        raise ParameterError(f"unknown action: {name}")
    params = _loads(body.get("params", {}), REASON_INVALID_ACTION_PARAMS)
    return parser(params)


def parse_actions(raw: Sequence[Any]) -> List[Action]:
    return [parse_action(item) for item in raw or ()]


@dataclass(frozen=True)
class CoordinateMapping:
    """Maps working-image coordinates back to the source image.

    Per axis: ``source = (mirrored ? size - t : t) / scale`` where
    ``scale = working_size / source_size``.
    """

    src_w: int
    src_h: int
    dst_w: int
    dst_h: int
    mirror_x: bool = False
    mirror_y: bool = False

    @classmethod
    def identity(cls, width: int, height: int) -> "CoordinateMapping":
        return cls(width, height, width, height)

    @property
    def scale_x(self) -> float:
        return self.dst_w / self.src_w

    @property
    def scale_y(self) -> float:
        return self.dst_h / self.src_h

    @property
    def is_identity(self) -> bool:
        return (
            self.src_w == self.dst_w
            and self.src_h == self.dst_h
            and not self.mirror_x
            and not self.mirror_y
        )

    def _x(self, t: float) -> float:
        return (self.dst_w - t if self.mirror_x else t) / self.scale_x

    def _y(self, t: float) -> float:
        return (self.dst_h - t if self.mirror_y else t) / self.scale_y

    def point_to_source(self, x: float, y: float) -> Tuple[int, int]:
        return int(round(self._x(x))), int(round(self._y(y)))

    def rect_to_source(self, rect: Rect) -> Rect:
        if self.is_identity:
            return rect
        x0, x1 = self._x(rect.x), self._x(rect.x + rect.w)
        y0, y1 = self._y(rect.y), self._y(rect.y + rect.h)
        return Rect(
            int(round(min(x0, x1))),
            int(round(min(y0, y1))),
            int(round(abs(x1 - x0))),
            int(round(abs(y1 - y0))),
        )


def _target_size(img: np.ndarray, action: Action) -> Tuple[int, int]:
    w, h = size_of(img)
    if isinstance(action, ResizeByFactor):
        if abs(action.factor - 1.0) <= RESIZE_EPSILON:
            return w, h
        size = int(w * action.factor), int(h * action.factor)
        if size[0] <= 0 or size[1] <= 0:
            raise ParameterError(REASON_INVALID_RESIZE)
        return size
    return action.width, action.height


def apply_actions(
    image: np.ndarray, actions: Sequence[Action]
) -> Tuple[np.ndarray, CoordinateMapping]:
    """Apply actions in order. Returns (working image, mapping to source)."""
    src_w, src_h = size_of(image)
    mirror_x = mirror_y = False
    current = image
    for action in actions:
        if isinstance(action, Flip):
            current = cv2.flip(current, action.code)
            mirror_x ^= action.mirrors_x
            mirror_y ^= action.mirrors_y
            continue
        size = _target_size(current, action)
        if size != size_of(current):
            current = cv2.resize(current, size)
    dst_w, dst_h = size_of(current)
    return current, CoordinateMapping(src_w, src_h, dst_w, dst_h, mirror_x, mirror_y)


__all__ = [
    "ResizeByFactor",
    "ResizeTo",
    "Flip",
    "Action",
    "CoordinateMapping",
    "parse_action",
    "parse_actions",
    "apply_actions",
]
