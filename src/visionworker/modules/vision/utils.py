"""
Vision utilities: image decoding, writing and channel helpers.
"""
from __future__ import annotations

import os
from typing import Optional, Tuple

import cv2  # type: ignore
import numpy as np


def read_image(path: str, flags: int = cv2.IMREAD_COLOR) -> Optional[np.ndarray]:
    """Read an image file, returning None when it is missing or undecodable.

    cv2.imread cannot open non-ASCII paths on some platforms, so the file is
    read as bytes and decoded with cv2.imdecode.
    """
    if not path or not os.path.isfile(path):
        return None
    with open(path, "rb") as f:
        data = f.read()
    if not data:
        return None
    return cv2.imdecode(np.frombuffer(data, dtype=np.uint8), flags)


def write_image(path: str, img: np.ndarray) -> bool:
    """Encode img as PNG and write it to path. Returns False on failure."""
    ok, buf = cv2.imencode(".png", img)
    if not ok:
        return False
    try:
        with open(path, "wb") as f:
            f.write(buf.tobytes())
    except OSError:
        return False
    return True


def size_of(img: np.ndarray) -> Tuple[int, int]:
    """Return (width, height)."""
    h, w = img.shape[:2]
    return w, h


def has_alpha(img: np.ndarray) -> bool:
    """BGRA, or gray+alpha as decoded from some PNGs."""
    return img.ndim == 3 and img.shape[2] in (2, 4)


def to_bgr(img: np.ndarray) -> np.ndarray:
    """Drop alpha / expand gray so the image is 3-channel BGR."""
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 2:
        return cv2.cvtColor(np.ascontiguousarray(img[:, :, 0]), cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    return img


def split_alpha(img: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Split a BGRA (or gray+alpha) image into (BGR image, 3-channel alpha mask)."""
    alpha = cv2.extractChannel(img, img.shape[2] - 1)
    mask = cv2.merge([alpha, alpha, alpha])
    return to_bgr(img), mask


__all__ = [
    "read_image",
    "write_image",
    "size_of",
    "has_alpha",
    "to_bgr",
    "split_alpha",
]
