import numpy as np
import pytest

from visionworker.modules.capture import BaseCapture, CaptureError, MssCapture
from visionworker.modules.vision.region import Rect


class _BgrCapture(BaseCapture):
    def _capture_raw(self, rect):
        img = np.zeros((rect.h, rect.w, 3), dtype=np.uint8)
        img[..., 0] = 10
        img[..., 1] = 20
        img[..., 2] = 30
        return img


class _EmptyCapture(BaseCapture):
    def _capture_raw(self, rect):
        return np.zeros((0, 0, 4), dtype=np.uint8)


class _FakeSct:
    def __init__(self, fail=False):
        self.fail = fail
        self.monitors = []

    def grab(self, monitor):
        if self.fail:
            raise OSError("XGetImage failed")
        self.monitors.append(monitor)
        return np.full((monitor["height"], monitor["width"], 4), 255, dtype=np.uint8)


def test_pixel_without_alpha_is_opaque():
    assert _BgrCapture().pixel(3, 4) == (30, 20, 10, 255)


def test_empty_capture_rejected():
    with pytest.raises(CaptureError):
        _EmptyCapture().capture(Rect(0, 0, 5, 5))


def test_mss_grabs_monitor_region():
    capture = MssCapture()
    sct = _FakeSct()
    capture._local.sct = sct

    img = capture.capture(Rect(5, 6, 7, 8))

    assert img.shape == (8, 7, 4)
    assert sct.monitors == [{"left": 5, "top": 6, "width": 7, "height": 8}]


def test_mss_failure_becomes_capture_error():
    capture = MssCapture()
    capture._local.sct = _FakeSct(fail=True)

    with pytest.raises(CaptureError):
        capture.capture(Rect(0, 0, 1, 1))
