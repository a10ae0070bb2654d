"""
桌面截图实现（mss）
"""
import threading

import numpy as np

from ...core.logger import logger
from ..vision.region import Rect
from .base import BaseCapture, CaptureError


class MssCapture(BaseCapture):
    """基于 mss 的桌面截图，mss 实例按线程缓存"""

    def __init__(self):
        self._local = threading.local()
        self.logger = logger.bind(module="MssCapture")

    @property
    def sct(self):
        if not hasattr(self._local, "sct"):
            import mss  # noqa: delay import

            self._local.sct = mss.mss()
        return self._local.sct

    def _capture_raw(self, rect: Rect) -> np.ndarray:
        monitor = {"left": rect.x, "top": rect.y, "width": rect.w, "height": rect.h}
        try:
            shot = self.sct.grab(monitor)
        except Exception as e:
            self.logger.error(f"截图异常: {str(e)}")
            raise CaptureError(f"截图异常: {str(e)}") from e
        # mss 返回 BGRA
        return np.array(shot, dtype=np.uint8)
