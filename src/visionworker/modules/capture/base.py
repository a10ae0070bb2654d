"""
截图基类
"""
from abc import ABC, abstractmethod

import numpy as np

from ..vision.region import Rect


class CaptureError(Exception):
    """截图异常"""
    pass


class BaseCapture(ABC):
    """截图基类"""

    @abstractmethod
    def _capture_raw(self, rect: Rect) -> np.ndarray:
        """
        原始截图实现

        Returns:
            BGRA 图像（rect.h x rect.w x 4）

        Raises:
            CaptureError: 截图失败
        """
        pass

    def capture(self, rect: Rect) -> np.ndarray:
        """
        截取屏幕指定区域

        Args:
            rect: 屏幕坐标区域

        Returns:
            BGRA 图像数据

        Raises:
            CaptureError: 截图失败或没有数据
        """
        try:
            image = self._capture_raw(rect)
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureError(f"截图失败: {str(e)}") from e
        if image is None or image.size == 0:
            raise CaptureError("截图返回空数据")
        return image

    def pixel(self, x: int, y: int) -> tuple:
        """读取屏幕单个像素，返回 (r, g, b, a)"""
        bgra = self.capture(Rect(x, y, 1, 1))[0, 0]
        if bgra.shape[0] < 4:
            return int(bgra[2]), int(bgra[1]), int(bgra[0]), 255
        return int(bgra[2]), int(bgra[1]), int(bgra[0]), int(bgra[3])
