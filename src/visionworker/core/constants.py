"""
常量和枚举定义
"""
from enum import Enum, IntEnum
from typing import Optional

import cv2  # type: ignore


class TaskCommand(str, Enum):
    """任务命令"""
    OCR = "ocr"
    LOCATE = "locate"
    PIXEL = "pixel"
    SCREENSHOT = "screenshot"

    @classmethod
    def parse(cls, value: str) -> Optional["TaskCommand"]:
        """解析命令名（兼容 recognize / sample_pixel 别名），未知返回 None"""
        value = _COMMAND_ALIASES.get(value, value)
        try:
            return cls(value)
        except ValueError:
            return None


_COMMAND_ALIASES = {
    "recognize": "ocr",
    "sample_pixel": "pixel",
}

# 终止服务的哨兵命令
DONE_COMMAND = "DONE"


class LocateMode(str, Enum):
    """定位模式：谁是 needle，谁是 haystack"""
    CANDIDATES_IN_SOURCE = "images_in_image"  # 候选图在源图中查找
    SOURCE_IN_CANDIDATES = "image_in_images"  # 源图在候选图中查找


# 线协议模式名 -> (模式, 是否从屏幕截取源图)
LOCATE_MODES = {
    "": (LocateMode.CANDIDATES_IN_SOURCE, True),
    "images_on_screen": (LocateMode.CANDIDATES_IN_SOURCE, True),
    "screen_in_images": (LocateMode.SOURCE_IN_CANDIDATES, True),
    "images_in_image": (LocateMode.CANDIDATES_IN_SOURCE, False),
    "image_in_images": (LocateMode.SOURCE_IN_CANDIDATES, False),
}


class MatchMethod(IntEnum):
    """支持的归一化相关匹配方法（取值与 OpenCV 一致）"""
    CCORR_NORMED = cv2.TM_CCORR_NORMED
    CCOEFF_NORMED = cv2.TM_CCOEFF_NORMED


# 带掩码匹配时允许的方法：TM_CCOEFF_NORMED 在掩码下会失去有意义的负值
MASKED_METHODS = frozenset({MatchMethod.CCORR_NORMED})

AUTO_MASK = "auto"

# 缩放系数与 1 的差小于该值时视为无操作
RESIZE_EPSILON = 1e-5

# 置信度低于该值的 OCR 结果视为“未识别到文字”
MIN_OCR_SCORE = 1e-5

# 失败原因
REASON_INVALID_CONTENT = "invalid task content"
REASON_REGION_ERROR = "region error"
REASON_REGION_EXCEEDED = "region exceeded"
REASON_METHOD_ERROR = "method error"
REASON_MODE_ERROR = "mode error"
REASON_LOAD_IMAGE = "failed load image"
REASON_LOAD_CANDIDATE = "can't load the image"
REASON_LOAD_MASK = "can't load mask"
REASON_TEMPLATE_SIZE = "template's size out of range"
REASON_CAPTURE_EMPTY = "captured screen without data"
REASON_WRITE_IMAGE = "write image failed"
REASON_LOCATE_FAILED = "locate failed"
REASON_INVALID_ACTION = "invalid action content"
REASON_INVALID_ACTION_PARAMS = "invalid action params"
REASON_INVALID_RESIZE = "invalid resize params"
REASON_INVALID_FLIP = "invalid flip params"
