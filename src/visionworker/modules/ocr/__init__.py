from .types import OcrBox, OcrResult
from .recognize import ocr, remap_boxes, draw_boxes
from .engine import EngineRegistry, OcrEngine, PaddleEngine, paddle_engine_factory

__all__ = [
    "OcrBox",
    "OcrResult",
    "ocr",
    "remap_boxes",
    "draw_boxes",
    "EngineRegistry",
    "OcrEngine",
    "PaddleEngine",
    "paddle_engine_factory",
]
