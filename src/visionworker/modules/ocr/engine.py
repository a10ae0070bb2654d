"""PaddleOCR 引擎管理（按语言懒加载，每个 worker 线程独占一个注册表）。

PaddleOCR predict() 非线程安全。这里不加推理锁，而是让每个 worker 线程
持有自己的 EngineRegistry，引擎实例从不跨线程共享。
"""
from __future__ import annotations

import os
from typing import Callable, Dict, List, Optional, Protocol

import numpy as np

from ...core.config import LanguageResources, Settings, missing_assets
from ...core.errors import ConfigurationError, ResourceError
from ...core.logger import logger
from .types import OcrBox

# ── 在导入 PaddleOCR 之前设置环境变量，防止自动下载模型 ──
os.environ.setdefault('PADDLEX_DOWNLOAD', '0')
os.environ.setdefault('PADDLE_PDX_DISABLE_MODEL_SOURCE_CHECK', 'True')


class OcrEngine(Protocol):
    def recognize(self, image: np.ndarray, *, det: bool, rec: bool, cls: bool) -> List[OcrBox]:
        ...


class PaddleEngine:
    """单语言 PaddleOCR 封装。

    det+rec 走完整 pipeline；仅检测 / 仅识别时按需创建 TextDetection /
    TextRecognition 模块。
    """

    def __init__(self, lang: str, det_model_dir: str, rec_model_dir: str, *, device: str = "cpu", cls: bool = False):
        try:
            from paddleocr import PaddleOCR  # noqa: delay import
        except ImportError as e:
            logger.error(f"PaddleOCR 导入失败，请检查依赖: {e}")
            raise

        self.lang = lang
        self.det_model_dir = det_model_dir
        self.rec_model_dir = rec_model_dir
        self.device = device
        self.cls_enabled = cls
        self._det = None
        self._rec = None
        self._pipeline = PaddleOCR(
            text_detection_model_dir=det_model_dir,
            text_recognition_model_dir=rec_model_dir,
            use_doc_orientation_classify=False,
            use_doc_unwarping=False,
            use_textline_orientation=cls,
            device=device,
        )

    def _detector(self):
        if self._det is None:
            from paddleocr import TextDetection
            self._det = TextDetection(model_dir=self.det_model_dir, device=self.device)
        return self._det

    def _recognizer(self):
        if self._rec is None:
            from paddleocr import TextRecognition
            self._rec = TextRecognition(model_dir=self.rec_model_dir, device=self.device)
        return self._rec

    def recognize(self, image: np.ndarray, *, det: bool = True, rec: bool = True, cls: bool = False) -> List[OcrBox]:
        if det and rec:
            results = self._pipeline.predict(image, use_textline_orientation=cls and self.cls_enabled)
            boxes: List[OcrBox] = []
            for result in results or ():
                for text, confidence, poly in zip(result["rec_texts"], result["rec_scores"], result["rec_polys"]):
                    boxes.append(OcrBox(
                        text=text,
                        confidence=float(confidence),
                        box=[(int(p[0]), int(p[1])) for p in poly],
                    ))
            return boxes
        if det:
            boxes = []
            for result in self._detector().predict(image) or ():
                for poly, score in zip(result["dt_polys"], result["dt_scores"]):
                    boxes.append(OcrBox(text="", confidence=float(score), box=[(int(p[0]), int(p[1])) for p in poly]))
            return boxes
        if rec:
            h, w = image.shape[:2]
            corners = [(0, 0), (w, 0), (w, h), (0, h)]
            return [
                OcrBox(text=result["rec_text"], confidence=float(result["rec_score"]), box=corners)
                for result in self._recognizer().predict(image) or ()
            ]
        return []


EngineFactory = Callable[[str, LanguageResources, Settings], OcrEngine]


def paddle_engine_factory(lang: str, resources: LanguageResources, cfg: Settings) -> OcrEngine:
    missing = missing_assets(resources, lang)
    if missing:
        raise FileNotFoundError(f"missing model assets: {', '.join(missing)}")
    det_dir = resources.det_model_dir(lang)
    rec_dir = resources.rec_model_dir(lang)
    logger.info("正在初始化 PaddleOCR (lang={}, det={}, rec={})...", lang, det_dir, rec_dir)
    engine = PaddleEngine(lang, str(det_dir), str(rec_dir), device=cfg.device, cls=cfg.cls)
    logger.info("PaddleOCR 初始化完成 (lang={})", lang)
    return engine


class EngineRegistry:
    """语言 -> 识别引擎缓存。

    默认语言引擎在构造时创建，失败即为配置错误；其他已知语言首次请求时
    创建并缓存，失败只导致当前任务失败；未知语言返回默认引擎。
    """

    def __init__(
        self,
        cfg: Settings,
        resources: LanguageResources,
        factory: Optional[EngineFactory] = None,
    ):
        self.cfg = cfg
        self.resources = resources
        self.default_lang = cfg.lang
        self._factory = factory or paddle_engine_factory
        self._engines: Dict[str, OcrEngine] = {}
        try:
            self._engines[self.default_lang] = self._factory(self.default_lang, resources, cfg)
        except Exception as e:
            raise ConfigurationError(f"failed to construct default engine ({self.default_lang}): {e}") from e

    @property
    def default(self) -> OcrEngine:
        return self._engines[self.default_lang]

    def engine_for(self, lang: Optional[str]) -> OcrEngine:
        if not lang or lang not in self.resources:
            # 不支持的语言不阻塞调用方，回退默认引擎
            return self.default
        engine = self._engines.get(lang)
        if engine is not None:
            return engine
        try:
            engine = self._factory(lang, self.resources, self.cfg)
        except Exception as e:
            logger.error("引擎创建失败 (lang={}): {}", lang, e)
            raise ResourceError(f"engine unavailable: {lang}") from e
        self._engines[lang] = engine
        return engine
