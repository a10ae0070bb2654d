import io
import json
from pathlib import Path

import cv2
import numpy as np
import pytest

from visionworker.core.config import LanguageResources, ModelResource, Settings
from visionworker.modules.capture import BaseCapture, CaptureError
from visionworker.modules.ocr import OcrBox
from visionworker.modules.tasks import ResultSink


def textured_image(width: int, height: int, seed: int = 0, channels: int = 3) -> np.ndarray:
    """Smooth random texture: unique enough for template matching, stable under resize."""
    rng = np.random.default_rng(seed)
    noise = rng.integers(0, 256, size=(height, width, channels), dtype=np.uint8)
    return cv2.GaussianBlur(noise, (5, 5), 0)


class FakeCapture(BaseCapture):
    """Screen backed by an in-memory BGRA image."""

    def __init__(self, screen: np.ndarray):
        if screen.shape[2] == 3:
            screen = cv2.cvtColor(screen, cv2.COLOR_BGR2BGRA)
        self.screen = screen
        self.calls = []

    def _capture_raw(self, rect):
        self.calls.append(rect)
        return self.screen[rect.y : rect.y + rect.h, rect.x : rect.x + rect.w].copy()


class BrokenCapture(BaseCapture):
    def _capture_raw(self, rect):
        raise CaptureError("no display")


class FakeEngine:
    def __init__(self, lang: str, boxes=None):
        self.lang = lang
        self.boxes = list(boxes or [])
        self.calls = []

    def recognize(self, image, *, det, rec, cls):
        self.calls.append({"shape": image.shape, "det": det, "rec": rec, "cls": cls})
        return [OcrBox(text=b.text, confidence=b.confidence, box=list(b.box)) for b in self.boxes]


class FakeEngineFactory:
    def __init__(self, boxes=None, fail_langs=()):
        self.boxes = boxes
        self.fail_langs = set(fail_langs)
        self.created = []

    def __call__(self, lang, resources, cfg):
        if lang in self.fail_langs:
            raise FileNotFoundError(f"no model for {lang}")
        self.created.append(lang)
        return FakeEngine(lang, self.boxes)


class SinkReader:
    def __init__(self):
        self.stream = io.StringIO()
        self.sink = ResultSink(self.stream)

    def results(self):
        return [json.loads(line) for line in self.stream.getvalue().splitlines() if line.strip()]

    def by_id(self):
        return {r["id"]: r for r in self.results()}


@pytest.fixture()
def resources(tmp_path):
    return LanguageResources(
        str(tmp_path),
        {
            "ch": ModelResource("models/ch_det", "models/ch_rec"),
            "en": ModelResource("models/en_det", "models/en_rec"),
        },
    )


@pytest.fixture()
def cfg(tmp_path):
    return Settings(
        lang="ch",
        output=str(tmp_path / "output"),
        workers_num=1,
        queue_poll_interval=0.005,
        _env_file=None,
    )


@pytest.fixture()
def sink_reader():
    return SinkReader()


@pytest.fixture()
def screen():
    return textured_image(400, 300, seed=7)


@pytest.fixture()
def capture(screen):
    return FakeCapture(screen)


@pytest.fixture()
def image_file(tmp_path, screen):
    path = Path(tmp_path) / "source.png"
    cv2.imwrite(str(path), screen)
    return path
