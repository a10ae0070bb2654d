"""
Template matching ("locate").

Features:
- Normalized correlation (TM_CCOEFF_NORMED / TM_CCORR_NORMED), optionally masked
- Score mapped from the raw correlation range [-1, 1] into [0, 1]
- Candidates searched in parallel by a small bounded pool; each search thread
  claims the next candidate index from a shared cursor and only takes the lock
  to claim an index or to compare/replace the shared best match
- Two modes: candidates searched inside the source image, or the source image
  searched inside each candidate

Returned regions are in the coordinate space of the haystack that was searched
(the working source image, or the candidate). Mapping back through actions and
crop offsets is the caller's job.
"""
from __future__ import annotations

import functools
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import cv2  # type: ignore
import numpy as np

from ...core.constants import (
    AUTO_MASK,
    MASKED_METHODS,
    REASON_LOAD_CANDIDATE,
    REASON_LOAD_MASK,
    REASON_METHOD_ERROR,
    REASON_TEMPLATE_SIZE,
    LocateMode,
    MatchMethod,
)
from ...core.errors import ParameterError, ResourceError
from ...core.logger import logger
from .region import Rect
from .utils import has_alpha, read_image, size_of, split_alpha, to_bgr, write_image


DEFAULT_SEARCH_THREADS = 4

CandidateRef = Union[str, np.ndarray]
MaskRef = Union[str, np.ndarray, None]


@dataclass
class Match:
    x: int
    y: int
    w: int
    h: int
    score: float


@dataclass
class LocateResult:
    located: int
    region: Rect
    score: float

    def to_payload(self) -> list:
        """[located, x, y, w, h, score]"""
        return [self.located, *self.region.to_list(), float(self.score)]


def check_method(method: int, masked: bool) -> MatchMethod:
    """Validate the matching method, raising ParameterError if unsupported."""
    try:
        resolved = MatchMethod(method)
    except ValueError:
        raise ParameterError(REASON_METHOD_ERROR) from None
    if masked and resolved not in MASKED_METHODS:
        allowed = ", ".join(str(int(m)) for m in sorted(MASKED_METHODS))
        raise ParameterError(f"mask requires method {allowed}")
    return resolved


def _ensure_sizes(haystack: np.ndarray, needle: np.ndarray) -> None:
    hb, wb = haystack.shape[:2]
    hs, ws = needle.shape[:2]
    if hs > hb or ws > wb:
        raise ParameterError(REASON_TEMPLATE_SIZE)


def match_pair(
    haystack: np.ndarray,
    needle: np.ndarray,
    method: int,
    mask: Optional[np.ndarray] = None,
) -> Match:
    """Best match of needle in haystack, score mapped into [0, 1]."""
    _ensure_sizes(haystack, needle)
    if mask is not None:
        res = cv2.matchTemplate(haystack, needle, method, mask=mask)
        # fully masked windows divide by zero
        res = np.nan_to_num(res, nan=-1.0, posinf=-1.0, neginf=-1.0)
    else:
        res = cv2.matchTemplate(haystack, needle, method)
    _, max_val, _, max_loc = cv2.minMaxLoc(res)
    h, w = needle.shape[:2]
    score = (min(max(float(max_val), -1.0), 1.0) + 1.0) / 2.0
    return Match(x=int(max_loc[0]), y=int(max_loc[1]), w=w, h=h, score=score)


def _fit_mask(mask: np.ndarray, needle: np.ndarray) -> np.ndarray:
    w, h = size_of(needle)
    if size_of(mask) != (w, h):
        mask = cv2.resize(mask, (w, h), interpolation=cv2.INTER_NEAREST)
    if mask.ndim == 3 and mask.shape[2] != needle.shape[2]:
        mask = cv2.cvtColor(mask, cv2.COLOR_BGR2GRAY)
    return mask


def load_mask(ref: MaskRef) -> Optional[np.ndarray]:
    """Load an explicit mask image. "auto" and None yield None."""
    if ref is None or (isinstance(ref, str) and ref in ("", AUTO_MASK)):
        return None
    if isinstance(ref, np.ndarray):
        return to_bgr(ref)
    mask = read_image(ref, cv2.IMREAD_COLOR)
    if mask is None:
        raise ResourceError(REASON_LOAD_MASK)
    return mask


class _SearchState:
    """Index cursor and best match shared by the search threads of one call.

    The cursor and the best match have separate locks, so claiming the next
    index never waits on a compare-and-replace.
    """

    def __init__(self, total: int):
        self.total = total
        self._cursor = 0
        self._cursor_lock = threading.Lock()
        self._best_lock = threading.Lock()
        self._stopped = threading.Event()
        self.best: Optional[LocateResult] = None

    def claim(self) -> Optional[int]:
        if self._stopped.is_set():
            return None
        with self._cursor_lock:
            if self._cursor >= self.total:
                return None
            index = self._cursor
            self._cursor += 1
            return index

    def offer(self, result: LocateResult, stop_at: Optional[float]) -> None:
        with self._best_lock:
            # 分数相同时先写入者胜出
            if self.best is None or result.score > self.best.score:
                self.best = result
        if stop_at is not None and result.score >= stop_at:
            self._stopped.set()

    def abort(self) -> None:
        self._stopped.set()


class MatchEngine:
    """Finds the best-scoring candidate for one locate call.

    Instances are cheap and hold no state between calls; the search pool is
    created and joined inside ``locate``.
    """

    def __init__(self, threads: int = DEFAULT_SEARCH_THREADS, debug_dir: Optional[str] = None):
        self.threads = max(1, int(threads))
        self.debug_dir = debug_dir
        self._log = logger.bind(module="MatchEngine")

    def locate(
        self,
        source: np.ndarray,
        candidates: Sequence[CandidateRef],
        *,
        mode: LocateMode = LocateMode.CANDIDATES_IN_SOURCE,
        method: int = MatchMethod.CCOEFF_NORMED,
        mask: MaskRef = None,
        confidence: float = 0.0,
        first_match: bool = False,
    ) -> Optional[LocateResult]:
        """Search all candidates and return the best match.

        Returns None when no candidate reaches ``confidence``. With
        ``first_match`` the search stops claiming new candidates once any
        candidate reaches ``confidence``.
        """
        auto_mask = isinstance(mask, str) and mask == AUTO_MASK
        explicit_mask = load_mask(mask)
        match_method = check_method(method, masked=auto_mask or explicit_mask is not None)
        if not candidates:
            return None

        if mode == LocateMode.CANDIDATES_IN_SOURCE:
            haystack = to_bgr(source)
            search = functools.partial(
                self._search_in_source, haystack, candidates,
                method=match_method, explicit_mask=explicit_mask, auto_mask=auto_mask,
            )
        else:
            needle, needle_mask = self._prepare_needle(source, explicit_mask, auto_mask)
            search = functools.partial(
                self._search_in_candidate, needle, needle_mask, candidates, method=match_method,
            )

        state = _SearchState(len(candidates))
        stop_at = float(confidence) if first_match else None

        def worker() -> None:
            while True:
                index = state.claim()
                if index is None:
                    return
                try:
                    result = search(index)
                except Exception:
                    state.abort()
                    raise
                state.offer(result, stop_at)

        workers = min(self.threads, len(candidates))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="locate") as pool:
            futures = [pool.submit(worker) for _ in range(workers)]
        # executor 退出时所有搜索线程已 join，再抛出首个异常
        for future in futures:
            future.result()

        best = state.best
        if best is None or best.score < confidence:
            self._log.debug(
                "locate failed: best={} confidence={}",
                None if best is None else round(best.score, 4),
                confidence,
            )
            return None
        return best

    def _dump_mask(self, rgb: np.ndarray, mask: np.ndarray) -> None:
        if self.debug_dir:
            write_image(str(Path(self.debug_dir) / "rgb.png"), rgb)
            write_image(str(Path(self.debug_dir) / "mask.png"), mask)

    def _prepare_needle(self, source: np.ndarray, explicit_mask, auto_mask: bool):
        if auto_mask and has_alpha(source):
            self._log.debug("using alpha channel of source as mask")
            needle, mask = split_alpha(source)
            self._dump_mask(needle, mask)
            return needle, mask
        needle = to_bgr(source)
        if explicit_mask is not None:
            return needle, _fit_mask(explicit_mask, needle)
        return needle, None

    def _load_candidate(self, ref: CandidateRef, flags: int) -> np.ndarray:
        if isinstance(ref, np.ndarray):
            return ref
        img = read_image(ref, flags)
        if img is None:
            self._log.error("can't load the image: {}", ref)
            raise ResourceError(REASON_LOAD_CANDIDATE)
        return img

    def _search_in_source(self, haystack, candidates, index, *, method, explicit_mask, auto_mask) -> LocateResult:
        flags = cv2.IMREAD_UNCHANGED if auto_mask else cv2.IMREAD_COLOR
        candidate = self._load_candidate(candidates[index], flags)
        mask = None
        if auto_mask and has_alpha(candidate):
            self._log.debug("using alpha channel of candidate #{} as mask", index)
            needle, mask = split_alpha(candidate)
            self._dump_mask(needle, mask)
        else:
            needle = to_bgr(candidate)
            if explicit_mask is not None:
                mask = _fit_mask(explicit_mask, needle)
        m = match_pair(haystack, needle, method, mask)
        self._log.debug("candidate #{}: x={} y={} score={:.4f}", index, m.x, m.y, m.score)
        return LocateResult(located=index, region=Rect(m.x, m.y, m.w, m.h), score=m.score)

    def _search_in_candidate(self, needle, mask, candidates, index, *, method) -> LocateResult:
        haystack = to_bgr(self._load_candidate(candidates[index], cv2.IMREAD_COLOR))
        m = match_pair(haystack, needle, method, mask)
        self._log.debug("candidate #{}: x={} y={} score={:.4f}", index, m.x, m.y, m.score)
        return LocateResult(located=index, region=Rect(m.x, m.y, m.w, m.h), score=m.score)


__all__ = [
    "DEFAULT_SEARCH_THREADS",
    "Match",
    "LocateResult",
    "MatchEngine",
    "check_method",
    "match_pair",
    "load_mask",
]
