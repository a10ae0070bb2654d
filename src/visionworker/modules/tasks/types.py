"""
Task envelope and per-command task content.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from ...core.constants import DONE_COMMAND, REASON_INVALID_CONTENT
from ...core.errors import TaskParseError


@dataclass(frozen=True)
class Task:
    """One input line: {id, command, content}."""

    id: str
    command: str
    content: str = ""


def parse_task_line(line: str) -> Optional[Task]:
    """Parse an input line into a Task envelope.

    Returns None for lines that are not a JSON object with ``command`` and
    ``id``; such lines cannot be answered and are dropped by the caller.
    The "DONE" sentinel may omit ``id``.
    """
    try:
        data = json.loads(line)
    except ValueError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("command"), str):
        return None
    if "id" not in data and data["command"] != DONE_COMMAND:
        return None
    task_id = data.get("id", "")
    if isinstance(task_id, bool) or not isinstance(task_id, (str, int)):
        return None
    content = data.get("content", "")
    if not isinstance(content, str):
        content = json.dumps(content, ensure_ascii=False)
    return Task(id=str(task_id), command=data["command"], content=content)


class OcrTask(BaseModel):
    lang: str
    image: str = ""
    region: List[int] = Field(default_factory=list)
    actions: List[Any] = Field(default_factory=list)
    det: Optional[bool] = None
    rec: Optional[bool] = None
    cls: Optional[bool] = None


class LocateTask(BaseModel):
    images: List[str]
    image: str = ""
    region: List[int] = Field(default_factory=list)
    confidence: float = 0.0
    actions: List[Any] = Field(default_factory=list)
    mode: str = ""
    mask: str = ""
    method: int = 5  # cv2.TM_CCOEFF_NORMED
    first_match: bool = False


class PixelTask(BaseModel):
    x: int
    y: int


class ScreenshotTask(BaseModel):
    region: List[int]
    path: str


M = TypeVar("M", bound=BaseModel)


def parse_content(model: Type[M], content: str) -> M:
    """Validate task content JSON against model; TaskParseError on failure."""
    try:
        return model.model_validate_json(content or "{}")
    except ValidationError as e:
        raise TaskParseError(REASON_INVALID_CONTENT) from e


__all__ = [
    "Task",
    "parse_task_line",
    "OcrTask",
    "LocateTask",
    "PixelTask",
    "ScreenshotTask",
    "parse_content",
]
