import json

import pytest

from visionworker.core.constants import TaskCommand
from visionworker.core.errors import TaskParseError
from visionworker.modules.tasks.types import LocateTask, OcrTask, parse_content, parse_task_line


def test_parse_task_line_with_string_content():
    task = parse_task_line('{"id": "1", "command": "ocr", "content": "{\\"lang\\": \\"en\\"}"}')

    assert task.id == "1"
    assert task.command == "ocr"
    assert parse_content(OcrTask, task.content).lang == "en"


def test_parse_task_line_with_object_content_and_numeric_id():
    task = parse_task_line(json.dumps({"id": 7, "command": "locate", "content": {"images": ["a.png"]}}))

    assert task.id == "7"
    t = parse_content(LocateTask, task.content)
    assert t.images == ["a.png"]
    assert t.method == 5 and t.confidence == 0.0 and t.mode == ""


@pytest.mark.parametrize(
    "line",
    ["not json", "[1, 2]", '{"id": "1"}', '{"id": null, "command": "ocr"}', '{"id": "1", "command": 3}'],
)
def test_malformed_lines_are_dropped(line):
    assert parse_task_line(line) is None


def test_done_sentinel_without_id():
    task = parse_task_line('{"command": "DONE"}')

    assert task.command == "DONE"


@pytest.mark.parametrize("command", ["pixel", "ocr", "teleport"])
def test_line_without_id_cannot_be_answered(command):
    line = json.dumps({"command": command, "content": json.dumps({"x": 1, "y": 1})})

    assert parse_task_line(line) is None


def test_parse_content_errors():
    with pytest.raises(TaskParseError) as exc:
        parse_content(OcrTask, '{"region": [0, 0, 1, 1]}')

    assert exc.value.reason == "invalid task content"


def test_command_aliases():
    assert TaskCommand.parse("recognize") is TaskCommand.OCR
    assert TaskCommand.parse("sample_pixel") is TaskCommand.PIXEL
    assert TaskCommand.parse("screenshot") is TaskCommand.SCREENSHOT
    assert TaskCommand.parse("nope") is None
