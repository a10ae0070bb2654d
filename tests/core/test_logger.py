import inspect
from uuid import uuid4

import pytest


def _flush_loguru(logger_module) -> None:
    complete_result = logger_module.logger.complete()
    if inspect.isawaitable(complete_result):
        iterator = complete_result.__await__()
        while True:
            try:
                next(iterator)
            except StopIteration:
                break


def _latest_log_file(log_dir, pattern):
    files = sorted(log_dir.glob(pattern))
    assert files, f"missing log file pattern: {pattern}"
    return files[-1]


@pytest.fixture()
def configured_logger(tmp_path):
    from visionworker.core.config import settings
    import visionworker.core.logger as logger_module

    original = {
        "log_level": settings.log_level,
        "log_path": settings.log_path,
        "log_retention_days": settings.log_retention_days,
        "log_console_enabled": settings.log_console_enabled,
        "log_file_enabled": settings.log_file_enabled,
    }

    settings.log_level = "INFO"
    settings.log_path = str(tmp_path)
    settings.log_retention_days = 3
    settings.log_console_enabled = False
    settings.log_file_enabled = True
    logger_module.setup_logger(force=True)

    try:
        yield logger_module, tmp_path
    finally:
        for key, value in original.items():
            setattr(settings, key, value)
        logger_module.setup_logger(force=True)


def test_file_output_written(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"file-output-{uuid4()}"

    logger_module.logger.info(message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "worker_*.log").read_text(encoding="utf-8")
    assert message in content


def test_errors_also_go_to_error_log(configured_logger):
    logger_module, log_dir = configured_logger
    info_message = f"info-{uuid4()}"
    error_message = f"error-{uuid4()}"

    logger_module.logger.info(info_message)
    logger_module.logger.bind(module="WorkerPool").error(error_message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "error_*.log").read_text(encoding="utf-8")
    assert error_message in content
    assert info_message not in content


def test_results_never_logged_to_stdout(configured_logger, capsys):
    from visionworker.core.config import settings

    logger_module, _ = configured_logger
    settings.log_console_enabled = True
    logger_module.setup_logger(force=True)

    logger_module.logger.warning("console-line")
    _flush_loguru(logger_module)

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "console-line" in captured.err


def test_setup_is_idempotent_without_force(configured_logger):
    logger_module, _ = configured_logger

    assert logger_module.setup_logger() is logger_module.logger
