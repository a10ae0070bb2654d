import pytest

from conftest import FakeEngineFactory
from visionworker.core.errors import ConfigurationError, ResourceError
from visionworker.modules.ocr import EngineRegistry


def test_default_engine_built_eagerly(cfg, resources):
    factory = FakeEngineFactory()

    registry = EngineRegistry(cfg, resources, factory=factory)

    assert factory.created == ["ch"]
    assert registry.default.lang == "ch"


def test_unknown_language_falls_back_to_default(cfg, resources):
    factory = FakeEngineFactory()
    registry = EngineRegistry(cfg, resources, factory=factory)

    assert registry.engine_for("klingon") is registry.default
    assert registry.engine_for("") is registry.default
    assert factory.created == ["ch"]


def test_known_language_built_once_and_cached(cfg, resources):
    factory = FakeEngineFactory()
    registry = EngineRegistry(cfg, resources, factory=factory)

    first = registry.engine_for("en")
    second = registry.engine_for("en")

    assert first is second
    assert first.lang == "en"
    assert factory.created == ["ch", "en"]


def test_lazy_engine_failure_is_a_task_error(cfg, resources):
    registry = EngineRegistry(cfg, resources, factory=FakeEngineFactory(fail_langs={"en"}))

    with pytest.raises(ResourceError) as exc:
        registry.engine_for("en")

    assert exc.value.reason == "engine unavailable: en"
    # 默认引擎不受影响
    assert registry.engine_for("ch") is registry.default


def test_default_engine_failure_is_fatal(cfg, resources):
    with pytest.raises(ConfigurationError):
        EngineRegistry(cfg, resources, factory=FakeEngineFactory(fail_langs={"ch"}))


def test_paddle_factory_reports_missing_assets(cfg, resources):
    with pytest.raises(ConfigurationError) as exc:
        EngineRegistry(cfg, resources)

    assert "missing model assets" in str(exc.value)
