"""
核心配置模块
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """系统配置"""

    model_config = SettingsConfigDict(
        env_prefix="VISIONWORKER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # OCR
    lang: str = Field(default="ch")
    data_dir: str = Field(default="./inference")
    device: str = Field(default="cpu")
    det: bool = Field(default=True)
    rec: bool = Field(default=True)
    cls: bool = Field(default=False)

    # Worker
    workers_num: int = Field(default=1, ge=1)
    locate_threads: int = Field(default=4, ge=1)
    queue_poll_interval: float = Field(default=0.01, gt=0)

    # 调试输出
    output: str = Field(default="./output")
    visualize: bool = Field(default=False)
    benchmark: bool = Field(default=False)

    # 日志
    log_level: str = Field(default="INFO")
    log_path: str = Field(default="./logs")
    log_retention_days: int = Field(default=3)
    log_console_enabled: bool = Field(default=True)
    log_file_enabled: bool = Field(default=False)


@dataclass(frozen=True)
class ModelResource:
    """单个语言的模型资源（相对 data_dir 的路径）"""

    det_model: str
    rec_model: str


# 见 paddleocr 各语言模型命名
_BUILTIN_RESOURCES: Dict[str, ModelResource] = {
    "ch": ModelResource("models/ch_PP-OCRv4_det_infer", "models/ch_PP-OCRv4_rec_infer"),
    "en": ModelResource("models/en_PP-OCRv3_det_infer", "models/en_PP-OCRv4_rec_infer"),
    "korean": ModelResource("models/Multilingual_PP-OCRv3_det_infer", "models/korean_PP-OCRv4_rec_infer"),
    "japan": ModelResource("models/Multilingual_PP-OCRv3_det_infer", "models/japan_PP-OCRv4_rec_infer"),
    "chinese_cht": ModelResource("models/Multilingual_PP-OCRv3_det_infer", "models/chinese_cht_PP-OCRv3_rec_infer"),
    "te": ModelResource("models/Multilingual_PP-OCRv3_det_infer", "models/te_PP-OCRv4_rec_infer"),
    "ka": ModelResource("models/Multilingual_PP-OCRv3_det_infer", "models/ka_PP-OCRv4_rec_infer"),
    "latin": ModelResource("models/Multilingual_PP-OCRv3_det_infer", "models/latin_PP-OCRv3_rec_infer"),
    "arabic": ModelResource("models/Multilingual_PP-OCRv3_det_infer", "models/arabic_PP-OCRv4_rec_infer"),
    "cyrillic": ModelResource("models/Multilingual_PP-OCRv3_det_infer", "models/cyrillic_PP-OCRv3_rec_infer"),
    "devanagari": ModelResource("models/Multilingual_PP-OCRv3_det_infer", "models/devanagari_PP-OCRv4_rec_infer"),
}


class LanguageResources:
    """语言 -> 模型资源的只读注册表。

    启动时构建一次，显式传入 EngineRegistry；测试可直接构造合成注册表。
    """

    def __init__(self, data_dir: str, resources: Optional[Mapping[str, ModelResource]] = None):
        self.data_dir = Path(data_dir)
        self._resources = MappingProxyType(dict(resources if resources is not None else _BUILTIN_RESOURCES))

    def __contains__(self, lang: object) -> bool:
        return lang in self._resources

    def det_model_dir(self, lang: str) -> Path:
        return self.data_dir / self._resources[lang].det_model

    def rec_model_dir(self, lang: str) -> Path:
        return self.data_dir / self._resources[lang].rec_model


def missing_assets(resources: LanguageResources, lang: str) -> list[str]:
    """返回该语言缺失的模型目录"""
    return [
        str(p)
        for p in (resources.det_model_dir(lang), resources.rec_model_dir(lang))
        if not p.exists()
    ]


def validate_startup(cfg: Settings, resources: LanguageResources) -> None:
    """检查默认语言是否受支持，并创建调试输出目录。"""
    if cfg.lang not in resources:
        raise ConfigurationError(f"unsupported lang: {cfg.lang}")
    Path(cfg.output).mkdir(parents=True, exist_ok=True)


# 全局配置实例（main 启动时用命令行参数覆盖）
settings = Settings()
