"""評価エンジン設定 (pydantic BaseModel) と YAML ローダー"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import FeatureFlagError, FeatureFlagErrorCodes
from .limits import DEFAULT_MAX_DEPTH, DEFAULT_MAX_NODES
from .models import FlagRecord
from .wire import parse_flag_record


class LimitsSection(BaseModel):
    """評価前に適用するルールツリーの上限。"""

    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1)
    max_nodes: int = Field(default=DEFAULT_MAX_NODES, ge=1)


class LogSection(BaseModel):
    """ログ設定。

    ライブラリ自身は読まない。ホストが ``new_logger(**config.log.model_dump())`` に渡す。
    """

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class EngineConfig(BaseModel):
    """評価エンジン設定全体。"""

    limits: LimitsSection = Field(default_factory=LimitsSection)
    log: LogSection = Field(default_factory=LogSection)
    enforce_environment: bool = False


def _read_yaml(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FeatureFlagError(
            code=FeatureFlagErrorCodes.READ_FILE,
            message=f"Failed to read file: {path}",
            cause=e,
        ) from e
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise FeatureFlagError(
            code=FeatureFlagErrorCodes.PARSE_YAML,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e


def load_config(path: Path) -> EngineConfig:
    """設定ファイルを読み込んで EngineConfig を返す。空ファイルはデフォルト値。"""
    data = _read_yaml(path) or {}
    try:
        return EngineConfig.model_validate(data)
    except ValidationError as e:
        raise FeatureFlagError(
            code=FeatureFlagErrorCodes.VALIDATION,
            message=f"Config validation failed: {e}",
            cause=e,
        ) from e


def load_flag_records(path: Path, max_depth: int = DEFAULT_MAX_DEPTH) -> list[FlagRecord]:
    """ワイヤ形式のフラグレコードを並べた YAML ファイルを読み込む。

    例::

        - key: beta
          tenantId: acme
          environment: PROD
          enabled: true
          rules: {type: percentage, value: 25}
    """
    data = _read_yaml(path) or []
    if not isinstance(data, list):
        raise FeatureFlagError(
            code=FeatureFlagErrorCodes.VALIDATION,
            message=f"Flag file must contain a list of records: {path}",
        )
    return [parse_flag_record(item, max_depth=max_depth) for item in data]
