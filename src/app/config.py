"""
Server configuration.

우선순위: CLI 인자 > 환경 변수(DOTLESS_*) > yaml(server: 섹션) > 기본값

yaml 예시 (default.yaml):
    server:
      static_root: ./static
      port: 9200
      hidden_marker: "."
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from src.domain.constants import (
    CONFIG_FILENAME,
    CONFIG_SECTION,
    ENV_PREFIX,
    MAX_PORT,
)
from src.domain.errors import ConfigurationError, ErrorCodes
from src.domain.schemas import ServerConfig

# yaml/env 키 → 변환 함수
_FIELD_TYPES: dict[str, Any] = {
    "static_root": Path,
    "host": str,
    "port": int,
    "hidden_marker": str,
    "readdir_batch_size": int,
    "verbosity": int,
}


def default_config_path() -> Path:
    """프로젝트 루트의 default.yaml."""
    return Path(__file__).parent.parent.parent / CONFIG_FILENAME


def load_config(config_path: Path | None = None) -> dict:
    """
    설정 파일 로드 (server: 섹션).

    파일이 없으면 빈 dict. 파싱 실패는 ConfigurationError.
    """
    if config_path is None:
        config_path = default_config_path()

    if not config_path.exists():
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            data: dict[Any, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            ErrorCodes.CONFIG_FILE_CORRUPT, path=str(config_path), error=str(e)
        ) from e

    section = data.get(CONFIG_SECTION, {}) if isinstance(data, dict) else {}
    return section or {}


def config_from_env(environ: Mapping[str, str] | None = None) -> dict:
    """DOTLESS_STATIC_ROOT, DOTLESS_PORT ... → dict (빈 값 무시)."""
    if environ is None:
        environ = os.environ

    values = {}
    for key in _FIELD_TYPES:
        value = environ.get(f"{ENV_PREFIX}{key.upper()}")
        if value:
            values[key] = value
    return values


def _coerce(key: str, value: Any) -> Any:
    try:
        return _FIELD_TYPES[key](value)
    except (TypeError, ValueError) as e:
        code = (
            ErrorCodes.CONFIG_INVALID_PORT
            if key == "port"
            else ErrorCodes.CONFIG_INVALID_VALUE
        )
        raise ConfigurationError(code, field=key, value=value) from e


def build_config(*sources: Mapping[str, Any]) -> ServerConfig:
    """
    여러 설정 소스 병합 (앞쪽이 낮은 우선순위).

    None/빈 문자열은 건너뜀 → argparse 기본값 None이나 --static "" 이 하위 소스를 덮지 않음.

    Usage:
        config = build_config(load_config(), config_from_env(), cli_values)
    """
    merged: dict[str, Any] = {}
    for source in sources:
        for key, value in source.items():
            if key in _FIELD_TYPES and value not in (None, ""):
                merged[key] = _coerce(key, value)
    return ServerConfig(**merged)


def validate_config(config: ServerConfig) -> ServerConfig:
    """
    시작 전 설정 검증.

    Raises:
        ConfigurationError: served root 누락/디렉터리 아님, 포트/마커/배치 크기 오류
    """
    if config.static_root is None:
        raise ConfigurationError(
            ErrorCodes.CONFIG_STATIC_ROOT_MISSING,
            hint="set --static, DOTLESS_STATIC_ROOT or server.static_root",
        )

    if not config.static_root.is_dir():
        raise ConfigurationError(
            ErrorCodes.CONFIG_STATIC_ROOT_NOT_DIR, static_root=str(config.static_root)
        )

    if not 0 <= config.port <= MAX_PORT:
        raise ConfigurationError(ErrorCodes.CONFIG_INVALID_PORT, port=config.port)

    if len(config.hidden_marker) != 1:
        raise ConfigurationError(
            ErrorCodes.CONFIG_INVALID_MARKER, hidden_marker=config.hidden_marker
        )

    if config.readdir_batch_size <= 0:
        raise ConfigurationError(
            ErrorCodes.CONFIG_INVALID_BATCH_SIZE,
            readdir_batch_size=config.readdir_batch_size,
        )

    return config
