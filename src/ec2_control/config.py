from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

DEFAULT_REGION = "us-west-1"
DEFAULT_API_VERSION = "2016-11-15"
DEFAULT_CONFIG_PATH = Path("ec2-control.yaml")


@dataclass(slots=True, frozen=True)
class AwsCredentials:
    access_key_id: str
    secret_access_key: str
    session_token: str | None = None

    def __repr__(self) -> str:
        return f"AwsCredentials(access_key_id={self.access_key_id!r}, secret_access_key='***')"


@dataclass(slots=True, frozen=True)
class ControllerConfig:
    instance_id: str
    region: str = DEFAULT_REGION
    api_version: str = DEFAULT_API_VERSION
    profile: str | None = None
    credentials: AwsCredentials | None = None
    verify_credentials: bool = False

    def validate(self) -> None:
        if not self.instance_id or not self.instance_id.strip():
            raise ValueError("instance_id must be a non-empty string")

    def with_overrides(self, **values: Any) -> ControllerConfig:
        overrides = {key: value for key, value in values.items() if value not in (None, "")}
        return replace(self, **overrides)


def load_controller_config(config_path: str | Path | None = None) -> ControllerConfig:
    path = Path(config_path).expanduser() if config_path else DEFAULT_CONFIG_PATH
    if not path.is_file():
        return ControllerConfig(instance_id="")

    with path.open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}

    return ControllerConfig(
        instance_id=_coerce_str(_safe_mapping_get(loaded, "instance_id")) or "",
        region=_coerce_str(_safe_mapping_get(loaded, "region")) or DEFAULT_REGION,
        api_version=_coerce_str(_safe_mapping_get(loaded, "api_version")) or DEFAULT_API_VERSION,
        profile=_coerce_str(_safe_mapping_get(loaded, "profile")),
        credentials=_parse_credentials(_safe_mapping_get(loaded, "credentials")),
        verify_credentials=_safe_mapping_get(loaded, "verify_credentials") is True,
    )


def _parse_credentials(value: Any) -> AwsCredentials | None:
    access_key_id = _coerce_str(_safe_mapping_get(value, "access_key_id"))
    secret_access_key = _coerce_str(_safe_mapping_get(value, "secret_access_key"))
    if not access_key_id or not secret_access_key:
        return None
    return AwsCredentials(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=_coerce_str(_safe_mapping_get(value, "session_token")),
    )


def _coerce_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _safe_mapping_get(mapping: Any, key: str, fallback: Any = None) -> Any:
    try:
        return mapping[key]
    except (KeyError, TypeError, IndexError):
        return fallback
