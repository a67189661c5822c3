from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from boshpush import ARGS_DIR

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = ARGS_DIR / "bridge.yaml"


# =============================================================================
# BridgeConfig (args/bridge.yaml)
# =============================================================================

class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=2020, ge=1, le=65535)


class PayloadConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    max_bytes: int = Field(default=256, ge=32)
    sound: Optional[str] = Field(default="ping.aiff")


class ApnsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    topic: str = Field(default="")
    cert_file: Optional[str] = Field(default="cert.pem")
    key_file: Optional[str] = Field(default="key.pem")
    use_sandbox: bool = Field(default=False)
    timeout_seconds: float = Field(default=10.0, gt=0)


class ExpoConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    url: str = Field(default="https://exp.host/--/api/v2/push/send")
    timeout_seconds: float = Field(default=10.0, gt=0)


class PushConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    transport: Literal["apns", "expo", "log"] = Field(default="log")
    apns: ApnsConfig = Field(default_factory=ApnsConfig)
    expo: ExpoConfig = Field(default_factory=ExpoConfig)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    level: str = Field(default="INFO")
    json_output: bool = Field(default=False, alias="json")


class BridgeConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    server: ServerConfig = Field(default_factory=ServerConfig)
    payload: PayloadConfig = Field(default_factory=PayloadConfig)
    push: PushConfig = Field(default_factory=PushConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def config_path_from_env() -> Path:
    override = os.environ.get("BOSHPUSH_CONFIG")
    return Path(override) if override else DEFAULT_CONFIG_PATH


def load_config(path: Path | str | None = None) -> BridgeConfig:
    """
    Load and validate the bridge configuration.

    Falls back to defaults when the file is missing or invalid.
    """
    yaml_path = Path(path) if path is not None else config_path_from_env()

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}

        return BridgeConfig.model_validate(raw)
    except Exception as e:
        logger.warning(f"Config validation failed for {yaml_path}: {e}, using defaults")
        return BridgeConfig()
