import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from glucosim.core import constants


class EngineConfig(BaseModel):
    baseline_mgdl: float = Field(default=constants.BASELINE_MGDL, ge=40, le=400)
    endogenous_mgdl_per_hour: float = Field(default=constants.ENDOGENOUS_MGDL_PER_HOUR, ge=0)
    horizon_hours: int = Field(default=constants.HORIZON_HOURS, ge=1, le=48)
    step_minutes: int = Field(default=constants.STEP_MINUTES, ge=1, le=60)
    min_mgdl: float = Field(default=constants.ENGINE_MIN_MGDL)
    max_mgdl: float = Field(default=constants.ENGINE_MAX_MGDL)
    lookback_hours: int = Field(default=constants.MAX_LOOKBACK_HOURS, ge=1)

    @model_validator(mode="after")
    def _check_bounds(self) -> "EngineConfig":
        if self.min_mgdl >= self.max_mgdl:
            raise ValueError("min_mgdl must be lower than max_mgdl")
        return self

    @property
    def steps(self) -> int:
        return (self.horizon_hours * 60) // self.step_minutes

    @property
    def endogenous_per_step(self) -> float:
        return self.endogenous_mgdl_per_hour * self.step_minutes / 60.0


class NoiseConfig(BaseModel):
    amplitude: float = Field(default=constants.NOISE_AMPLITUDE, ge=0)
    octaves: int = Field(default=constants.NOISE_OCTAVES, ge=0, le=11)
    persistence: float = Field(default=constants.NOISE_PERSISTENCE, ge=0)


class FallbackConfig(BaseModel):
    amplitude_mgdl: float = Field(default=constants.FALLBACK_AMPLITUDE_MGDL, ge=0)
    min_mgdl: float = Field(
        default=constants.FALLBACK_MIN_MGDL, ge=constants.STORAGE_MIN_MGDL, le=constants.STORAGE_MAX_MGDL
    )
    max_mgdl: float = Field(
        default=constants.FALLBACK_MAX_MGDL, ge=constants.STORAGE_MIN_MGDL, le=constants.STORAGE_MAX_MGDL
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> "FallbackConfig":
        if self.min_mgdl >= self.max_mgdl:
            raise ValueError("min_mgdl must be lower than max_mgdl")
        return self


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)


class DataConfig(BaseModel):
    data_dir: Path = Field(default=Path("data"))

    @field_validator("data_dir", mode="before")
    def _expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser()


class Settings(BaseModel):
    engine: EngineConfig = Field(default_factory=EngineConfig)
    noise: NoiseConfig = Field(default_factory=NoiseConfig)
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    data: DataConfig = Field(default_factory=DataConfig)


DEFAULT_CONFIG_PATH = Path(os.environ.get("CONFIG_PATH", "config/config.json"))

# (env var, section, key, cast)
_ENV_OVERRIDES = [
    ("GLUCOSIM_BASELINE_MGDL", "engine", "baseline_mgdl", float),
    ("GLUCOSIM_ENDOGENOUS_MGDL_PER_HOUR", "engine", "endogenous_mgdl_per_hour", float),
    ("GLUCOSIM_LOOKBACK_HOURS", "engine", "lookback_hours", int),
    ("GLUCOSIM_NOISE_AMPLITUDE", "noise", "amplitude", float),
    ("GLUCOSIM_NOISE_OCTAVES", "noise", "octaves", int),
    ("GLUCOSIM_NOISE_PERSISTENCE", "noise", "persistence", float),
    ("GLUCOSIM_FALLBACK_AMPLITUDE_MGDL", "fallback", "amplitude_mgdl", float),
    ("SERVER_HOST", "server", "host", str),
    ("SERVER_PORT", "server", "port", int),
    ("DATA_DIR", "data", "data_dir", str),
]


def _load_file_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Invalid JSON configuration at {path}") from exc


def _load_env() -> dict[str, Any]:
    env_config: dict[str, Any] = {}
    for var, section, key, cast in _ENV_OVERRIDES:
        raw = os.environ.get(var)
        if raw:
            try:
                env_config.setdefault(section, {})[key] = cast(raw)
            except ValueError as exc:
                raise RuntimeError(f"Invalid value for {var}: {raw!r}") from exc
    return env_config


def merge_settings(env_config: dict[str, Any], file_config: dict[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for section in ("engine", "noise", "fallback", "server", "data"):
        merged[section] = {**file_config.get(section, {}), **env_config.get(section, {})}
    return merged


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    env_config = _load_env()
    config_path = Path(os.environ.get("CONFIG_PATH", str(DEFAULT_CONFIG_PATH)))
    file_config = _load_file_config(config_path)
    merged = merge_settings(env_config=env_config, file_config=file_config)
    try:
        return Settings.model_validate(merged)
    except ValidationError as exc:
        raise RuntimeError(f"Configuration error: {exc}") from exc


__all__ = ["Settings", "EngineConfig", "NoiseConfig", "FallbackConfig", "get_settings"]
