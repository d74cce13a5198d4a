from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import yaml
from dotenv import load_dotenv

from sloppyview.exceptions.errors import ConfigError

load_dotenv()

def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)

def _env_bool(key: str, default: bool = False) -> bool:
    val = os.environ.get(key)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "y", "on")

def _env_int(key: str, default: int) -> int:
    val = os.environ.get(key)
    if val is None or not val.strip():
        return int(default)
    try:
        return int(val)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {val!r}") from e

@dataclass(frozen=True)
class Settings:
    env: str = "dev"
    log_level: str = "INFO"
    log_file: str = "logs/sloppyview.log"

    # Token budget passed to the inference binary with -n
    inference_max_tokens: int = 128

    # Warm-up call after each successful configure
    prime_on_configure: bool = True
    prime_max_tokens: int = 128

def load_settings(cfg_path: Optional[str] = None) -> Settings:
    app_env = _env("APP_ENV", "dev")
    path = Path(cfg_path) if cfg_path else Path("config") / f"{app_env}.yaml"
    if not path.exists():
        raise ConfigError(f"Config not found: {path}")

    try:
        cfg: Dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    app_cfg = cfg.get("app") or {}
    inf_cfg = cfg.get("inference") or {}
    defaults = Settings()

    return Settings(
        env=app_env,
        log_level=_env("LOG_LEVEL", str(app_cfg.get("log_level", defaults.log_level))),
        log_file=_env("LOG_FILE", str(app_cfg.get("log_file", defaults.log_file))),
        inference_max_tokens=_env_int(
            "INFERENCE_MAX_TOKENS", inf_cfg.get("max_tokens", defaults.inference_max_tokens)
        ),
        prime_on_configure=_env_bool(
            "PRIME_ON_CONFIGURE", bool(inf_cfg.get("prime_on_configure", defaults.prime_on_configure))
        ),
        prime_max_tokens=_env_int(
            "PRIME_MAX_TOKENS", inf_cfg.get("prime_max_tokens", defaults.prime_max_tokens)
        ),
    )
