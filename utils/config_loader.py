"""
Configuration Loader with environment overrides
Builds an EngineConfig from defaults, a .env file and FITNESS_* environment variables
"""

import os
from dataclasses import fields, replace
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv
from loguru import logger

from models.config import EngineConfig, ScoringWeights

ENV_PREFIX = "FITNESS_"
WEIGHT_PREFIX = ENV_PREFIX + "WEIGHT_"


def _env_float(key: str, default: float) -> float:
    v = os.getenv(key)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        logger.warning(f"Invalid value for {key}: {v!r}; using default {default}")
        return default


def _env_int(key: str, default: int) -> int:
    v = os.getenv(key)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        logger.warning(f"Invalid value for {key}: {v!r}; using default {default}")
        return default


def env_overrides(prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    """
    Collect EngineConfig field overrides from the environment.

    Each numeric field maps to PREFIX + upper-cased field name, e.g.
    `rsi_period` -> FITNESS_RSI_PERIOD. Unset variables are skipped.
    """
    overrides = {}
    for f in fields(EngineConfig):
        if f.name == 'weights':
            continue
        key = prefix + f.name.upper()
        if os.getenv(key) in (None, ""):
            continue
        default = getattr(EngineConfig, f.name)
        if isinstance(default, int):
            value = _env_int(key, default)
        else:
            value = _env_float(key, default)
        if value != default:
            overrides[f.name] = value
    return overrides


def _load_weights() -> ScoringWeights:
    defaults = ScoringWeights()
    values = {
        f.name: _env_float(WEIGHT_PREFIX + f.name.upper(), getattr(defaults, f.name))
        for f in fields(ScoringWeights)
    }
    if values == defaults.as_dict():
        return defaults
    try:
        return ScoringWeights(**values)
    except ValueError as e:
        logger.warning(f"Ignoring weight overrides: {e}")
        return defaults


def load_engine_config(env_file: Optional[str] = None) -> EngineConfig:
    """
    Load EngineConfig, applying .env and FITNESS_* environment overrides

    Args:
        env_file: Optional path to a .env file (defaults to the nearest .env above the working directory)

    Returns:
        EngineConfig with overrides applied; invalid values keep their defaults
    """
    if env_file:
        if not os.path.exists(env_file):
            logger.warning(f"Env file not found: {env_file}")
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(find_dotenv(usecwd=True), override=False)

    overrides = env_overrides()
    config = replace(EngineConfig(), weights=_load_weights(), **overrides)
    if overrides:
        logger.info(f"🔧 Config overrides applied: {', '.join(sorted(overrides))}")
    return config
