# -*- coding: utf-8 -*-
import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from iotail.schemas import TailConfig

# environment variable -> TailConfig field
ENV_OVERRIDES = {
    "IOTAIL_MAX_INTERVAL": "max_interval",
    "IOTAIL_SUSPICIOUS_INTERVAL": "suspicious_interval",
    "IOTAIL_DEFAULT_BUFSIZE": "default_bufsize",
}


def _read_user_file(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object of TailConfig fields")
    unknown = set(data) - set(TailConfig.model_fields)
    if unknown:
        raise ValueError(f"{path}: unknown settings {sorted(unknown)}")
    return data


def _env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    return {field: environ[var] for var, field in ENV_OVERRIDES.items() if environ.get(var)}


def load_config(path: Optional[Union[str, Path]] = None, **overrides: Any) -> TailConfig:
    """
    Build a TailConfig. Anything not set below keeps the TailConfig default.
    Priority (last wins):
    1) the JSON file at ``path`` if given
    2) IOTAIL_* environment variables
    3) keyword overrides; None values are ignored
    """
    cfg: Dict[str, Any] = {}
    if path is not None:
        cfg.update(_read_user_file(path))
    cfg.update(_env_overrides())
    cfg.update({k: v for k, v in overrides.items() if v is not None})
    return TailConfig(**cfg)
