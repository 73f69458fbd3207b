from __future__ import annotations
import os, yaml
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

# shipped as package data so installed copies find it too
DEFAULT_CONFIG = resources.files("pubcrawl") / "conf" / "pubcrawl.yaml"


def _env_expand(v: Any) -> Any:
    if isinstance(v, str):
        return os.path.expandvars(v)
    if isinstance(v, dict):
        return {k: _env_expand(x) for k, x in v.items()}
    if isinstance(v, list):
        return [_env_expand(x) for x in v]
    return v


def load_yaml(path: str | Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return _env_expand(data)


class SourceSettings(BaseModel):
    base_url: str
    rate_per_sec: float = 1.0
    burst: int = 1
    timeout: float = 20.0
    max_retries: int = 3
    api_key: Optional[str] = None
    user_agent: str = "pubcrawl/2.0"

    def effective_rate(self) -> float:
        # NCBI allows 10 req/s with a key, ~3 without
        if self.api_key:
            return max(self.rate_per_sec, 10.0)
        return self.rate_per_sec


class CacheSettings(BaseModel):
    max_entries: int = 500
    ttl: Dict[str, float] = Field(default_factory=lambda: {
        "search": 3600.0,
        "abstract": 86400.0,
        "fulltext": 86400.0,
        "related": 3600.0,
        "summary": 3600.0,
        "label": 86400.0,
        "trial": 14400.0,
    })

    def ttl_for(self, namespace: str) -> float:
        return self.ttl.get(namespace, 3600.0)


class Settings(BaseModel):
    log_level: str = "INFO"
    cache: CacheSettings = Field(default_factory=CacheSettings)
    sources: Dict[str, SourceSettings] = Field(default_factory=dict)

    def source(self, name: str) -> SourceSettings:
        try:
            return self.sources[name]
        except KeyError:
            raise KeyError(f"no configuration for source '{name}'") from None


def _unset(v: Any) -> bool:
    # os.path.expandvars leaves unknown variables untouched
    return v is None or (isinstance(v, str) and (not v.strip() or v.startswith("$")))


def load_settings(path: str | Path | None = None) -> Settings:
    """Load and validate the YAML config; unset ``${VAR}`` values fall back to defaults."""
    if path is None:
        with resources.as_file(DEFAULT_CONFIG) as bundled:
            data = load_yaml(bundled)
    else:
        data = load_yaml(path)
    if _unset(data.get("log_level")):
        data.pop("log_level", None)
    for src in (data.get("sources") or {}).values():
        if _unset(src.get("api_key")):
            src["api_key"] = None
    return Settings.model_validate(data)
