"""
Runtime Configuration for Chalkboard.

Provides a singleton RuntimeConfig class whose values default from
environment variables and can be adjusted at runtime without a restart.

Usage:
    from config import runtime_config
    interval = runtime_config.stream_update_interval_ms
    runtime_config.update(temperature=0.4, search_max_results=3)
"""

import os
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Any
from threading import Lock

logger = logging.getLogger(__name__)

# Gemini exposes an OpenAI-compatible chat completions API at this base URL
GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

# Never exported by to_dict()
_SECRET_FIELDS = {"gemini_api_key", "tavily_api_key"}


def _first_env(*keys: str, default: str) -> str:
    """Return the first non-empty environment value from keys, else default."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return default


@dataclass
class RuntimeConfig:
    """
    Singleton configuration for runtime-adjustable parameters.

    All values have defaults from environment variables, but can be
    changed at runtime via the update() method.
    """

    # Credentials (env-only)
    gemini_api_key: str = field(
        default_factory=lambda: _first_env("GEMINI_API_KEY", "GOOGLE_API_KEY", default=""),
        repr=False,
    )
    tavily_api_key: str = field(default_factory=lambda: os.environ.get("TAVILY_API_KEY", "").strip(), repr=False)

    # Model
    llm_base_url: str = field(default_factory=lambda: _first_env("LLM_BASE_URL", default=GEMINI_OPENAI_BASE_URL))
    model_chat: str = field(default_factory=lambda: _first_env("LLM_CHAT_MODEL", default="gemini-2.5-pro"))
    temperature: float = field(default_factory=lambda: float(os.environ.get("LLM_TEMPERATURE", "0.7")))
    top_p: float = field(default_factory=lambda: float(os.environ.get("LLM_TOP_P", "0.95")))
    llm_timeout: float = field(default_factory=lambda: float(os.environ.get("LLM_TIMEOUT", "180")))

    # Streaming
    stream_update_interval_ms: int = field(
        default_factory=lambda: int(os.environ.get("STREAM_UPDATE_INTERVAL_MS", "1000"))
    )  # Minimum gap between partial message commits

    # Web search (Tavily)
    tavily_url: str = field(default_factory=lambda: _first_env("TAVILY_URL", default="https://api.tavily.com/search"))
    search_depth: str = field(default_factory=lambda: os.environ.get("SEARCH_DEPTH", "advanced"))
    search_max_results: int = field(default_factory=lambda: int(os.environ.get("SEARCH_MAX_RESULTS", "5")))
    search_timeout_s: float = field(default_factory=lambda: float(os.environ.get("SEARCH_TIMEOUT_S", "30")))

    # Agent lifecycle
    agent_idle_timeout_s: float = field(
        default_factory=lambda: float(os.environ.get("AGENT_IDLE_TIMEOUT_S", "1800"))
    )  # Dispose agents with no user message for this long
    agent_sweep_interval_s: float = field(
        default_factory=lambda: float(os.environ.get("AGENT_SWEEP_INTERVAL_S", "60"))
    )

    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))

    # Internal state
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)
    _update_count: int = field(default=0, repr=False)

    # Validation ranges for numeric config values
    _VALIDATION_RANGES: Dict[str, tuple] = field(
        default_factory=lambda: {
            "temperature": (0.0, 2.0),
            "top_p": (0.0, 1.0),
            "llm_timeout": (1.0, 900.0),
            "stream_update_interval_ms": (0, 60000),
            "search_max_results": (1, 20),
            "search_timeout_s": (1.0, 120.0),
            "agent_idle_timeout_s": (10.0, 86400.0),
            "agent_sweep_interval_s": (1.0, 3600.0),
        },
        repr=False,
        compare=False,
    )

    def update(self, **kwargs) -> Dict[str, Any]:
        """
        Update configuration values at runtime.

        Args:
            **kwargs: Key-value pairs to update (e.g., temperature=0.4)

        Returns:
            Dict with 'updated' (changed keys) and 'ignored' (unknown or rejected keys)
        """
        updated = []
        ignored = []

        with self._lock:
            for key, value in kwargs.items():
                if key.startswith("_"):
                    ignored.append(key)
                    continue

                if not hasattr(self, key):
                    ignored.append(key)
                    logger.warning(f"Config ignored unknown key: {key}")
                    continue

                if key in {"llm_base_url", "tavily_url"} and isinstance(value, str):
                    cleaned = value.strip()
                    if not cleaned.startswith(("http://", "https://")):
                        ignored.append(key)
                        logger.warning(f"Config rejected invalid URL: {key}={value!r}")
                        continue
                    value = cleaned

                if key == "search_depth" and value not in {"basic", "advanced"}:
                    ignored.append(key)
                    logger.warning(f"Config rejected {key}={value!r} (must be 'basic' or 'advanced')")
                    continue

                # Validate model names (alphanumeric, slashes, dots, dashes only)
                if key == "model_chat" and (
                    not isinstance(value, str) or not re.match(r"^[a-zA-Z0-9._:/-]+$", value) or len(value) > 100
                ):
                    ignored.append(key)
                    logger.warning(f"Config rejected invalid model name: {key}={value!r}")
                    continue

                # Validate numeric ranges
                if key in self._VALIDATION_RANGES:
                    lo, hi = self._VALIDATION_RANGES[key]
                    if not isinstance(value, (int, float)) or not (lo <= value <= hi):
                        ignored.append(key)
                        logger.warning(f"Config rejected {key}={value} (must be {lo}-{hi})")
                        continue

                old_value = getattr(self, key)
                setattr(self, key, value)
                updated.append(key)
                if key in _SECRET_FIELDS:
                    logger.info(f"Config updated: {key}")
                else:
                    logger.info(f"Config updated: {key} = {value} (was {old_value})")

            self._update_count += 1

        return {"updated": updated, "ignored": ignored, "update_count": self._update_count}

    def get_llm_params(self) -> Dict[str, Any]:
        """Get sampling parameters for chat completion calls."""
        return {
            "temperature": self.temperature,
            "top_p": self.top_p,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Export current config as dict (excludes internal fields and credentials)."""
        from dataclasses import fields as dataclass_fields

        result = {}
        for field_info in dataclass_fields(self):
            name = field_info.name
            if name.startswith("_"):
                continue
            if name in _SECRET_FIELDS:
                result[f"{name}_set"] = bool(getattr(self, name))
                continue
            result[name] = getattr(self, name)
        return result


runtime_config = RuntimeConfig()


def get_config() -> RuntimeConfig:
    """Get the singleton config instance."""
    return runtime_config
