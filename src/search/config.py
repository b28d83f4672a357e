from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv


logger = logging.getLogger(__name__)


def load_config(config_path: Path | str) -> Dict[str, Any]:
    """Load configuration from a given YAML file path.

    Args:
        config_path: Explicit path to the configuration file.

    Returns:
        Parsed configuration dictionary.

    Raises:
        FileNotFoundError: If the configuration file is not found.
        ValueError: If there is an error parsing the YAML file.
    """
    path = Path(config_path)

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise FileNotFoundError(f"Configuration file not found: {path}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML file '{path}': {e}") from e

    return data or {}


@dataclass(frozen=True)
class SearchServiceConfig:
    index: str = "item"
    # Presence of a model id switches query planning to neural/hybrid search.
    model_id: Optional[str] = None
    default_limit: int = 21
    max_limit: int = 100
    highlight_tag: str = "***"
    source_excludes: Tuple[str, ...] = field(
        default=("text", "text_embedding", "title_embedding")
    )

    def __post_init__(self) -> None:
        if self.default_limit < 1:
            raise ValueError("default_limit must be >= 1")
        if self.max_limit < self.default_limit:
            raise ValueError("max_limit must be >= default_limit")

    @property
    def semantic_enabled(self) -> bool:
        return bool(self.model_id)

    def clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.default_limit
        return max(1, min(int(limit), self.max_limit))


def _int_env(name: str) -> Optional[int]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def load_settings(config_path: Path | str | None = None) -> SearchServiceConfig:
    """Build the service configuration from the environment.

    Values come from (lowest to highest precedence): dataclass defaults,
    the optional YAML file (``config_path`` or ``SEARCH_CONFIG_FILE``, keys
    under ``search:``), then environment variables / ``.env``:

      - OPENSEARCH_INDEX
      - OPENSEARCH_MODEL_ID
      - SEARCH_DEFAULT_LIMIT
      - SEARCH_MAX_LIMIT
    """
    load_dotenv(override=False)

    values: Dict[str, Any] = {}
    path = config_path or os.environ.get("SEARCH_CONFIG_FILE")
    if path:
        cfg = load_config(path)
        section = cfg.get("search", {}) if isinstance(cfg, dict) else {}
        known = {f.name for f in fields(SearchServiceConfig)}
        for key, value in (section or {}).items():
            if key not in known:
                logger.warning("Ignoring unknown search config key '%s' in %s", key, path)
                continue
            values[key] = tuple(value) if key == "source_excludes" else value

    env_index = os.environ.get("OPENSEARCH_INDEX", "").strip()
    if env_index:
        values["index"] = env_index
    env_model = os.environ.get("OPENSEARCH_MODEL_ID", "").strip()
    if env_model:
        values["model_id"] = env_model
    default_limit = _int_env("SEARCH_DEFAULT_LIMIT")
    if default_limit is not None:
        values["default_limit"] = default_limit
    max_limit = _int_env("SEARCH_MAX_LIMIT")
    if max_limit is not None:
        values["max_limit"] = max_limit

    config = replace(SearchServiceConfig(), **values)
    logger.info(
        "Search config: index=%s semantic=%s limit=%s/%s",
        config.index,
        config.semantic_enabled,
        config.default_limit,
        config.max_limit,
    )
    return config
