"""Runtime settings for one publish run.

Defaults come from ``Constants``; a YAML file overrides them and ``REGPUB_*``
environment variables override the file. The resulting settings object is
passed explicitly to the workflow instead of living in module globals.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)


@dataclass
class PublisherSettings:
    """Paths, names and tunables scoped to a single workflow run."""

    artifact_name: str = Constants.ARTIFACT_NAME
    output_dir: str = Constants.OUTPUT_DIR
    validate_dir: str = Constants.VALIDATE_DIR
    readme: str = Constants.README
    cooldown_seconds: int = Constants.COOLDOWN_SECONDS
    min_days_between_publishes: int = Constants.MIN_DAYS_BETWEEN_PUBLISHES
    npm_registry_url: str = Constants.REGISTRY_URL_NPM
    mirror_registry_url: str = Constants.REGISTRY_URL_GITHUB
    packages_file: str = Constants.PACKAGES_FILE
    npm_info_cache_file: str = Constants.NPM_INFO_CACHE_FILE
    not_needed_file: Optional[str] = Constants.NOT_NEEDED_FILE
    npm_binary: str = Constants.NPM_BINARY
    install_flags: List[str] = field(default_factory=lambda: list(Constants.NPM_INSTALL_FLAGS))

    def channel_output_dir(self, channel: str) -> str:
        return os.path.join(self.output_dir, channel, self.artifact_name)

    def channel_validate_dir(self, channel: str) -> str:
        return os.path.join(self.validate_dir, channel)


def _coerce(current: Any, raw: Any) -> Any:
    """Convert an override to the type of the field's current value."""
    if isinstance(current, bool):
        return str(raw).strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, list):
        if isinstance(raw, str):
            return raw.split()
        return list(raw)
    if raw is None:
        return None
    return str(raw)


def _apply(settings: PublisherSettings, overrides: Mapping[str, Any], source: str) -> None:
    known = {f.name for f in fields(settings)}
    for key, value in overrides.items():
        if key not in known:
            logger.warning("Ignoring unknown setting '%s' from %s", key, source)
            continue
        try:
            setattr(settings, key, _coerce(getattr(settings, key), value))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid value for {key} from {source}: {value!r}") from exc


def _load_yaml(path: str) -> Dict[str, Any]:
    """Load the ``publisher`` section (or the whole document) of a YAML file."""
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    section = data.get("publisher", data)
    if not isinstance(section, dict):
        raise ValueError(f"'publisher' section in {path} must be a mapping")
    return section


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, str]:
    prefix = Constants.ENV_PREFIX
    overrides = {}
    for key, value in environ.items():
        if key.startswith(prefix) and key != Constants.LOG_LEVEL_ENV:
            overrides[key[len(prefix):].lower()] = value
    return overrides


def load_settings(config_path: Optional[str] = None,
                  environ: Optional[Mapping[str, str]] = None) -> PublisherSettings:
    """Resolve settings from defaults, an optional YAML file and the environment.

    Raises:
        FileNotFoundError: if ``config_path`` is given but missing.
        ValueError: on malformed config content.
    """
    settings = PublisherSettings()
    if config_path:
        _apply(settings, _load_yaml(config_path), config_path)
        logger.info("Loaded config from: %s", config_path)
    _apply(settings, _env_overrides(os.environ if environ is None else environ), "environment")
    return settings
