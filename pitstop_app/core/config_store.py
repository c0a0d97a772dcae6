"""Persist status thresholds and general settings as a YAML document (with fallbacks)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .config import COMMON_STATUSES, CONFIG_FILENAME, DEFAULT_THRESHOLDS, Settings, ThresholdConfig

logger = logging.getLogger(__name__)

THRESHOLDS_KEY = "status-thresholds"
SETTINGS_KEY = "general-settings"


class ConfigStoreError(Exception):
    """Raised when configuration cannot be written or an import is malformed."""


def _validate_document(data: Any) -> dict[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigStoreError("Configuration must be a mapping")
    thresholds = data.get("thresholds")
    settings = data.get("settings")
    if thresholds is not None and not isinstance(thresholds, Mapping):
        raise ConfigStoreError("'thresholds' must be a mapping of status to hours")
    if settings is not None and not isinstance(settings, Mapping):
        raise ConfigStoreError("'settings' must be a mapping")
    for status, hours in (thresholds or {}).items():
        if hours is None:
            continue
        try:
            value = float(hours)
        except (TypeError, ValueError) as exc:
            raise ConfigStoreError(f"Threshold for '{status}' is not a number: {hours!r}") from exc
        if value < 0:
            raise ConfigStoreError(f"Threshold for '{status}' must not be negative")
    return {"thresholds": thresholds, "settings": settings}


class ConfigStore:
    """YAML-backed threshold/settings storage.

    Reads never raise: a missing or unreadable file yields the defaults.
    Writes raise :class:`ConfigStoreError`.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else Path.cwd() / CONFIG_FILENAME

    # ------------------ raw document ------------------
    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("Error reading configuration from %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed configuration in %s", self.path)
            return {}
        return data

    def _save(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        except OSError as exc:
            logger.error("Error saving configuration to %s: %s", self.path, exc)
            raise ConfigStoreError(f"Failed to save configuration: {exc}") from exc

    def _update(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    # ------------------ thresholds ------------------
    def get_thresholds(self) -> ThresholdConfig:
        stored = self._load().get(THRESHOLDS_KEY)
        if not isinstance(stored, Mapping):
            return ThresholdConfig()
        try:
            return ThresholdConfig.from_mapping(stored)
        except (TypeError, ValueError) as exc:
            logger.warning("Invalid stored thresholds, using defaults: %s", exc)
            return ThresholdConfig()

    def set_thresholds(self, thresholds: ThresholdConfig | Mapping[str, float]) -> None:
        hours = thresholds.as_dict() if isinstance(thresholds, ThresholdConfig) else dict(thresholds)
        self._update(THRESHOLDS_KEY, {str(k): float(v) for k, v in hours.items()})
        logger.info("Saved %s status thresholds", len(hours))

    def set_threshold_for_status(self, status: str, hours: float) -> None:
        if not status:
            raise ConfigStoreError("Status name is required")
        current = self.get_thresholds().as_dict()
        current[status] = float(hours)
        self.set_thresholds(current)

    def reset_thresholds(self) -> ThresholdConfig:
        self.set_thresholds(dict(DEFAULT_THRESHOLDS))
        return ThresholdConfig()

    # ------------------ settings ------------------
    def get_settings(self) -> Settings:
        stored = self._load().get(SETTINGS_KEY)
        if not isinstance(stored, Mapping):
            return Settings()
        try:
            return Settings.from_mapping(stored)
        except (TypeError, ValueError) as exc:
            logger.warning("Invalid stored settings, using defaults: %s", exc)
            return Settings()

    def set_settings(self, settings: Settings) -> None:
        self._update(SETTINGS_KEY, settings.as_dict())

    # ------------------ import / export ------------------
    def export_config(self) -> dict[str, Any]:
        return {
            "thresholds": self.get_thresholds().as_dict(),
            "settings": self.get_settings().as_dict(),
        }

    def import_config(self, document: Any) -> None:
        """Validate and store an exported document; absent sections are left untouched."""
        doc = _validate_document(document)
        data = self._load()
        if doc["thresholds"] is not None:
            data[THRESHOLDS_KEY] = ThresholdConfig.from_mapping(doc["thresholds"]).as_dict()
        if doc["settings"] is not None:
            try:
                data[SETTINGS_KEY] = Settings.from_mapping(doc["settings"]).as_dict()
            except (TypeError, ValueError) as exc:
                raise ConfigStoreError(f"Invalid settings: {exc}") from exc
        self._save(data)

    @staticmethod
    def available_statuses() -> list[str]:
        return list(COMMON_STATUSES)
