"""Configuration loader for WingetUpgrader."""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from wingetupgrader.constants import DEFAULT_CONFIG, DEPLOY_MODES
from wingetupgrader.errors import ErrorKind
from wingetupgrader.models import (
    ConfigLoadResult,
    SessionSettings,
    UiSettings,
    UpgraderConfig,
    to_signed32,
)


class ConfigLoader:
    """Merges an optional YAML/JSON override document over built-in defaults.

    Mapping sections are merged key by key, list sections are replaced
    wholesale and scalars are replaced. Loading never raises: a malformed
    document yields the defaults together with ``ErrorKind.CONFIG_PARSE``.
    """

    MAPPING_SECTIONS = {"session", "ui"}
    LIST_SECTIONS = {"acceptable_exit_codes", "skip_list"}

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("wingetupgrader")

    def defaults(self) -> UpgraderConfig:
        return build_config(copy.deepcopy(DEFAULT_CONFIG))

    def load(self, config_path: Optional[str]) -> ConfigLoadResult:
        if not config_path:
            self.logger.info("No configuration file given. Using built-in defaults.")
            return ConfigLoadResult(config=self.defaults())

        path = Path(config_path)
        if not path.exists():
            self.logger.info("Configuration file %s not found. Using built-in defaults.", config_path)
            return ConfigLoadResult(config=self.defaults())

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8-sig"))
        except (yaml.YAMLError, OSError, UnicodeDecodeError) as exc:
            return self._fallback(f"Invalid config file '{config_path}': {exc}")

        if parsed is None:
            return ConfigLoadResult(config=self.defaults())
        if not isinstance(parsed, dict):
            return self._fallback("Config file must contain a mapping at the root.")

        warnings: List[str] = []
        try:
            merged = self.merge(copy.deepcopy(DEFAULT_CONFIG), parsed, warnings)
            config = build_config(merged)
        except (TypeError, ValueError) as exc:
            return self._fallback(f"Invalid config file '{config_path}': {exc}")

        for warning in warnings:
            self.logger.warning(warning)
        self.logger.debug("Loaded configuration overrides from %s", config_path)
        return ConfigLoadResult(config=config, warnings=tuple(warnings))

    def merge(
        self,
        defaults: Dict[str, Any],
        overrides: Dict[str, Any],
        warnings: List[str],
    ) -> Dict[str, Any]:
        for key, value in overrides.items():
            if key not in defaults:
                warnings.append(f"Ignoring unknown configuration key: {key}")
                continue

            if key in self.MAPPING_SECTIONS:
                if not isinstance(value, dict):
                    raise TypeError(f"'{key}' must be a mapping")
                for sub_key, sub_value in value.items():
                    if sub_key not in defaults[key]:
                        warnings.append(f"Ignoring unknown configuration key: {key}.{sub_key}")
                        continue
                    defaults[key][sub_key] = sub_value
            elif key in self.LIST_SECTIONS:
                if not isinstance(value, list):
                    raise TypeError(f"'{key}' must be a list")
                defaults[key] = list(value)
            else:
                defaults[key] = value

        return defaults

    def _fallback(self, message: str) -> ConfigLoadResult:
        self.logger.warning("%s Falling back to built-in defaults.", message)
        return ConfigLoadResult(
            config=self.defaults(),
            error_kind=ErrorKind.CONFIG_PARSE,
            warnings=(message,),
        )


def parse_exit_code(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid exit code: {value!r}")
    if isinstance(value, int):
        return to_signed32(value)
    if isinstance(value, str):
        return to_signed32(int(value.strip(), 0))
    raise ValueError(f"Invalid exit code: {value!r}")


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _require_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"'{key}' must be true or false, got {value!r}")
    return value


def _require_str(value: Any, key: str) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise TypeError(f"'{key}' must be a string, got {value!r}")
    return str(value)


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def build_config(data: Dict[str, Any]) -> UpgraderConfig:
    session = data["session"]
    deploy_mode = _require_str(session["deploy_mode"], "session.deploy_mode")
    if deploy_mode not in DEPLOY_MODES:
        raise ValueError(f"Unknown deploy mode: {deploy_mode}")

    exit_codes: List[int] = []
    for raw_code in data["acceptable_exit_codes"]:
        code = parse_exit_code(raw_code)
        if code not in exit_codes:
            exit_codes.append(code)

    ui = data["ui"]
    width = ui["width"]

    return UpgraderConfig(
        session=SessionSettings(
            app_vendor=_require_str(session["app_vendor"], "session.app_vendor"),
            app_name=_require_str(session["app_name"], "session.app_name"),
            app_version=_require_str(session["app_version"], "session.app_version"),
            deploy_mode=deploy_mode,
            show_notifications=_require_bool(session["show_notifications"], "session.show_notifications"),
        ),
        detection_marker=_require_str(data["detection_marker"], "detection_marker"),
        acceptable_exit_codes=tuple(exit_codes),
        skip_list=tuple(str(item) for item in data["skip_list"]),
        upgrade_arguments=str(data["upgrade_arguments"] or ""),
        ui=UiSettings(
            title=_require_str(ui["title"], "ui.title"),
            width=int(width) if width is not None else None,
            name_width=int(ui["name_width"]),
        ),
        query_timeout_seconds=float(data["query_timeout_seconds"]),
        upgrade_timeout_seconds=_optional_float(data["upgrade_timeout_seconds"]),
        winget_path=_optional_str(data["winget_path"]),
        log_file=_optional_str(data["log_file"]),
    )
