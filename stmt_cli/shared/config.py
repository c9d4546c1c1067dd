"""Configuration loading utilities for the statement CLI suite."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError

DEFAULT_COMBINED_MARKERS: tuple[str, ...] = (
    "combined",
    "merged",
    "all_statements",
    "all-statements",
    "allstatements",
)


@dataclass(frozen=True, slots=True)
class ExtractionSettings:
    """PDF extraction configuration."""

    engine: str = "auto"  # "auto" or "pdfplumber"
    strict: bool = False


@dataclass(frozen=True, slots=True)
class ResolverSettings:
    """Heuristic thresholds for splitting glued reference numbers from amounts."""

    trace_amount_limit: float = 100000.0
    zelle_code_min_length: int = 6
    zelle_code_max_length: int = 12
    confirmation_digits: int = 10


@dataclass(frozen=True, slots=True)
class BoundarySettings:
    """Statement boundary detection configuration."""

    lookback_chars: int = 500


@dataclass(frozen=True, slots=True)
class MergeSettings:
    """Cross-document merge configuration."""

    combined_markers: tuple[str, ...] = DEFAULT_COMBINED_MARKERS
    recalculate_summary: bool = False


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    extraction: ExtractionSettings = field(default_factory=ExtractionSettings)
    resolvers: ResolverSettings = field(default_factory=ResolverSettings)
    boundaries: BoundarySettings = field(default_factory=BoundarySettings)
    merge: MergeSettings = field(default_factory=MergeSettings)


def _default_config() -> dict[str, Any]:
    return {
        "extraction": {"engine": "auto", "strict": False},
        "resolvers": {
            "trace_amount_limit": 100000.0,
            "zelle_code_min_length": 6,
            "zelle_code_max_length": 12,
            "confirmation_digits": 10,
        },
        "boundaries": {"lookback_chars": 500},
        "merge": {
            "combined_markers": list(DEFAULT_COMBINED_MARKERS),
            "recalculate_summary": False,
        },
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "extraction.engine": ("STMTCLI_EXTRACTION_ENGINE", str),
    "extraction.strict": ("STMTCLI_STRICT", bool),
    "resolvers.trace_amount_limit": ("STMTCLI_TRACE_AMOUNT_LIMIT", float),
    "resolvers.zelle_code_min_length": ("STMTCLI_ZELLE_CODE_MIN", int),
    "resolvers.zelle_code_max_length": ("STMTCLI_ZELLE_CODE_MAX", int),
    "resolvers.confirmation_digits": ("STMTCLI_CONFIRMATION_DIGITS", int),
    "boundaries.lookback_chars": ("STMTCLI_BOUNDARY_LOOKBACK", int),
    "merge.combined_markers": ("STMTCLI_COMBINED_MARKERS", list),
    "merge.recalculate_summary": ("STMTCLI_RECALCULATE_SUMMARY", bool),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(os.environ if env is None else env)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    merged: dict[str, Any] = _deep_merge(_default_config(), file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def _resolve_config_path(config_path: str | Path | None, env: Mapping[str, str]) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
        return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is bool:
        lowered = cleaned.lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError("expected boolean (true/false)")
    if expected_type is int:
        return int(cleaned)
    if expected_type is float:
        return float(cleaned)
    if expected_type is list:
        if not cleaned:
            return []
        return tuple(part.strip() for part in cleaned.split(",") if part.strip())
    return cleaned


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        extraction = ExtractionSettings(
            engine=str(data["extraction"]["engine"]),
            strict=bool(data["extraction"]["strict"]),
        )
        res_cfg = data["resolvers"]
        resolvers = ResolverSettings(
            trace_amount_limit=float(res_cfg["trace_amount_limit"]),
            zelle_code_min_length=int(res_cfg["zelle_code_min_length"]),
            zelle_code_max_length=int(res_cfg["zelle_code_max_length"]),
            confirmation_digits=int(res_cfg["confirmation_digits"]),
        )
        boundaries = BoundarySettings(lookback_chars=int(data["boundaries"]["lookback_chars"]))
        merge = MergeSettings(
            combined_markers=tuple(str(marker).lower() for marker in data["merge"]["combined_markers"]),
            recalculate_summary=bool(data["merge"]["recalculate_summary"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if extraction.engine not in {"auto", "pdfplumber"}:
        raise ConfigurationError(
            f"Invalid extraction engine '{extraction.engine}'. Must be one of: auto, pdfplumber"
        )
    if resolvers.zelle_code_min_length > resolvers.zelle_code_max_length:
        raise ConfigurationError("resolvers.zelle_code_min_length exceeds zelle_code_max_length")
    if boundaries.lookback_chars < 0:
        raise ConfigurationError("boundaries.lookback_chars must be non-negative")

    return AppConfig(
        source_path=source_path,
        extraction=extraction,
        resolvers=resolvers,
        boundaries=boundaries,
        merge=merge,
    )
