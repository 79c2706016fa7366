from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml
from jsonschema import Draft7Validator

from .env_auth import EnvAuthConfig, create_env_auth_manager
from .models import IssueSyncConfig

DEFAULT_CONFIG_PATH = Path('spectr') / 'issues.yaml'

_DEFAULTS = IssueSyncConfig()

_STRING_LIST = {'type': 'array', 'items': {'type': 'string'}}

CONFIG_SCHEMA: dict[str, Any] = {
    '$schema': 'http://json-schema.org/draft-07/schema#',
    'title': 'SpectrIssueSyncConfig',
    'type': 'object',
    'additionalProperties': False,
    'properties': {
        'issues': {
            'type': 'object',
            'additionalProperties': False,
            'properties': {
                'enabled': {'type': 'boolean'},
                'close_on_archive': {'type': 'boolean'},
                'update_existing': {'type': 'boolean'},
                'title_prefix': {'type': 'string'},
                'labels': _STRING_LIST,
                'spectr_label': {'type': 'string'},
            },
        },
        'github': {
            'type': 'object',
            'additionalProperties': False,
            'properties': {
                'repo': {'type': ['string', 'null'], 'pattern': r'^[^/\s]+/[^/\s]+$'},
                'token': {'type': ['string', 'null']},
            },
        },
        'discovery': {
            'type': 'object',
            'additionalProperties': False,
            'properties': {'max_workers': {'type': 'integer', 'minimum': 1}},
        },
        'environment': {
            'type': 'object',
            'additionalProperties': False,
            'properties': {
                'load_dotenv': {'type': 'boolean'},
                'dotenv_path': {'type': ['string', 'null']},
            },
        },
        'logging': {
            'type': 'object',
            'additionalProperties': False,
            'properties': {
                'json_enabled': {'type': 'boolean'},
                'level': {'enum': ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'debug', 'info', 'warning', 'error']},
            },
        },
    },
}


class ConfigError(RuntimeError):
    pass


@dataclass
class Settings:
    issues: IssueSyncConfig
    source_file: Path | None = None
    discovery_max_workers: int = 1
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = 'INFO'
    # Environment authentication configuration
    env_auth_load_dotenv: bool = True
    env_auth_dotenv_path: str | None = None
    warnings: list[str] = field(default_factory=list)


def _resolve_env_var(value: Any) -> Any:
    """Resolve ``$NAME`` references; unresolved references become None."""
    if isinstance(value, str) and value.startswith('$'):
        resolved = os.getenv(value[1:])
        return resolved.strip() if resolved and resolved.strip() else None
    return value


def _read_raw(p: Path) -> dict[str, Any]:
    try:
        loaded = yaml.safe_load(p.read_text(encoding='utf-8'))
    except yaml.YAMLError as exc:
        raise ConfigError(f'Invalid YAML in {p}: {exc}') from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f'Configuration in {p} must be a mapping')
    return cast(dict[str, Any], loaded)


def validate_config(raw: dict[str, Any], source: Path | None = None) -> None:
    validator = Draft7Validator(CONFIG_SCHEMA)
    errors = sorted(validator.iter_errors(raw), key=lambda e: [str(p) for p in e.absolute_path])
    if not errors:
        return
    first = errors[0]
    location = '.'.join(str(part) for part in first.absolute_path) or '<root>'
    where = f' in {source}' if source else ''
    raise ConfigError(f'Invalid configuration{where} at {location}: {first.message}')


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    return cast(dict[str, Any], raw.get(name) or {})


def build_settings(
    raw: dict[str, Any], *, source_file: Path | None = None, base_dir: Path | None = None
) -> Settings:
    validate_config(raw, source_file)
    issues = _section(raw, 'issues')
    gh = _section(raw, 'github')
    discovery = _section(raw, 'discovery')
    env_auth = _section(raw, 'environment')
    logging_config = _section(raw, 'logging')

    load_dotenv = bool(env_auth.get('load_dotenv', True))
    dotenv_path = env_auth.get('dotenv_path')
    token = _resolve_env_var(gh.get('token'))
    warnings: list[str] = []
    if gh.get('token') and token is None:
        warnings.append(f"Environment variable {gh['token']} referenced by github.token is not set")
    if not token:
        manager = create_env_auth_manager(
            EnvAuthConfig(load_dotenv=load_dotenv, dotenv_path=dotenv_path), base_dir=base_dir
        )
        token = manager.get_github_token()

    labels = issues.get('labels')
    sync_config = IssueSyncConfig(
        enabled=bool(issues.get('enabled', _DEFAULTS.enabled)),
        close_on_archive=bool(issues.get('close_on_archive', _DEFAULTS.close_on_archive)),
        update_existing=bool(issues.get('update_existing', _DEFAULTS.update_existing)),
        github_token=token,
        labels=tuple(labels) if labels is not None else _DEFAULTS.labels,
        spectr_label=issues.get('spectr_label', _DEFAULTS.spectr_label),
        title_prefix=issues.get('title_prefix', _DEFAULTS.title_prefix),
        repo=gh.get('repo') or os.getenv('GITHUB_REPOSITORY') or None,
    )
    return Settings(
        issues=sync_config,
        source_file=source_file,
        discovery_max_workers=int(discovery.get('max_workers', 1)),
        logging_json_enabled=bool(logging_config.get('json_enabled', False)),
        logging_level=str(logging_config.get('level', 'INFO')).upper(),
        env_auth_load_dotenv=load_dotenv,
        env_auth_dotenv_path=dotenv_path,
        warnings=warnings,
    )


def load_settings(path: str | Path | None = None, *, base_dir: Path | None = None) -> Settings:
    """Load settings from YAML; a missing file yields defaults."""
    p = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if p.is_dir():
        raise ConfigError(f'Configuration path is a directory: {p}')
    raw = _read_raw(p) if p.exists() else {}
    return build_settings(raw, source_file=p if p.exists() else None, base_dir=base_dir)


def load_config(path: str | Path | None = None, *, base_dir: Path | None = None) -> IssueSyncConfig:
    return load_settings(path, base_dir=base_dir).issues


__all__ = [
    "CONFIG_SCHEMA",
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "Settings",
    "build_settings",
    "load_config",
    "load_settings",
    "validate_config",
]
