"""hostcert configuration loader.

Usage::

    config = HostcertConfig(config_file="/etc/opt/hostcert/hostcert.yaml")
    config.settings.certificate.bits  # typed access

Loading order: read YAML/JSON, resolve ``${VAR}`` / ``${VAR:-default}``
references, validate against the bundled JSON schema, build the frozen
settings tree, then run the cross-field checks of :func:`validate_settings`.
The CLI runs those checks again after applying command-line overrides.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from hostcert.config.settings import HostcertSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_MIN_RSA_KEY_SIZE = 1024
_MAX_VALIDITY_DAYS = 36500

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when schema or cross-field validation finds problems."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


def _read_config_file(config_file: Path) -> dict:
    """Parse a YAML or JSON file into a dict (empty file -> empty dict)."""
    try:
        with config_file.open(encoding="utf-8") as f:
            if config_file.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except FileNotFoundError:
        msg = f"Configuration file not found: {config_file}"
        raise ConfigValidationError([msg]) from None
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        msg = f"Cannot parse {config_file}: {exc}"
        raise ConfigValidationError([msg]) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{config_file}: top level must be a mapping"
        raise ConfigValidationError([msg])
    return data


def load_schema() -> dict:
    """Return the bundled JSON schema."""
    with _SCHEMA_PATH.open(encoding="utf-8") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Cross-field checks
# ---------------------------------------------------------------------------


def validate_settings(settings: HostcertSettings) -> None:
    """Semantic & cross-field validation of a complete settings tree.

    Problems that make issuance impossible are collected and raised as one
    :class:`ConfigValidationError`; merely unusual values are logged.
    """
    errors: list[str] = []
    warnings: list[str] = []

    cert = settings.certificate
    entropy = settings.entropy

    if cert.end_days <= cert.start_days:
        errors.append(
            f"certificate.end_days ({cert.end_days}) must be greater than "
            f"certificate.start_days ({cert.start_days})",
        )
    span = cert.end_days - cert.start_days
    if span > _MAX_VALIDITY_DAYS:
        warnings.append(
            f"certificate validity spans {span} days; "
            f"more than {_MAX_VALIDITY_DAYS} is unusual",
        )

    if cert.key_algorithm == "rsa" and cert.bits < _MIN_RSA_KEY_SIZE:
        errors.append(
            f"certificate.bits ({cert.bits}) must be at least {_MIN_RSA_KEY_SIZE} for RSA keys",
        )

    if Path(cert.key_path) == Path(cert.cert_path):
        errors.append("certificate.key_path and certificate.cert_path must differ")

    if entropy.user_seed_file and not Path(entropy.user_seed_file).is_file():
        warnings.append(f"entropy.user_seed_file {entropy.user_seed_file} does not exist")
    if entropy.seed_file and Path(entropy.seed_file).is_dir():
        errors.append(f"entropy.seed_file {entropy.seed_file} is a directory")

    for warning in warnings:
        log.warning("Config: %s", warning)
    if errors:
        raise ConfigValidationError(errors)


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class HostcertConfig:
    """Central configuration for hostcert.

    Exactly one of *config_file* or *data* may be given; with neither, all
    defaults apply.  *data* is copied, never modified.  After construction
    the typed settings tree is available at :pyattr:`settings`.
    """

    def __init__(
        self,
        *,
        config_file: str | Path | None = None,
        data: dict | None = None,
    ) -> None:
        if config_file is not None and data is not None:
            msg = "Pass either config_file or data, not both"
            raise ValueError(msg)

        self._source = str(config_file) if config_file is not None else None
        if config_file is not None:
            raw = _read_config_file(Path(config_file))
        else:
            raw = copy.deepcopy(data or {})

        _resolve_env_vars(raw)
        self._validate_schema(raw)

        self._settings: HostcertSettings = build_settings(raw)
        validate_settings(self._settings)

    @property
    def settings(self) -> HostcertSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    @staticmethod
    def _validate_schema(raw: dict) -> None:
        validator = jsonschema.Draft202012Validator(load_schema())
        errors = [
            f"{'.'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
            for err in sorted(validator.iter_errors(raw), key=str)
        ]
        if errors:
            raise ConfigValidationError(errors)

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        return f"<HostcertConfig config_file={self._source or '-'}>"


def load_config(config_file: str | Path | None = None) -> HostcertConfig:
    """Load *config_file* (or defaults when ``None``)."""
    return HostcertConfig(config_file=config_file)
