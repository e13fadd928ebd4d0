"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation -- these builders
are what the application actually reads.

Access pattern::

    from hostcert.config import load_config

    settings = load_config("/etc/opt/hostcert/hostcert.yaml").settings
    print(settings.certificate.bits, settings.entropy.max_wait_seconds)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

# ---------------------------------------------------------------------------
# Certificate
# ---------------------------------------------------------------------------

DEFAULT_SSL_DIR = "/etc/opt/hostcert/ssl"


@dataclass(frozen=True)
class CertificateSettings:
    """What to issue and where to write it."""

    key_path: str
    cert_path: str
    start_days: int
    end_days: int
    hostname: str | None
    domainname: str | None
    bits: int
    client_cert: bool
    key_algorithm: str
    file_format: str
    hash_algorithm: str


def _build_certificate(data: dict | None) -> CertificateSettings:
    d = data or {}
    return CertificateSettings(
        key_path=d.get("key_path", f"{DEFAULT_SSL_DIR}/hostcert-key.pem"),
        cert_path=d.get("cert_path", f"{DEFAULT_SSL_DIR}/hostcert.pem"),
        start_days=d.get("start_days", -365),
        end_days=d.get("end_days", 7300),
        hostname=d.get("hostname"),
        domainname=d.get("domainname"),
        bits=d.get("bits", 2048),
        client_cert=d.get("client_cert", False),
        key_algorithm=d.get("key_algorithm", "rsa"),
        file_format=d.get("file_format", "pem"),
        hash_algorithm=d.get("hash_algorithm", "sha256"),
    )


# ---------------------------------------------------------------------------
# Entropy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntropySettings:
    """Random seed sources, persistence and quality threshold."""

    target_bytes: int
    seed_file: str | None
    user_seed_file: str | None
    seed_size: int
    max_wait_seconds: float
    urandom_device: str
    random_device: str


def _build_entropy(data: dict | None) -> EntropySettings:
    d = data or {}
    return EntropySettings(
        target_bytes=d.get("target_bytes", 256),
        seed_file=d.get("seed_file"),
        user_seed_file=d.get("user_seed_file"),
        seed_size=d.get("seed_size", 1024),
        max_wait_seconds=float(d.get("max_wait_seconds", 5)),
        urandom_device=d.get("urandom_device", "/dev/urandom"),
        random_device=d.get("random_device", "/dev/random"),
    )


# ---------------------------------------------------------------------------
# IDN
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IdnSettings:
    """Where to look for the optional IDN conversion library."""

    enabled: bool
    search_dirs: tuple[str, ...]
    library_names: tuple[str, ...]


def _build_idn(data: dict | None) -> IdnSettings:
    from hostcert.idn.encoder import (  # noqa: PLC0415
        DEFAULT_LIBRARY_NAMES,
        DEFAULT_SEARCH_DIRS,
    )

    d = data or {}
    return IdnSettings(
        enabled=d.get("enabled", True),
        search_dirs=tuple(d.get("search_dirs", DEFAULT_SEARCH_DIRS)),
        library_names=tuple(d.get("library_names", DEFAULT_LIBRARY_NAMES)),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """Log level and output format (``text`` or ``json``)."""

    level: str
    format: str
    file: str | None


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
        file=d.get("file"),
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HostcertSettings:
    """Root settings tree."""

    certificate: CertificateSettings
    entropy: EntropySettings
    idn: IdnSettings
    logging: LoggingSettings

    def with_certificate(self, **changes: Any) -> HostcertSettings:  # noqa: ANN401
        """Return a copy with the given certificate fields replaced."""
        return replace(self, certificate=replace(self.certificate, **changes))

    def with_entropy(self, **changes: Any) -> HostcertSettings:  # noqa: ANN401
        """Return a copy with the given entropy fields replaced."""
        return replace(self, entropy=replace(self.entropy, **changes))


def build_settings(data: dict) -> HostcertSettings:
    """Build the full typed settings tree from raw config data.

    Called once after schema validation and environment-variable
    resolution; also usable directly with a plain dict.
    """
    return HostcertSettings(
        certificate=_build_certificate(data.get("certificate")),
        entropy=_build_entropy(data.get("entropy")),
        idn=_build_idn(data.get("idn")),
        logging=_build_logging(data.get("logging")),
    )


DEFAULT_ENTROPY = _build_entropy(None)
DEFAULT_IDN = _build_idn(None)
