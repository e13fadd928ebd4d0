"""Configuration subsystem for hostcert.

Public API::

    from hostcert.config import HostcertConfig, validate_settings

    config = HostcertConfig(config_file="hostcert.yaml")
    bits = config.settings.certificate.bits  # typed access

    # After replacing values on the frozen tree:
    validate_settings(settings)
"""

from hostcert.config.hostcert_config import (
    ConfigValidationError,
    HostcertConfig,
    load_config,
    validate_settings,
)
from hostcert.config.settings import (
    CertificateSettings,
    EntropySettings,
    HostcertSettings,
    IdnSettings,
    LoggingSettings,
    build_settings,
)

__all__ = [
    "CertificateSettings",
    "ConfigValidationError",
    "EntropySettings",
    "HostcertConfig",
    "HostcertSettings",
    "IdnSettings",
    "LoggingSettings",
    "build_settings",
    "load_config",
    "validate_settings",
]
