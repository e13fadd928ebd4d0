"""Self-signed host certificate issuance.

Exports the builder, the request/result types, and the settings
helpers that wire a builder from configuration.
"""

from hostcert.cert.base import CertificateRequestSpec, GeneratedCertificate
from hostcert.cert.builder import (
    CertificateBuilder,
    builder_from_settings,
    request_from_settings,
)

__all__ = [
    "CertificateBuilder",
    "CertificateRequestSpec",
    "GeneratedCertificate",
    "builder_from_settings",
    "request_from_settings",
]
