"""Request and result types for certificate issuance."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from hostcert.core.types import CertificateFileFormat, KeyAlgorithm

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True)
class CertificateRequestSpec:
    """Immutable description of one certificate issuance.

    Attributes
    ----------
    key_path:
        Destination of the private key.
    cert_path:
        Destination of the certificate.
    start_days:
        Offset in days from now for ``notBefore``; may be negative.
    end_days:
        Offset in days from now for ``notAfter``; must exceed *start_days*.
    hostname:
        Short host name, used as-is.
    domainname:
        DNS domain, possibly containing non-ASCII labels.
    bits:
        Requested key strength.
    client_cert:
        Issue for client authentication instead of server authentication.
    key_algorithm:
        Key type; only RSA is generated.
    file_format:
        Serialization of both output files.
    hash_algorithm:
        Signature digest name (``sha256``, ``sha384`` or ``sha512``).

    """

    key_path: Path
    cert_path: Path
    start_days: int
    end_days: int
    hostname: str
    domainname: str
    bits: int
    client_cert: bool = False
    key_algorithm: KeyAlgorithm = KeyAlgorithm.RSA
    file_format: CertificateFileFormat = CertificateFileFormat.PEM
    hash_algorithm: str = "sha256"


@dataclass(frozen=True)
class GeneratedCertificate:
    """Result of a successful certificate generation.

    Attributes
    ----------
    key_path:
        Where the private key was written.
    cert_path:
        Where the certificate was written.
    common_name:
        Subject CN (``host.domain`` or ``host``).
    not_before:
        Certificate validity start time.
    not_after:
        Certificate validity end time.
    serial_number:
        Hex-encoded serial number.
    fingerprint:
        SHA-256 hex digest of the certificate's DER encoding.
    entropy_bytes:
        Bytes harvested by the entropy source for this key.
    diagnostics:
        Non-fatal messages collected while encoding the domain name.

    """

    key_path: Path
    cert_path: Path
    common_name: str
    not_before: datetime
    not_after: datetime
    serial_number: str
    fingerprint: str
    entropy_bytes: int
    diagnostics: tuple[str, ...] = field(default_factory=tuple)
