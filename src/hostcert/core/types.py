"""Enumerated types for key material and certificate output.

Both enums inherit from :class:`enum.StrEnum` so configuration strings
(``"rsa"``, ``"pem"``) map onto members directly.  Reserved variants
exist so key material can be classified uniformly; only the members in
:data:`SUPPORTED_KEY_ALGORITHMS` and :data:`SUPPORTED_FILE_FORMATS` are
accepted by the generation path.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------


class KeyAlgorithm(StrEnum):
    NONE = "none"
    RSA = "rsa"
    DSA = "dsa"
    DH = "dh"
    EC = "ec"


SUPPORTED_KEY_ALGORITHMS = frozenset({KeyAlgorithm.RSA})


# ---------------------------------------------------------------------------
# Output files
# ---------------------------------------------------------------------------


class CertificateFileFormat(StrEnum):
    NONE = "none"
    ASN1 = "asn1"  # DER
    PEM = "pem"


SUPPORTED_FILE_FORMATS = frozenset(
    {CertificateFileFormat.ASN1, CertificateFileFormat.PEM},
)
