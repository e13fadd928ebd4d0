"""Certificate-building helpers.

Key-usage and extended-key-usage mappings, the signature hash table,
and subject-name composition for host certificates.
"""

from __future__ import annotations

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from hostcert.core.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Key usage / EKU mappings
# ---------------------------------------------------------------------------

_EKU_OIDS = {
    "server_auth": ExtendedKeyUsageOID.SERVER_AUTH,
    "client_auth": ExtendedKeyUsageOID.CLIENT_AUTH,
}

SERVER_EKUS = ("server_auth",)
CLIENT_EKUS = ("client_auth",)

HASH_ALGORITHMS = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


def host_key_usage() -> x509.KeyUsage:
    """Key usage of a host certificate: signatures and key transport only."""
    return x509.KeyUsage(
        digital_signature=True,
        content_commitment=False,
        key_encipherment=True,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=False,
        crl_sign=False,
        encipher_only=False,
        decipher_only=False,
    )


def build_eku(ekus: tuple[str, ...]) -> x509.ExtendedKeyUsage:
    """Build an :class:`x509.ExtendedKeyUsage` extension from usage names."""
    oids = []
    for name in ekus:
        oid = _EKU_OIDS.get(name)
        if oid is None:
            msg = f"Unknown extended key usage '{name}'; supported: {sorted(_EKU_OIDS)}"
            raise ConfigurationError(msg)
        oids.append(oid)
    return x509.ExtendedKeyUsage(oids)


def usage_ekus(*, client_cert: bool) -> tuple[str, ...]:
    """Return the EKU names for a client or a server certificate."""
    return CLIENT_EKUS if client_cert else SERVER_EKUS


def hash_algorithm(name: str) -> hashes.HashAlgorithm:
    factory = HASH_ALGORITHMS.get(name.lower())
    if factory is None:
        msg = f"Unsupported hash algorithm '{name}'; supported: {sorted(HASH_ALGORITHMS)}"
        raise ConfigurationError(msg)
    return factory()


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------


def common_name_for(hostname: str, domainname: str) -> str:
    """Return ``host.domain``, or ``host`` alone when the domain is empty."""
    domain = domainname.strip(".")
    return f"{hostname}.{domain}" if domain else hostname


def build_subject(hostname: str, domainname: str) -> x509.Name:
    """Build the subject: one ``DC`` per domain label, then the ``CN``.

    ``DC`` attributes are IA5 strings, so they are only added when the
    domain is ASCII (i.e. already converted or never internationalized).
    """
    domain = domainname.strip(".")
    attributes = []
    if domain and domain.isascii():
        attributes.extend(
            x509.NameAttribute(NameOID.DOMAIN_COMPONENT, label)
            for label in reversed(domain.split("."))
            if label
        )
    attributes.append(
        x509.NameAttribute(NameOID.COMMON_NAME, common_name_for(hostname, domain)),
    )
    return x509.Name(attributes)


def build_san(hostname: str, domainname: str) -> x509.SubjectAlternativeName | None:
    """Return a SAN with the FQDN and the bare hostname, where ASCII."""
    names: list[str] = []
    for candidate in (common_name_for(hostname, domainname), hostname):
        if candidate and candidate.isascii() and candidate not in names:
            names.append(candidate)
    if not names:
        return None
    return x509.SubjectAlternativeName([x509.DNSName(n) for n in names])
