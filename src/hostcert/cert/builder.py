"""Self-signed host certificate generation.

:class:`CertificateBuilder` runs one issuance end to end:

1. validate the request (nothing is touched on failure)
2. harvest entropy, if not already loaded
3. convert the domain name to its ASCII-compatible form (best effort)
4. generate the key pair, seeding OpenSSL with the harvested entropy
5. build a CSR and self-sign a certificate from it
6. write the key (owner-only) and then the certificate
7. persist a refreshed entropy seed (best effort)
"""

from __future__ import annotations

import hashlib
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.bindings.openssl.binding import Binding
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from hostcert.cert.base import CertificateRequestSpec, GeneratedCertificate
from hostcert.cert.cert_utils import (
    build_eku,
    host_key_usage,
    build_san,
    build_subject,
    common_name_for,
    hash_algorithm,
    usage_ekus,
)
from hostcert.config.settings import DEFAULT_ENTROPY, DEFAULT_IDN
from hostcert.core.errors import (
    ConfigurationError,
    KeyGenerationError,
    OutputWriteError,
    SigningError,
)
from hostcert.core.files import KEY_FILE_MODE, PUBLIC_FILE_MODE, write_file_atomic
from hostcert.core.host import discover_host_and_domain
from hostcert.core.types import (
    SUPPORTED_FILE_FORMATS,
    SUPPORTED_KEY_ALGORITHMS,
    CertificateFileFormat,
    KeyAlgorithm,
)
from hostcert.entropy.source import source_from_settings
from hostcert.idn.encoder import DomainNameEncoder

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

    from hostcert.config.settings import CertificateSettings, HostcertSettings
    from hostcert.entropy.source import EntropySource, EntropyState

log = logging.getLogger(__name__)

RSA_PUBLIC_EXPONENT = 65537

_ENCODINGS = {
    CertificateFileFormat.PEM: serialization.Encoding.PEM,
    CertificateFileFormat.ASN1: serialization.Encoding.DER,
}


def mix_into_key_generator(seed: bytes) -> None:
    """Add *seed* to the random generator used by ``cryptography``.

    ``cryptography`` links its own OpenSSL, not the one behind :mod:`ssl`;
    each byte is credited as one byte of entropy.
    """
    binding = Binding()
    binding.lib.RAND_add(binding.ffi.from_buffer(seed), len(seed), float(len(seed)))


class CertificateBuilder:
    """Generate a self-signed certificate and key for one request.

    Parameters
    ----------
    spec:
        The issuance request; never mutated.
    entropy:
        Entropy source for key generation.  Defaults to the standard
        device/seed-file chain.
    encoder:
        Domain name encoder.  Defaults to the libidn-backed encoder with
        the standard search directories.

    """

    def __init__(
        self,
        spec: CertificateRequestSpec,
        *,
        entropy: EntropySource | None = None,
        encoder: DomainNameEncoder | None = None,
    ) -> None:
        self.spec = spec
        self._entropy = entropy if entropy is not None else source_from_settings(DEFAULT_ENTROPY)
        self._encoder = encoder if encoder is not None else DomainNameEncoder.from_settings(DEFAULT_IDN)
        self._state: EntropyState | None = None

    # -- validation ---------------------------------------------------------

    def validate(self) -> None:
        """Reject an unusable request.

        Raises
        ------
        ConfigurationError
            If the validity window, key length, hostname, algorithm,
            format or hash is invalid.

        """
        spec = self.spec
        if spec.end_days <= spec.start_days:
            msg = (
                f"Certificate end offset ({spec.end_days} days) must be later "
                f"than its start offset ({spec.start_days} days)"
            )
            raise ConfigurationError(msg)
        if spec.bits <= 0:
            msg = f"Key length must be positive (got {spec.bits})"
            raise ConfigurationError(msg)
        if not spec.hostname or not spec.hostname.strip():
            msg = "A hostname is required"
            raise ConfigurationError(msg)
        if spec.key_algorithm not in SUPPORTED_KEY_ALGORITHMS:
            msg = f"Key algorithm '{spec.key_algorithm}' is not supported"
            raise ConfigurationError(msg)
        if spec.file_format not in SUPPORTED_FILE_FORMATS:
            msg = f"Output format '{spec.file_format}' is not supported"
            raise ConfigurationError(msg)
        hash_algorithm(spec.hash_algorithm)

    # -- entropy ------------------------------------------------------------

    def load_entropy(self) -> EntropyState:
        """Harvest entropy unless an unconsumed pool is already loaded."""
        if self._state is None or self._state.consumed:
            self._state = self._entropy.load()
        return self._state

    # -- generation ---------------------------------------------------------

    def generate(self, diagnostics: list[str] | None = None) -> GeneratedCertificate:
        """Issue the certificate described by :attr:`spec`.

        Parameters
        ----------
        diagnostics:
            Optional list receiving non-fatal domain-encoding messages.

        Raises
        ------
        ConfigurationError
            Before anything is generated or written.
        KeyGenerationError
            If the key pair cannot be generated.
        SigningError
            If the request or certificate cannot be signed.
        OutputWriteError
            If the key or certificate cannot be written.

        """
        self.validate()
        spec = self.spec
        collected: list[str] = []

        state = self.load_entropy()
        entropy_bytes = state.size

        domain = self._encoder.encode(spec.domainname, collected) if spec.domainname else ""
        if diagnostics is not None:
            diagnostics.extend(collected)
        common_name = common_name_for(spec.hostname, domain)

        key = self._generate_key(state)
        cert = self._build_certificate(key, spec.hostname, domain)
        self._write_outputs(key, cert)

        self._entropy.save(state)

        fingerprint = hashlib.sha256(
            cert.public_bytes(serialization.Encoding.DER),
        ).hexdigest()
        serial_str = format(cert.serial_number, "x")

        log.info(
            "Generated self-signed %s certificate: serial=%s, cn=%s, "
            "valid %s to %s, cert=%s, key=%s",
            "client" if spec.client_cert else "server",
            serial_str,
            common_name,
            cert.not_valid_before_utc.isoformat(),
            cert.not_valid_after_utc.isoformat(),
            spec.cert_path,
            spec.key_path,
            extra={
                "serial_number": serial_str,
                "common_name": common_name,
                "cert_path": str(spec.cert_path),
            },
        )

        return GeneratedCertificate(
            key_path=Path(spec.key_path),
            cert_path=Path(spec.cert_path),
            common_name=common_name,
            not_before=cert.not_valid_before_utc,
            not_after=cert.not_valid_after_utc,
            serial_number=serial_str,
            fingerprint=fingerprint,
            entropy_bytes=entropy_bytes,
            diagnostics=tuple(collected),
        )

    def _generate_key(self, state: EntropyState) -> rsa.RSAPrivateKey:
        """Seed OpenSSL with the harvested pool and generate the key pair."""
        seed = self._entropy.consume(state)
        if seed:
            mix_into_key_generator(seed)
        try:
            return rsa.generate_private_key(
                public_exponent=RSA_PUBLIC_EXPONENT,
                key_size=self.spec.bits,
            )
        except Exception as exc:  # noqa: BLE001
            msg = f"Failed to generate {self.spec.bits}-bit RSA key: {exc}"
            raise KeyGenerationError(msg) from exc

    def _build_certificate(
        self,
        key: rsa.RSAPrivateKey,
        hostname: str,
        domain: str,
    ) -> x509.Certificate:
        """Build a CSR for the host and self-sign a certificate from it."""
        spec = self.spec
        digest = hash_algorithm(spec.hash_algorithm)
        subject = build_subject(hostname, domain)
        san = build_san(hostname, domain)

        try:
            request = x509.CertificateSigningRequestBuilder().subject_name(subject)
            if san is not None:
                request = request.add_extension(san, critical=False)
            csr = request.sign(key, digest)

            now = datetime.now(UTC)
            builder = (
                x509.CertificateBuilder()
                .subject_name(csr.subject)
                .issuer_name(csr.subject)
                .public_key(csr.public_key())
                .serial_number(x509.random_serial_number())
                .not_valid_before(now + timedelta(days=spec.start_days))
                .not_valid_after(now + timedelta(days=spec.end_days))
            )
            builder = builder.add_extension(
                x509.BasicConstraints(ca=False, path_length=None),
                critical=True,
            )
            builder = builder.add_extension(
                host_key_usage(),
                critical=True,
            )
            builder = builder.add_extension(
                build_eku(usage_ekus(client_cert=spec.client_cert)),
                critical=False,
            )
            if san is not None:
                builder = builder.add_extension(san, critical=False)
            builder = builder.add_extension(
                x509.SubjectKeyIdentifier.from_public_key(csr.public_key()),
                critical=False,
            )
            return builder.sign(key, digest)
        except Exception as exc:  # noqa: BLE001
            msg = f"Failed to build/sign certificate: {exc}"
            raise SigningError(msg) from exc

    def _write_outputs(self, key: PrivateKeyTypes, cert: x509.Certificate) -> None:
        """Write the key, then the certificate, in the requested format."""
        spec = self.spec
        encoding = _ENCODINGS[spec.file_format]

        key_bytes = key.private_bytes(
            encoding,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
        cert_bytes = cert.public_bytes(encoding)

        for label, path, data, mode in (
            ("private key", spec.key_path, key_bytes, KEY_FILE_MODE),
            ("certificate", spec.cert_path, cert_bytes, PUBLIC_FILE_MODE),
        ):
            try:
                write_file_atomic(Path(path), data, mode)
            except OSError as exc:
                msg = f"Failed to write {label} to {path}: {exc}"
                raise OutputWriteError(msg) from exc
            log.debug("Wrote %s to %s (mode=%o)", label, path, mode)


def request_from_settings(settings: CertificateSettings) -> CertificateRequestSpec:
    """Build a request spec, discovering host and domain when unset."""
    hostname = settings.hostname
    domainname = settings.domainname
    if hostname is None or domainname is None:
        found_host, found_domain = discover_host_and_domain()
        hostname = hostname if hostname is not None else found_host
        domainname = domainname if domainname is not None else found_domain
        log.debug("Using host=%s domain=%s", hostname, domainname or "(none)")

    return CertificateRequestSpec(
        key_path=Path(settings.key_path),
        cert_path=Path(settings.cert_path),
        start_days=settings.start_days,
        end_days=settings.end_days,
        hostname=hostname,
        domainname=domainname,
        bits=settings.bits,
        client_cert=settings.client_cert,
        key_algorithm=KeyAlgorithm(settings.key_algorithm),
        file_format=CertificateFileFormat(settings.file_format),
        hash_algorithm=settings.hash_algorithm,
    )


def builder_from_settings(settings: HostcertSettings) -> CertificateBuilder:
    """Wire a :class:`CertificateBuilder` from the full settings tree."""
    return CertificateBuilder(
        request_from_settings(settings.certificate),
        entropy=source_from_settings(settings.entropy),
        encoder=DomainNameEncoder.from_settings(settings.idn),
    )
