"""hostcert command-line entry point.

Usage::

    hostcert
    hostcert -c /etc/opt/hostcert/hostcert.yaml
    hostcert -H agentbox -d example.com -g /etc/opt/hostcert/ssl --force
    hostcert -s -1 -e 365 -b 3072 --client-cert
    hostcert -c hostcert.yaml --validate-only
    python -m hostcert --version

Exit status: 0 on success (or when an existing certificate was left in
place), 1 when generation failed, 2 when the configuration is invalid.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hostcert.config.settings import HostcertSettings

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2


def _get_version() -> str:
    from hostcert import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostcert",
        description="Generate a self-signed X.509 host certificate and key.",
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="PATH",
        help="Configuration file (YAML or JSON). Defaults apply when omitted.",
    )
    parser.add_argument("-H", "--host", help="Host name (default: this machine's short name).")
    parser.add_argument("-d", "--domain", help="Domain name; may be internationalized.")
    parser.add_argument(
        "-g",
        "--target-dir",
        metavar="DIR",
        help="Directory receiving both files; keeps the configured file names.",
    )
    parser.add_argument("-k", "--key-path", metavar="PATH", help="Private key output file.")
    parser.add_argument("-o", "--cert-path", metavar="PATH", help="Certificate output file.")
    parser.add_argument(
        "-s",
        "--start-days",
        type=int,
        metavar="DAYS",
        help="Offset in days of the validity start (may be negative).",
    )
    parser.add_argument(
        "-e",
        "--end-days",
        type=int,
        metavar="DAYS",
        help="Offset in days of the validity end.",
    )
    parser.add_argument("-b", "--bits", type=int, help="Key length in bits.")
    parser.add_argument(
        "--client-cert",
        action="store_true",
        default=None,
        help="Issue a client-authentication certificate instead of a server one.",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        default=False,
        help="Overwrite an existing certificate.",
    )
    parser.add_argument(
        "--seed-file",
        metavar="PATH",
        help="User-supplied random seed file.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Report progress and domain conversion diagnostics.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration and exit.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"hostcert: error: {message}", file=sys.stderr)  # noqa: T201


def _apply_overrides(settings: HostcertSettings, args: argparse.Namespace) -> HostcertSettings:
    """Layer command-line options over the loaded settings."""
    cert = settings.certificate
    changes: dict = {}

    if args.target_dir:
        target = Path(args.target_dir)
        changes["key_path"] = str(target / Path(cert.key_path).name)
        changes["cert_path"] = str(target / Path(cert.cert_path).name)
    if args.key_path:
        changes["key_path"] = args.key_path
    if args.cert_path:
        changes["cert_path"] = args.cert_path

    for option, field_name in (
        ("host", "hostname"),
        ("domain", "domainname"),
        ("start_days", "start_days"),
        ("end_days", "end_days"),
        ("bits", "bits"),
        ("client_cert", "client_cert"),
    ):
        value = getattr(args, option)
        if value is not None:
            changes[field_name] = value

    if changes:
        settings = settings.with_certificate(**changes)
    if args.seed_file:
        settings = settings.with_entropy(user_seed_file=args.seed_file)
    return settings


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, generates."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    from hostcert.config import ConfigValidationError, HostcertConfig, validate_settings

    if args.config and not Path(args.config).is_file():
        _print_error(f"configuration file not found: {args.config}")
        sys.exit(EXIT_CONFIG)

    try:
        config = HostcertConfig(config_file=args.config)
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(EXIT_CONFIG)

    settings = _apply_overrides(config.settings, args)
    if settings != config.settings:
        try:
            validate_settings(settings)
        except ConfigValidationError as exc:
            _print_error(str(exc))
            sys.exit(EXIT_CONFIG)

    # -- replace bootstrap logging with configured logging ---
    from hostcert.logging import configure_logging

    root = configure_logging(settings.logging)
    if args.debug:
        root.setLevel(logging.DEBUG)
    elif args.verbose and root.level > logging.INFO:
        root.setLevel(logging.INFO)

    if args.validate_only:
        _print_settings_summary(settings)
        sys.exit(EXIT_OK)

    sys.exit(_run_generate(settings, args))


def _run_generate(settings: HostcertSettings, args: argparse.Namespace) -> int:
    """Generate the certificate; return the process exit status."""
    from hostcert.cert import builder_from_settings
    from hostcert.core.errors import ConfigurationError, HostCertError

    cert_path = Path(settings.certificate.cert_path)
    if cert_path.exists() and not args.force:
        print(  # noqa: T201
            f"Certificate {cert_path} already exists; use --force to replace it.",
        )
        return EXIT_OK

    diagnostics: list[str] = []
    try:
        builder = builder_from_settings(settings)
        result = builder.generate(diagnostics)
    except ConfigurationError as exc:
        _print_error(exc.detail)
        return EXIT_CONFIG
    except HostCertError as exc:
        if args.debug:
            raise
        _print_error(exc.detail)
        return EXIT_FAILURE

    if args.verbose:
        for message in diagnostics:
            print(f"Domain name conversion: {message}")  # noqa: T201
        print(f"Generated certificate for {result.common_name}")  # noqa: T201
        print(f"  certificate: {result.cert_path}")  # noqa: T201
        print(f"  private key: {result.key_path}")  # noqa: T201
        print(f"  valid:       {result.not_before:%Y-%m-%d} to {result.not_after:%Y-%m-%d}")  # noqa: T201
        print(f"  sha256:      {result.fingerprint}")  # noqa: T201
    return EXIT_OK


def _print_settings_summary(settings: HostcertSettings) -> None:
    """Print a short summary of the effective configuration."""
    cert = settings.certificate
    entropy = settings.entropy
    lines = [
        "Configuration OK",
        f"  host:        {cert.hostname or '(discovered)'}",
        f"  domain:      {cert.domainname if cert.domainname is not None else '(discovered)'}",
        f"  key:         {cert.key_path} ({cert.key_algorithm} {cert.bits} bits)",
        f"  certificate: {cert.cert_path} ({cert.file_format})",
        f"  validity:    {cert.start_days} to {cert.end_days} days",
        f"  usage:       {'client' if cert.client_cert else 'server'} authentication",
        f"  seed file:   {entropy.user_seed_file or entropy.seed_file or '(default)'}",
    ]
    print("\n".join(lines))  # noqa: T201
