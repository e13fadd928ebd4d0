"""Host and domain name discovery for the local machine.

Used when neither the configuration nor the command line names the
host or domain the certificate is issued for.
"""

from __future__ import annotations

import logging
import socket

log = logging.getLogger(__name__)


def split_fqdn(fqdn: str) -> tuple[str, str]:
    """Split ``host.example.com`` into ``("host", "example.com")``.

    A trailing dot is ignored.  A bare name yields an empty domain.
    """
    name = fqdn.strip().rstrip(".")
    host, _, domain = name.partition(".")
    return host, domain


def discover_host_and_domain() -> tuple[str, str]:
    """Return the short hostname and DNS domain of this machine.

    The short name comes from :func:`socket.gethostname`.  The domain is
    taken from the hostname itself when it is fully qualified, otherwise
    from :func:`socket.getfqdn`.  Resolver failures leave the domain
    empty; they are not errors.
    """
    host, domain = split_fqdn(socket.gethostname())
    if domain:
        return host, domain

    try:
        fq_host, fq_domain = split_fqdn(socket.getfqdn())
    except OSError as exc:
        log.debug("FQDN lookup failed: %s", exc)
        return host, ""

    if not fq_domain or fq_domain == "localdomain":
        return host, ""
    if fq_host != host:
        log.debug(
            "FQDN host part %r differs from hostname %r; using its domain",
            fq_host,
            host,
        )
    return host, fq_domain
