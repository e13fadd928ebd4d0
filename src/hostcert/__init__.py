"""hostcert -- self-signed X.509 host certificates for agent TLS identity."""

__version__ = "1.0.0"
