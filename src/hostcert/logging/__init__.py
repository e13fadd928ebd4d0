"""Logging subsystem for hostcert.

Public API::

    from hostcert.logging import configure_logging

    configure_logging(settings.logging)
"""

from hostcert.logging.setup import configure_logging

__all__ = ["configure_logging"]
