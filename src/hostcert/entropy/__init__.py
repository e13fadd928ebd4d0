"""Entropy acquisition for key generation.

Exports the entropy source, its state, the provider types, and the
helpers that wire the default provider chain from settings.
"""

from hostcert.entropy.providers import (
    BlockingDeviceProvider,
    DeviceProvider,
    EntropyProvider,
    SeedFileProvider,
    default_seed_file,
)
from hostcert.entropy.source import (
    EntropySource,
    EntropyState,
    default_providers,
    source_from_settings,
)

__all__ = [
    "BlockingDeviceProvider",
    "DeviceProvider",
    "EntropyProvider",
    "EntropySource",
    "EntropyState",
    "SeedFileProvider",
    "default_providers",
    "default_seed_file",
    "source_from_settings",
]
