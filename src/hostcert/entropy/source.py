"""Entropy acquisition for key generation.

:class:`EntropySource` walks an injected, ordered list of providers until
the fixed target byte count is reached.  Running short is never fatal:
certificate generation on a starved machine proceeds with whatever was
collected, and a warning names the shortfall.

Lifecycle of one pool::

    source = EntropySource(default_providers(settings.entropy), ...)
    state = source.load()          # harvest, warn on shortfall
    seed = source.consume(state)   # hand to key generation, exactly once
    source.save(state)             # refresh the persisted seed file

The saved seed is HKDF output keyed with fresh OpenSSL randomness (and
any unconsumed pool bytes) and salted with a nanosecond timestamp, so it
is never a verbatim copy of the material behind this run's key.
"""

from __future__ import annotations

import logging
import ssl
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from hostcert.core.errors import EntropyError
from hostcert.core.files import KEY_FILE_MODE, write_file_atomic
from hostcert.entropy.providers import (
    BlockingDeviceProvider,
    DeviceProvider,
    SeedFileProvider,
    default_seed_file,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hostcert.config.settings import EntropySettings
    from hostcert.entropy.providers import EntropyProvider

log = logging.getLogger(__name__)

DEFAULT_TARGET_BYTES = 256
DEFAULT_SEED_SIZE = 1024
# HKDF-SHA256 can expand to at most 255 hash lengths.
MAX_SEED_SIZE = 255 * 32

_SEED_INFO = b"hostcert entropy seed"


@dataclass
class EntropyState:
    """Working set of one harvest.

    Attributes
    ----------
    target:
        Bytes required for a full-quality seed.
    harvested:
        Bytes collected so far, in provider order.
    yields:
        Bytes contributed by each provider, keyed by provider name.
    consumed:
        Whether the pool has been handed to key generation.

    """

    target: int
    harvested: bytearray = field(default_factory=bytearray)
    yields: dict[str, int] = field(default_factory=dict)
    consumed: bool = False

    @property
    def size(self) -> int:
        return len(self.harvested)

    @property
    def missing(self) -> int:
        return max(self.target - len(self.harvested), 0)

    @property
    def shortfall(self) -> bool:
        return self.missing > 0


class EntropySource:
    """Harvest, hand out, and persist random seed material.

    Parameters
    ----------
    providers:
        Providers in strict priority order.
    target:
        Fixed number of bytes to collect, independent of key size.
    seed_file:
        Where :meth:`save` persists the refreshed seed.  ``None`` disables
        saving.
    seed_size:
        Number of bytes :meth:`save` writes.

    """

    def __init__(
        self,
        providers: Sequence[EntropyProvider],
        *,
        target: int = DEFAULT_TARGET_BYTES,
        seed_file: Path | None = None,
        seed_size: int = DEFAULT_SEED_SIZE,
    ) -> None:
        if target <= 0:
            msg = f"Entropy target must be positive (got {target})"
            raise ValueError(msg)
        if not 0 < seed_size <= MAX_SEED_SIZE:
            msg = f"Seed size must be between 1 and {MAX_SEED_SIZE} (got {seed_size})"
            raise ValueError(msg)
        self.providers = tuple(providers)
        self.target = target
        self.seed_file = Path(seed_file) if seed_file is not None else None
        self.seed_size = seed_size

    def load(self) -> EntropyState:
        """Fill a fresh :class:`EntropyState` from the provider chain.

        Stops at the first provider that completes the target.  Provider
        failures count as zero bytes.  Never raises for a shortfall.
        """
        state = EntropyState(target=self.target)

        for provider in self.providers:
            if not state.shortfall:
                break
            wanted = state.missing
            try:
                chunk = provider.read(wanted)
            except Exception as exc:  # noqa: BLE001
                log.debug("Entropy provider %s failed: %s", provider.name, exc)
                chunk = b""
            chunk = chunk[:wanted]
            state.harvested += chunk
            state.yields[provider.name] = len(chunk)
            log.debug(
                "Entropy provider %s yielded %d of %d bytes",
                provider.name,
                len(chunk),
                wanted,
            )

        if state.shortfall:
            self._warn_shortfall(state)
        else:
            log.debug("Entropy pool filled (%d bytes)", state.size)
        return state

    @staticmethod
    def _warn_shortfall(state: EntropyState) -> None:
        log.warning(
            "Insufficient random data: obtained %d of %d required bytes. "
            "The generated key may be weaker than intended; consider "
            "providing a seed file or running on a system with a random "
            "device.",
            state.size,
            state.target,
            extra={"entropy_obtained": state.size, "entropy_required": state.target},
        )

    def consume(self, state: EntropyState) -> bytes:
        """Return the harvested bytes and wipe the pool.

        Raises
        ------
        EntropyError
            If *state* has already been consumed.

        """
        if state.consumed:
            msg = "Entropy pool has already been consumed"
            raise EntropyError(msg)
        seed = bytes(state.harvested)
        state.harvested[:] = b"\x00" * len(state.harvested)
        state.harvested.clear()
        state.consumed = True
        return seed

    def save(self, state: EntropyState | None = None) -> bool:
        """Persist a refreshed seed to :attr:`seed_file`.

        Returns ``True`` when the file was written.  Write failures are
        logged and swallowed; the certificate may already exist.
        """
        if self.seed_file is None:
            return False

        key_material = ssl.RAND_bytes(self.seed_size)
        if state is not None and not state.consumed:
            key_material += bytes(state.harvested)
        salt = time.time_ns().to_bytes(8, "big")

        seed = HKDF(
            algorithm=hashes.SHA256(),
            length=self.seed_size,
            salt=salt,
            info=_SEED_INFO,
        ).derive(key_material)

        try:
            write_file_atomic(self.seed_file, seed, KEY_FILE_MODE)
        except OSError as exc:
            log.warning("Could not write random seed file %s: %s", self.seed_file, exc)
            return False

        log.debug("Saved %d byte random seed to %s", len(seed), self.seed_file)
        return True


def default_providers(settings: EntropySettings) -> list[EntropyProvider]:
    """Build the standard provider chain from entropy settings.

    Order: non-blocking device, blocking device (bounded wait), then the
    user-supplied seed file or, failing that, the persisted seed file.
    """
    seed_path = settings.user_seed_file or settings.seed_file or default_seed_file()
    return [
        DeviceProvider(settings.urandom_device),
        BlockingDeviceProvider(
            settings.random_device,
            max_wait=settings.max_wait_seconds,
        ),
        SeedFileProvider(seed_path),
    ]


def source_from_settings(settings: EntropySettings) -> EntropySource:
    """Return an :class:`EntropySource` wired to the default providers."""
    return EntropySource(
        default_providers(settings),
        target=settings.target_bytes,
        seed_file=settings.seed_file or default_seed_file(),
        seed_size=settings.seed_size,
    )
