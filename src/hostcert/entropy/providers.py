"""Entropy providers -- the sources an :class:`EntropySource` draws from.

Each provider returns *up to* the requested number of bytes.  Providers
may raise :class:`OSError` (missing device, permission denied, read
error); the entropy source treats any such failure as a zero-byte yield.
"""

from __future__ import annotations

import abc
import logging
import os
import select
import time
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

log = logging.getLogger(__name__)

URANDOM_DEVICE = "/dev/urandom"
RANDOM_DEVICE = "/dev/random"
DEFAULT_MAX_WAIT_SECONDS = 5.0

_SEED_FILE_ENV = "RANDFILE"
_DEFAULT_SEED_FILE_NAME = ".rnd"


def default_seed_file() -> Path:
    """Return the persisted seed file location.

    Follows the OpenSSL convention: ``$RANDFILE`` when set, otherwise
    ``~/.rnd``.
    """
    env = os.environ.get(_SEED_FILE_ENV)
    if env:
        return Path(env)
    return Path.home() / _DEFAULT_SEED_FILE_NAME


class EntropyProvider(abc.ABC):
    """A single source of random bytes."""

    name: str = "provider"

    @abc.abstractmethod
    def read(self, num_bytes: int) -> bytes:
        """Return at most *num_bytes* random bytes (possibly fewer)."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class DeviceProvider(EntropyProvider):
    """Read from a non-blocking random device such as ``/dev/urandom``."""

    def __init__(self, path: str | Path = URANDOM_DEVICE) -> None:
        self.path = Path(path)
        self.name = str(self.path)

    def read(self, num_bytes: int) -> bytes:
        data = bytearray()
        with open(self.path, "rb", buffering=0) as f:  # noqa: PTH123
            while len(data) < num_bytes:
                chunk = f.read(num_bytes - len(data))
                if not chunk:
                    break
                data += chunk
        return bytes(data)


class BlockingDeviceProvider(EntropyProvider):
    """Read from a blocking random device such as ``/dev/random``.

    The device is opened non-blocking and polled with :func:`select.select`
    so the whole read never takes longer than *max_wait* seconds.  Whatever
    arrived before the deadline is returned.
    """

    def __init__(
        self,
        path: str | Path = RANDOM_DEVICE,
        *,
        max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.path = Path(path)
        self.name = str(self.path)
        self.max_wait = max_wait
        self._clock = clock

    def read(self, num_bytes: int) -> bytes:
        deadline = self._clock() + self.max_wait
        data = bytearray()
        fd = os.open(self.path, os.O_RDONLY | os.O_NONBLOCK)
        try:
            while len(data) < num_bytes:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                ready, _, _ = select.select([fd], [], [], remaining)
                if not ready:
                    break
                try:
                    chunk = os.read(fd, num_bytes - len(data))
                except BlockingIOError:
                    continue
                if not chunk:
                    break
                data += chunk
        finally:
            os.close(fd)

        if len(data) < num_bytes:
            log.debug(
                "%s yielded %d of %d bytes within %.1fs",
                self.path,
                len(data),
                num_bytes,
                self.max_wait,
            )
        return bytes(data)


class SeedFileProvider(EntropyProvider):
    """Read seed material saved by a previous run (or supplied by the user)."""

    def __init__(self, path: str | Path | None) -> None:
        self.path = Path(path) if path is not None else None
        self.name = str(self.path) if self.path is not None else "seed-file"

    def read(self, num_bytes: int) -> bytes:
        if self.path is None or not self.path.is_file():
            return b""
        with self.path.open("rb") as f:
            return f.read(num_bytes)
