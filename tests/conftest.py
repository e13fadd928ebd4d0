"""Root conftest for the hostcert test suite."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from hostcert.entropy.providers import EntropyProvider  # noqa: E402


class StaticProvider(EntropyProvider):
    """Provider returning canned bytes (or raising) and recording calls."""

    def __init__(self, name: str, data: bytes = b"", exc: Exception | None = None) -> None:
        self.name = name
        self.data = data
        self.exc = exc
        self.calls: list[int] = []

    def read(self, num_bytes: int) -> bytes:
        self.calls.append(num_bytes)
        if self.exc is not None:
            raise self.exc
        return self.data[:num_bytes]


@pytest.fixture()
def static_provider():
    """Factory for :class:`StaticProvider` instances."""
    return StaticProvider


@pytest.fixture()
def entropy_source(tmp_path: Path):
    """An entropy source fed from canned random bytes, saving under tmp_path."""
    from hostcert.entropy.source import EntropySource

    return EntropySource(
        [StaticProvider("static", os.urandom(256))],
        seed_file=tmp_path / "seed" / ".rnd",
    )


@pytest.fixture()
def no_library_encoder(tmp_path: Path):
    """A domain name encoder whose search path holds no library."""
    from hostcert.idn.encoder import DomainNameEncoder

    empty = tmp_path / "empty-libdir"
    empty.mkdir()
    return DomainNameEncoder(search_dirs=[empty])


@pytest.fixture()
def config_data() -> dict:
    """Return a small but complete config dict."""
    return {
        "certificate": {
            "key_path": "/tmp/hostcert-test/key.pem",
            "cert_path": "/tmp/hostcert-test/cert.pem",
            "hostname": "agentbox",
            "domainname": "example.com",
            "start_days": -1,
            "end_days": 365,
            "bits": 2048,
        },
        "logging": {"level": "DEBUG", "format": "text"},
    }


@pytest.fixture()
def tmp_config_file(tmp_path: Path, config_data: dict) -> Path:
    """Write *config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "hostcert.yaml"
    cfg.write_text(
        yaml.safe_dump(config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


# ---------------------------------------------------------------------------
# Global state cleanup -- autouse so every test gets a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_state():
    """Reset the ``hostcert`` logger after each test."""
    yield
    root = logging.getLogger("hostcert")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
    root.propagate = True
