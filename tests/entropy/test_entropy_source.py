"""Tests for hostcert.entropy.source -- harvesting, hand-off and seed persistence."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

import pytest

from hostcert.config.settings import EntropySettings
from hostcert.core.errors import EntropyError
from hostcert.entropy.providers import (
    BlockingDeviceProvider,
    DeviceProvider,
    SeedFileProvider,
)
from hostcert.entropy.source import (
    DEFAULT_TARGET_BYTES,
    MAX_SEED_SIZE,
    EntropySource,
    EntropyState,
    default_providers,
    source_from_settings,
)


def _entropy_settings(**overrides) -> EntropySettings:
    values = {
        "target_bytes": 256,
        "seed_file": None,
        "user_seed_file": None,
        "seed_size": 1024,
        "max_wait_seconds": 5.0,
        "urandom_device": "/dev/urandom",
        "random_device": "/dev/random",
    }
    values.update(overrides)
    return EntropySettings(**values)


# ---------------------------------------------------------------------------
# EntropyState
# ---------------------------------------------------------------------------


class TestEntropyState:
    def test_empty_state_is_short(self):
        state = EntropyState(target=16)
        assert state.size == 0
        assert state.missing == 16
        assert state.shortfall is True

    def test_full_state(self):
        state = EntropyState(target=4, harvested=bytearray(b"abcd"))
        assert state.missing == 0
        assert state.shortfall is False


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_defaults(self):
        source = EntropySource([])
        assert source.target == DEFAULT_TARGET_BYTES
        assert source.seed_file is None

    @pytest.mark.parametrize("target", [0, -1])
    def test_rejects_non_positive_target(self, target):
        with pytest.raises(ValueError, match="target"):
            EntropySource([], target=target)

    @pytest.mark.parametrize("seed_size", [0, MAX_SEED_SIZE + 1])
    def test_rejects_bad_seed_size(self, seed_size):
        with pytest.raises(ValueError, match="Seed size"):
            EntropySource([], seed_size=seed_size)


# ---------------------------------------------------------------------------
# load()
# ---------------------------------------------------------------------------


class TestLoad:
    def test_first_provider_fills_pool(self, static_provider):
        first = static_provider("first", b"a" * 300)
        second = static_provider("second", b"b" * 300)
        state = EntropySource([first, second], target=256).load()

        assert state.size == 256
        assert state.shortfall is False
        assert bytes(state.harvested) == b"a" * 256
        assert second.calls == []

    def test_providers_consulted_in_order_for_missing_bytes(self, static_provider):
        first = static_provider("first", b"a" * 100)
        second = static_provider("second", b"b" * 500)
        third = static_provider("third", b"c" * 500)
        state = EntropySource([first, second, third], target=256).load()

        assert first.calls == [256]
        assert second.calls == [156]
        assert third.calls == []
        assert bytes(state.harvested) == b"a" * 100 + b"b" * 156
        assert state.yields == {"first": 100, "second": 156}

    def test_oversized_chunk_is_truncated(self, static_provider):
        class Greedy(static_provider):
            def read(self, num_bytes):
                self.calls.append(num_bytes)
                return self.data

        state = EntropySource([Greedy("greedy", b"z" * 1000)], target=32).load()
        assert state.size == 32

    def test_failing_provider_counts_as_zero(self, static_provider):
        broken = static_provider("broken", exc=OSError("no such device"))
        backup = static_provider("backup", b"k" * 64)
        state = EntropySource([broken, backup], target=64).load()

        assert state.size == 64
        assert state.yields["broken"] == 0
        assert backup.calls == [64]

    def test_no_providers_warns_but_does_not_raise(self, caplog):
        with caplog.at_level(logging.WARNING, logger="hostcert.entropy.source"):
            state = EntropySource([], target=256).load()

        assert state.size == 0
        assert state.shortfall is True
        assert "Insufficient random data: obtained 0 of 256" in caplog.text

    def test_unavailable_devices_yield_nothing(self, tmp_path: Path):
        source = EntropySource(
            [
                DeviceProvider(tmp_path / "no-urandom"),
                BlockingDeviceProvider(tmp_path / "no-random", max_wait=0.1),
                SeedFileProvider(tmp_path / "no-seed"),
            ],
        )
        state = source.load()
        assert state.size == 0
        assert state.shortfall is True

    def test_shortfall_warning_names_both_counts(self, static_provider, caplog):
        source = EntropySource([static_provider("tiny", b"x" * 40)], target=256)
        with caplog.at_level(logging.WARNING, logger="hostcert.entropy.source"):
            state = source.load()

        assert state.size == 40
        records = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(records) == 1
        assert records[0].entropy_obtained == 40
        assert records[0].entropy_required == 256
        assert "obtained 40 of 256" in records[0].getMessage()

    def test_full_pool_does_not_warn(self, static_provider, caplog):
        source = EntropySource([static_provider("full", os.urandom(256))])
        with caplog.at_level(logging.WARNING, logger="hostcert.entropy.source"):
            source.load()
        assert "Insufficient" not in caplog.text

    def test_each_load_returns_fresh_state(self, static_provider):
        provider = static_provider("p", b"q" * 8)
        source = EntropySource([provider], target=8)
        assert source.load() is not source.load()
        assert provider.calls == [8, 8]


# ---------------------------------------------------------------------------
# consume()
# ---------------------------------------------------------------------------


class TestConsume:
    def test_returns_harvest_and_wipes_pool(self, static_provider):
        source = EntropySource([static_provider("p", b"s" * 16)], target=16)
        state = source.load()

        seed = source.consume(state)

        assert seed == b"s" * 16
        assert state.consumed is True
        assert state.size == 0

    def test_second_consume_raises(self, static_provider):
        source = EntropySource([static_provider("p", b"s" * 16)], target=16)
        state = source.load()
        source.consume(state)

        with pytest.raises(EntropyError, match="already been consumed"):
            source.consume(state)

    def test_consume_of_empty_pool(self):
        source = EntropySource([], target=16)
        state = source.load()
        assert source.consume(state) == b""


# ---------------------------------------------------------------------------
# save()
# ---------------------------------------------------------------------------


class TestSave:
    def test_without_seed_file_is_noop(self):
        assert EntropySource([]).save() is False

    def test_writes_owner_only_seed(self, tmp_path: Path):
        seed_file = tmp_path / "state" / ".rnd"
        source = EntropySource([], seed_file=seed_file, seed_size=512)

        assert source.save() is True
        assert seed_file.stat().st_size == 512
        assert stat.S_IMODE(seed_file.stat().st_mode) == 0o600

    def test_saved_seed_is_not_the_harvest(self, tmp_path: Path, static_provider):
        harvest = os.urandom(64)
        seed_file = tmp_path / ".rnd"
        source = EntropySource(
            [static_provider("p", harvest)],
            target=64,
            seed_file=seed_file,
            seed_size=64,
        )
        state = source.load()
        source.save(state)

        assert seed_file.read_bytes() != harvest

    def test_consecutive_saves_differ(self, tmp_path: Path):
        seed_file = tmp_path / ".rnd"
        source = EntropySource([], seed_file=seed_file, seed_size=64)

        source.save()
        first = seed_file.read_bytes()
        source.save()
        assert seed_file.read_bytes() != first

    def test_write_failure_is_swallowed(self, tmp_path: Path, caplog):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file", encoding="utf-8")
        source = EntropySource([], seed_file=blocker / ".rnd")

        with caplog.at_level(logging.WARNING, logger="hostcert.entropy.source"):
            assert source.save() is False
        assert "Could not write random seed file" in caplog.text

    def test_saved_seed_feeds_next_run(self, tmp_path: Path):
        seed_file = tmp_path / ".rnd"
        EntropySource([], seed_file=seed_file, seed_size=256).save()

        state = EntropySource([SeedFileProvider(seed_file)], target=256).load()
        assert state.size == 256
        assert state.shortfall is False


# ---------------------------------------------------------------------------
# Wiring from settings
# ---------------------------------------------------------------------------


class TestDefaultProviders:
    def test_order_and_types(self, tmp_path: Path):
        seed = tmp_path / "seed"
        providers = default_providers(_entropy_settings(seed_file=str(seed), max_wait_seconds=1.5))

        assert [type(p) for p in providers] == [
            DeviceProvider,
            BlockingDeviceProvider,
            SeedFileProvider,
        ]
        assert providers[0].path == Path("/dev/urandom")
        assert providers[1].path == Path("/dev/random")
        assert providers[1].max_wait == 1.5
        assert providers[2].path == seed

    def test_user_seed_file_takes_precedence(self, tmp_path: Path):
        providers = default_providers(
            _entropy_settings(
                seed_file=str(tmp_path / "persisted"),
                user_seed_file=str(tmp_path / "user"),
            ),
        )
        assert providers[2].path == tmp_path / "user"

    def test_falls_back_to_randfile(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("RANDFILE", str(tmp_path / "randfile"))
        providers = default_providers(_entropy_settings())
        assert providers[2].path == tmp_path / "randfile"


class TestSourceFromSettings:
    def test_uses_settings(self, tmp_path: Path):
        source = source_from_settings(
            _entropy_settings(target_bytes=128, seed_size=64, seed_file=str(tmp_path / "s")),
        )
        assert source.target == 128
        assert source.seed_size == 64
        assert source.seed_file == tmp_path / "s"
        assert len(source.providers) == 3

    def test_default_seed_file_from_environment(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("RANDFILE", str(tmp_path / "env-seed"))
        source = source_from_settings(_entropy_settings())
        assert source.seed_file == tmp_path / "env-seed"
