"""Tests for the live rate ceiling reader."""

import os

import pytest

from hook_dispatcher.core.errors import CONFIG_READ_ERROR, ConfigReadAppError
from hook_dispatcher.core.live_config import LiveRateCeiling


def _write(path, text: str, bump: int) -> None:
    path.write_text(text, encoding="utf-8")
    # Force a distinct mtime even on coarse-grained filesystems.
    stamp = 1_700_000_000_000_000_000 + bump * 1_000_000_000
    os.utime(path, ns=(stamp, stamp))


def test_without_config_file_returns_startup_value() -> None:
    assert LiveRateCeiling(5).get_rate_ceiling() == 5


def test_reads_value_from_config_file(tmp_path) -> None:
    config_file = tmp_path / ".env"
    _write(config_file, "DISPATCHER_TOPIC=gitee-hook\nDISPATCHER_CONCURRENT_SIZE=8\n", 1)

    assert LiveRateCeiling(5, config_file).get_rate_ceiling() == 8


def test_picks_up_changes_to_the_file(tmp_path) -> None:
    config_file = tmp_path / ".env"
    _write(config_file, "DISPATCHER_CONCURRENT_SIZE=8\n", 1)
    ceiling = LiveRateCeiling(5, config_file)
    assert ceiling.get_rate_ceiling() == 8

    _write(config_file, "DISPATCHER_CONCURRENT_SIZE=0\n", 2)
    assert ceiling.get_rate_ceiling() == 0

    _write(config_file, "DISPATCHER_CONCURRENT_SIZE=-1\n", 3)
    assert ceiling.get_rate_ceiling() == -1


def test_missing_key_falls_back_to_startup_value(tmp_path) -> None:
    config_file = tmp_path / ".env"
    _write(config_file, "DISPATCHER_TOPIC=gitee-hook\n", 1)

    assert LiveRateCeiling(5, config_file).get_rate_ceiling() == 5


def test_removed_file_falls_back_to_startup_value(tmp_path) -> None:
    config_file = tmp_path / ".env"
    _write(config_file, "DISPATCHER_CONCURRENT_SIZE=8\n", 1)
    ceiling = LiveRateCeiling(5, config_file)
    assert ceiling.get_rate_ceiling() == 8

    config_file.unlink()

    assert ceiling.get_rate_ceiling() == 5


def test_non_integer_value_raises_and_recovers(tmp_path) -> None:
    config_file = tmp_path / ".env"
    _write(config_file, "DISPATCHER_CONCURRENT_SIZE=fast\n", 1)
    ceiling = LiveRateCeiling(5, config_file)

    with pytest.raises(ConfigReadAppError) as exc:
        ceiling.get_rate_ceiling()
    assert exc.value.code == CONFIG_READ_ERROR

    _write(config_file, "DISPATCHER_CONCURRENT_SIZE=3\n", 2)
    assert ceiling.get_rate_ceiling() == 3
