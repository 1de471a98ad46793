"""Unit tests for SystemTimeAuthority and FakeTimeAuthority."""

from datetime import datetime, timedelta, timezone

import pytest

from civic_consensus.infrastructure.adapters.system_time_authority import (
    SystemTimeAuthority,
)
from tests.helpers import FakeTimeAuthority


def test_system_clock_is_utc() -> None:
    clock = SystemTimeAuthority()
    assert clock.now().tzinfo == timezone.utc
    first = clock.monotonic()
    assert clock.monotonic() >= first


class TestFakeTimeAuthority:
    def test_advance(self, fake_time_authority: FakeTimeAuthority) -> None:
        start = fake_time_authority.now()

        fake_time_authority.advance(delta=timedelta(hours=72))
        fake_time_authority.advance(seconds=30)

        assert fake_time_authority.now() - start == timedelta(hours=72, seconds=30)
        assert fake_time_authority.monotonic() == 72 * 3600 + 30

    def test_rejects_backwards_steps(self, fake_time_authority: FakeTimeAuthority) -> None:
        with pytest.raises(ValueError):
            fake_time_authority.advance(seconds=-1)
        with pytest.raises(ValueError):
            fake_time_authority.advance()

    def test_naive_times_are_utc(self) -> None:
        clock = FakeTimeAuthority(datetime(2026, 1, 1))
        clock.set_time(datetime(2026, 2, 1))
        assert clock.now() == datetime(2026, 2, 1, tzinfo=timezone.utc)
