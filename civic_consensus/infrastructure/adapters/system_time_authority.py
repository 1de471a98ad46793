"""Wall-clock implementation of TimeAuthorityProtocol."""

from __future__ import annotations

import time
from datetime import datetime, timezone

from civic_consensus.application.ports.time_authority import TimeAuthorityProtocol


class SystemTimeAuthority(TimeAuthorityProtocol):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()
