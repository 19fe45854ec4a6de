"""
Pytest configuration and fixtures for Pitbot tests.
"""

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from pitbot.configuration.pit_settings import PitSettings  # noqa: E402
from pitbot.database.ledger_store import LedgerStore  # noqa: E402
from pitbot.errors import ExternalStateError, NotificationDeliveryError  # noqa: E402
from pitbot.moderation.moderation_context import ModerationContext  # noqa: E402
from pitbot.moderation.pit_engine import PitEngine  # noqa: E402

T0 = 1_700_000_000_000
HOUR = 3_600_000
DAY = 24 * HOUR


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FakeFlag:
    """In-memory pit role. Users outside ``members`` are not observable."""

    def __init__(self) -> None:
        self.flagged: set = set()
        self.members: set | None = None
        self.calls: list = []
        self.fail = False

    async def is_flagged(self, user_id):
        if self.members is not None and user_id not in self.members:
            return None
        return user_id in self.flagged

    async def set_flagged(self, user_id, flagged, reason=None):
        self.calls.append((user_id, flagged, reason))
        if self.fail:
            raise ExternalStateError("Missing Permissions")
        if flagged:
            self.flagged.add(user_id)
        else:
            self.flagged.discard(user_id)

    async def flagged_user_ids(self):
        return set(self.flagged)


class FakeNotifier:
    """Records DMs and log posts; either side can be made to fail."""

    def __init__(self) -> None:
        self.dms: list = []
        self.logs: list = []
        self.dm_fail = False
        self.log_fail = False

    async def send_dm(self, user_id, embed):
        if self.dm_fail:
            raise NotificationDeliveryError("Cannot send messages to this user")
        self.dms.append((user_id, embed))

    async def send_log(self, embed=None, content=None):
        if self.log_fail:
            raise NotificationDeliveryError("Missing Access")
        self.logs.append((embed, content))


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def store(tmp_path):
    ledger = LedgerStore(tmp_path / "ledger.db")
    await ledger.open()
    yield ledger
    await ledger.close()


@pytest.fixture
def settings():
    return PitSettings({"guild_id": 10, "log_channel_id": 20, "pit_role_id": 30, "moderator_role_ids": [40]})


@pytest.fixture
def ctx(store, settings, clock):
    return ModerationContext(store=store, settings=settings, flag=FakeFlag(), notifier=FakeNotifier(), clock=clock)


@pytest.fixture
def engine(ctx):
    return PitEngine(ctx)
