"""Pytest configuration and fixtures."""
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["INTERNAL_API_SECRET"] = "test-secret"
os.environ["DISCORD_BOT_TOKEN"] = "test-token"
os.environ["DISCORD_GUILD_ID"] = "1000"
os.environ["DISCORD_ROLE_NAME"] = "Player"
os.environ["DISCORD_ROLE_IDS"] = ""
os.environ["BULK_CHECKIN_CONCURRENCY"] = "1"

from dataclasses import replace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from league.models import init_db
from league.models.base import async_session_factory, engine
from league.models.event_player import CHECKIN_ELIGIBLE_STATUSES, CONFIRMED
from league.services.checkin import CheckinService
from league.services.guild import GuildMember, GuildRole
from league.services.presence import PresenceResolver
from league.services.storage import EventRow, PlayerRow
from web.api.main import app
from web.api.routes import get_guild_source

GUILD_ID = "1000"
PLAYER_ROLE = GuildRole(id="900", name="Player")
STAFF_ROLE = GuildRole(id="901", name="Staff")


def member(member_id, username, *, global_name=None, nick=None, roles=(PLAYER_ROLE.id,), presence="online"):
    return GuildMember(
        id=member_id,
        username=username,
        global_name=global_name,
        nick=nick,
        roles=tuple(roles),
        presence=presence,
    )


class FakeGuildSource:
    """In-memory GuildDataSource that records calls."""

    def __init__(self, members=(), roles=(PLAYER_ROLE, STAFF_ROLE), presences=None):
        self.members = list(members)
        self.roles = {r.id: r for r in roles}
        self.presences = dict(presences or {})
        self.members_error = None
        self.presence_error = None
        self.member_fetches = 0
        self.role_fetches = 0
        self.presence_fetches = []

    async def fetch_members(self, guild_id):
        self.member_fetches += 1
        if self.members_error:
            raise self.members_error
        return list(self.members)

    async def fetch_roles(self, guild_id):
        self.role_fetches += 1
        return dict(self.roles)

    async def fetch_presence(self, guild_id, member_id):
        self.presence_fetches.append(member_id)
        if self.presence_error:
            raise self.presence_error
        return self.presences.get(member_id)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None


class FakeStore:
    """In-memory CheckinStore. Registration order is insertion order."""

    def __init__(self):
        self.events = {}
        self.players = {}
        self.payments = {}
        self.handles = {}
        self.writes = []
        self.handle_lookups = []
        self.fail_writes = False
        self.errors = {}  # method name -> exception to raise

    def _maybe_raise(self, name):
        if name in self.errors:
            raise self.errors[name]

    def add_event(self, event_id, status="REGISTRATION_CLOSED", title="Friday Night Magic"):
        self.events[event_id] = EventRow(id=event_id, title=title, status=status)

    def add_player(
        self,
        user_id,
        event_id,
        *,
        status="PENDING",
        payment_status="PAID",
        decklist="4 Lightning Bolt",
        handle=None,
        league_payment_id=None,
    ):
        self.players[(user_id, event_id)] = PlayerRow(
            user_id=user_id,
            event_id=event_id,
            status=status,
            payment_status=payment_status,
            league_payment_id=league_payment_id,
            decklist=decklist,
        )
        if handle:
            self.handles[user_id] = handle

    async def get_event(self, event_id):
        self._maybe_raise("get_event")
        return self.events.get(event_id)

    async def get_roster(self, event_id, statuses=CHECKIN_ELIGIBLE_STATUSES):
        self._maybe_raise("get_roster")
        return [p for p in self.players.values() if p.event_id == event_id and p.status in statuses]

    async def get_player_row(self, user_id, event_id):
        self._maybe_raise("get_player_row")
        return self.players.get((user_id, event_id))

    async def get_payment_record_status(self, payment_id):
        return self.payments.get(payment_id)

    async def get_discord_handle(self, user_id):
        self.handle_lookups.append(user_id)
        self._maybe_raise("get_discord_handle")
        return self.handles.get(user_id)

    async def update_player_status(self, user_id, event_id):
        self.writes.append((user_id, event_id))
        self._maybe_raise("update_player_status")
        row = self.players.get((user_id, event_id))
        if self.fail_writes or row is None or row.status not in CHECKIN_ELIGIBLE_STATUSES:
            return False
        self.players[(user_id, event_id)] = replace(row, status=CONFIRMED)
        return True


def store_error(message="database is locked"):
    return OperationalError("SELECT 1", {}, Exception(message))


@pytest.fixture(autouse=True)
async def _init_db():
    """Fresh in-memory database per test."""
    await init_db()
    yield
    await engine.dispose()


@pytest.fixture
async def db_session():
    async with async_session_factory() as session:
        yield session


@pytest.fixture
def guild_source():
    return FakeGuildSource(
        members=[
            member("1", "alice", global_name="Alice A", nick="Ali"),
            member("2", "bob", roles=()),
            member("3", "carol", roles=(STAFF_ROLE.id,), presence="offline"),
        ]
    )


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def resolver(guild_source):
    return PresenceResolver(guild_source, GUILD_ID, role_names=["Player"])


@pytest.fixture
def service(store, resolver):
    return CheckinService(store, resolver)


@pytest.fixture
async def client(guild_source):
    """Async HTTP client for the API, with Discord replaced by the fake guild source."""

    async def _fake_source():
        yield guild_source

    app.dependency_overrides[get_guild_source] = _fake_source
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer test-secret"}
