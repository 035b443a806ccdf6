"""Tests for the Discord REST guild data source."""
import httpx
import pytest

import config
from league.services.discord_api import DiscordAPIError, DiscordAPIService, rest_source_from_config
from league.services.guild import PresenceConfigError

BASE = "https://discord.test/api/v10"


def _member_json(member_id, username, **extra):
    data = {"user": {"id": member_id, "username": username, "global_name": extra.pop("global_name", None)}}
    data.update(extra)
    return data


def _service(handler, **kwargs) -> DiscordAPIService:
    return DiscordAPIService("test-token", base_url=BASE, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_fetch_members_with_presences():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[
                _member_json("1", "alice", global_name="Alice A", nick="Ali", roles=["900"], presence={"status": "DND"}),
                _member_json("2", "bob", roles=[]),
            ],
        )

    async with _service(handler) as api:
        members = await api.fetch_members("1000")

    assert len(seen) == 1
    assert seen[0].url.path == "/api/v10/guilds/1000/members"
    assert seen[0].url.params["with_presences"] == "true"
    assert seen[0].headers["Authorization"] == "Bot test-token"
    alice, bob = members
    assert (alice.id, alice.username, alice.global_name, alice.nick) == ("1", "alice", "Alice A", "Ali")
    assert alice.roles == ("900",)
    assert alice.presence == "dnd"
    assert bob.presence is None


@pytest.mark.asyncio
async def test_fetch_members_retries_without_presences():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(dict(request.url.params))
        if "with_presences" in request.url.params:
            return httpx.Response(400, json={"message": "Invalid Form Body"})
        return httpx.Response(200, json=[_member_json("1", "alice")])

    async with _service(handler) as api:
        members = await api.fetch_members("1000")

    assert [m.username for m in members] == ["alice"]
    assert "with_presences" in seen[0]
    assert "with_presences" not in seen[1]


@pytest.mark.asyncio
async def test_fetch_members_failure_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"message": "Missing Access"})

    async with _service(handler) as api:
        with pytest.raises(DiscordAPIError) as exc_info:
            await api.fetch_members("1000")
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_fetch_members_pages_by_after():
    roster = [_member_json(str(i), f"user{i}") for i in range(1, 6)]
    afters = []

    def handler(request: httpx.Request) -> httpx.Response:
        after = request.url.params.get("after")
        afters.append(after)
        start = int(after) if after else 0
        return httpx.Response(200, json=roster[start:start + 2])

    async with _service(handler, page_size=2) as api:
        members = await api.fetch_members("1000")

    assert [m.id for m in members] == ["1", "2", "3", "4", "5"]
    assert afters == [None, "2", "4"]


@pytest.mark.asyncio
async def test_fetch_roles():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v10/guilds/1000/roles"
        return httpx.Response(200, json=[{"id": "900", "name": "Player"}, {"id": "1000", "name": "@everyone"}])

    async with _service(handler) as api:
        roles = await api.fetch_roles("1000")

    assert set(roles) == {"900", "1000"}
    assert roles["900"].name == "Player"


@pytest.mark.asyncio
async def test_fetch_roles_failure_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async with _service(handler) as api:
        with pytest.raises(DiscordAPIError):
            await api.fetch_roles("1000")


@pytest.mark.asyncio
async def test_fetch_presence_falls_back_to_user_endpoint():
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path.endswith("/members/5"):
            return httpx.Response(200, json=_member_json("5", "eve"))
        return httpx.Response(200, json={"id": "5", "presence": {"status": "idle"}})

    async with _service(handler) as api:
        status = await api.fetch_presence("1000", "5")

    assert status == "idle"
    assert paths == ["/api/v10/guilds/1000/members/5", "/api/v10/users/5"]


@pytest.mark.asyncio
async def test_fetch_presence_none_when_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Unknown Member"})

    async with _service(handler) as api:
        assert await api.fetch_presence("1000", "5") is None


def test_rest_source_requires_token(monkeypatch):
    monkeypatch.setattr(config, "DISCORD_BOT_TOKEN", "")
    with pytest.raises(PresenceConfigError):
        rest_source_from_config()
