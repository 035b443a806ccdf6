"""Tests for the league-checkin command line."""
import json

import pytest

import config
from conftest import member
from league import cli
from league.services.checkin import BulkCheckinResult, CheckinResult, PlayerCheckinOutcome


@pytest.fixture
def rest_source(guild_source, monkeypatch):
    monkeypatch.setattr(cli, "rest_source_from_config", lambda: guild_source)
    return guild_source


def test_parser_presence_options():
    args = cli.build_parser().parse_args(["presence", "alice", "bob", "--role", "Player", "--role", "Judge", "--id"])
    assert args.targets == ["alice", "bob"]
    assert args.role == ["Player", "Judge"]
    assert args.use_id is True
    assert args.func is cli.cmd_presence


def test_parser_checkin_options():
    args = cli.build_parser().parse_args(["checkin", "u1", "e1", "--discord-handle", "ali", "--force"])
    assert (args.user_id, args.event_id, args.discord_handle, args.force) == ("u1", "e1", "ali", True)


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "league-checkin" in capsys.readouterr().out


def test_presence_single_target(rest_source, capsys):
    assert cli.main(["presence", "ali"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["target"] == "ali"
    assert data["username"] == "Alice A"
    assert (data["is_member"], data["has_role"], data["is_present"]) == (True, True, True)


def test_presence_multiple_targets_with_role_override(rest_source, capsys):
    assert cli.main(["presence", "alice", "carol", "--role", "Staff"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert [d["has_role"] for d in data] == [False, True]
    assert rest_source.member_fetches == 1


def test_presence_warns_on_ambiguous_name(rest_source, capsys):
    rest_source.members.append(member("9", "alice2", nick="alice"))
    assert cli.main(["presence", "alice"]) == 0
    captured = capsys.readouterr()
    assert "matches 2 members" in captured.err
    assert json.loads(captured.out)["username"] == "Alice A"


def test_presence_discord_failure_exits_nonzero(rest_source, capsys):
    rest_source.members_error = RuntimeError("Failed to fetch guild members: 401 Unauthorized")
    assert cli.main(["presence", "alice"]) == 1
    assert "Validation failed" in capsys.readouterr().err


def test_presence_missing_guild(rest_source, monkeypatch, capsys):
    monkeypatch.setattr(config, "DISCORD_GUILD_ID", "")
    assert cli.main(["presence", "alice"]) == 1
    assert "Missing guild ID" in capsys.readouterr().err


def test_checkin_exit_status_follows_result(monkeypatch, capsys):
    calls = []

    async def fake_checkin(user_id, event_id, **options):
        calls.append((user_id, event_id, options))
        return CheckinResult(success=False, message="Checkin failed. Missing: decklist")

    monkeypatch.setattr(cli, "perform_checkin", fake_checkin)
    assert cli.main(["checkin", "u1", "e1", "--force"]) == 1
    assert calls == [("u1", "e1", {"discord_handle": None, "force": True})]
    assert json.loads(capsys.readouterr().out)["message"] == "Checkin failed. Missing: decklist"


def test_event_prints_bulk_result(monkeypatch, capsys):
    async def fake_bulk(event_id, **options):
        return BulkCheckinResult(
            success=True,
            message=f"Bulk checkin completed for event {event_id}. 1/1 players confirmed (100.0%)",
            event_id=event_id,
            total_players=1,
            successful_checkins=1,
            results=[PlayerCheckinOutcome("u1", True, "ok", "PENDING", "CONFIRMED")],
        )

    monkeypatch.setattr(cli, "perform_bulk_checkin", fake_bulk)
    assert cli.main(["event", "e7"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["event_id"] == "e7"
    assert data["results"][0]["new_status"] == "CONFIRMED"


def test_init_db_command(monkeypatch, capsys):
    ran = []

    async def fake_init_db():
        ran.append(True)

    monkeypatch.setattr(cli, "init_db", fake_init_db)
    assert cli.main(["init-db"]) == 0
    assert ran == [True]
    assert "Database initialized." in capsys.readouterr().out
