"""
Chat command replies for the whitelist, without a gateway connection.
"""
import pytest

from backend.bot.commands import WhitelistCommands, format_uid_list
from backend.whitelist.sources import MemorySource
from backend.whitelist.store import WhitelistStore


UID = "76561198000000099"


@pytest.fixture
def store(sample_text):
    return WhitelistStore(MemorySource(sample_text))


@pytest.fixture
def commands(store):
    return WhitelistCommands(store)


def test_add_and_duplicate(commands, store):
    reply = commands.handle("add", role="admin", uid=UID)
    assert reply.success
    assert reply.title == "UID Added"
    assert reply.description == f"Successfully added {UID} to the ADMIN whitelist."
    assert ("UID", UID) in reply.fields

    dup = commands.handle("add", role="ADMIN", uid=UID)
    assert dup.success is False
    assert dup.title == "Failed to Add UID"
    assert dup.description == f"UID {UID} is already in the ADMIN whitelist."


def test_remove(commands):
    reply = commands.handle("remove", role="S3", uid="76561198000000001")
    assert reply.title == "UID Removed"
    again = commands.handle("remove", role="S3", uid="76561198000000001")
    assert again.title == "Failed to Remove UID"
    assert again.success is False


def test_list_reply(commands):
    reply = commands.handle("list", role="s3")
    assert reply.title == "S3 Whitelist"
    assert reply.description == "Whitelisted Roles + Skins Access"
    assert reply.fields == [("UIDs (2)", "`76561198000000001`\n`76561198000000002`")]


def test_list_empty_role(commands):
    reply = commands.handle("list", role="CAS")
    assert reply.fields == [("UIDs (0)", "*No UIDs in this whitelist*")]


def test_list_invalid_role_is_error_reply(commands):
    reply = commands.handle("list", role="BOGUS_ROLE")
    assert reply.title == "Error"
    assert reply.success is False
    assert reply.description.startswith("Error: Invalid role: BOGUS_ROLE.")


def test_roles_reply(commands):
    reply = commands.handle("roles")
    assert reply.title == "Available Whitelist Roles"
    assert len(reply.fields) == 11
    assert reply.fields[0] == ("S3", "Whitelisted Roles + Skins Access")


def test_status_reply_reports_missing_staff(commands):
    reply = commands.handle("status")
    fields = dict(reply.fields)
    assert fields["Mode"] == "Local File"
    assert "**S3**: 2 UIDs" in fields["Whitelist Statistics"]
    assert fields["Staff missing from ALL"] == "**ADMIN**: 76561198000000011"


def test_backup_requires_panel(commands):
    reply = commands.handle("backup")
    assert reply.title == "Backup unavailable"
    assert reply.ephemeral is True


def test_backup_with_panel():
    class Backend:
        def backup(self):
            return "@Apex_cfg/whitelist_backup_x.sqf"

    reply = WhitelistCommands(Backend(), panel_enabled=True).handle("backup")
    assert reply.title == "Backup Created"
    assert reply.description == "Whitelist backup saved to:\n`@Apex_cfg/whitelist_backup_x.sqf`"


def test_admin_role_gate(store):
    commands = WhitelistCommands(store, admin_role_id="999")
    denied = commands.handle("add", member_roles=["1", "2"], role="S3", uid=UID)
    assert denied.title == "Permission denied"
    assert denied.ephemeral is True
    assert UID not in store.list_uids("S3")
    allowed = commands.handle("add", member_roles=["999"], role="S3", uid=UID)
    assert allowed.success


def test_unknown_subcommand(commands):
    assert commands.handle("purge").title == "Unknown command"


def test_backend_exception_becomes_error_reply(caplog):
    class Broken:
        def add_uid(self, role, uid):
            raise RuntimeError("disk full")

    reply = WhitelistCommands(Broken()).handle("add", role="S3", uid=UID)
    assert reply.title == "Error"
    assert reply.description == "Error: disk full"
    assert "Whitelist command failed" in caplog.text


def test_format_uid_list_truncates():
    uids = [str(76561198000000000 + i) for i in range(120)]
    text = format_uid_list(uids)
    lines = text.split("\n")
    assert len(lines) == 51
    assert lines[-1] == "... and 70 more"
    assert len(format_uid_list(uids[:40])) <= 1000


def test_from_settings_applies_gate_and_mode(store):
    from backend.whitelist.config import load_settings

    settings = load_settings(
        {
            "DISCORD_ADMIN_ROLE_ID": "42",
            "PTERODACTYL_PANEL_URL": "https://panel.example.org",
            "PTERODACTYL_API_KEY": "k",
            "PTERODACTYL_SERVER_ID": "srv",
        }
    )
    commands = WhitelistCommands.from_settings(store, settings)
    assert commands.handle("roles", member_roles=["7"]).title == "Permission denied"
    status = commands.handle("status", member_roles=["42"])
    assert dict(status.fields)["Mode"] == "Panel server"
