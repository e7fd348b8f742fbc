"""
Whitelist chat commands, independent of any chat transport.

Why:
    The chat bot only needs to turn a subcommand plus options into a reply.
    Keeping that mapping here (and the transport elsewhere) makes the replies
    testable without a gateway connection.

Permissions:
    When an admin role id is configured, the invoking member must hold it.
    Without one, every caller that can see the command may use it; the chat
    platform's own command permissions apply.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple
import logging

from backend.whitelist.config import Settings
from backend.whitelist.domain import DEFAULT_REGISTRY, RoleRegistry


logger = logging.getLogger("apex.bot.commands")

LIST_FIELD_LIMIT = 1000
CHARS_PER_UID_LINE = 20
SUBCOMMANDS = ("add", "remove", "list", "roles", "status", "backup")


@dataclass(frozen=True)
class Reply:
    title: str
    description: str = ""
    success: bool = True
    fields: List[Tuple[str, str]] = field(default_factory=list)
    ephemeral: bool = False


def format_uid_list(uids: List[str]) -> str:
    """Render identifiers for a single message field, truncated to fit."""
    if not uids:
        return "*No UIDs in this whitelist*"
    lines = [f"`{uid}`" for uid in uids]
    joined = "\n".join(lines)
    if len(joined) <= LIST_FIELD_LIMIT:
        return joined
    keep = LIST_FIELD_LIMIT // CHARS_PER_UID_LINE
    return "\n".join(lines[:keep]) + f"\n... and {len(uids) - keep} more"


class WhitelistCommands:
    def __init__(
        self,
        backend: Any,
        *,
        registry: RoleRegistry = DEFAULT_REGISTRY,
        admin_role_id: Optional[str] = None,
        panel_enabled: bool = False,
    ) -> None:
        self.backend = backend
        self.registry = registry
        self.admin_role_id = admin_role_id or None
        self.panel_enabled = panel_enabled

    @classmethod
    def from_settings(cls, backend: Any, settings: Settings) -> "WhitelistCommands":
        return cls(
            backend,
            registry=settings.registry,
            admin_role_id=settings.discord_admin_role_id,
            panel_enabled=settings.panel_enabled,
        )

    def has_permission(self, member_roles: Iterable[str]) -> bool:
        if not self.admin_role_id:
            return True
        return self.admin_role_id in set(member_roles or ())

    def handle(
        self,
        subcommand: str,
        *,
        member_roles: Iterable[str] = (),
        role: Optional[str] = None,
        uid: Optional[str] = None,
    ) -> Reply:
        if not self.has_permission(member_roles):
            return Reply("Permission denied", "You do not have permission to use this command.", success=False, ephemeral=True)
        if subcommand not in SUBCOMMANDS:
            return Reply("Unknown command", f"Unknown subcommand: {subcommand}", success=False, ephemeral=True)
        try:
            return getattr(self, f"_{subcommand}")(role=role, uid=uid)
        except Exception as exc:
            logger.exception("Whitelist command failed: %s", subcommand)
            return Reply("Error", f"Error: {str(exc) or 'An unknown error occurred'}", success=False, ephemeral=True)

    def _add(self, *, role: Optional[str], uid: Optional[str]) -> Reply:
        result = self.backend.add_uid(role or "", uid or "")
        return Reply(
            "UID Added" if result.success else "Failed to Add UID",
            result.message,
            success=result.success,
            fields=[("Role", role or ""), ("UID", uid or "")],
        )

    def _remove(self, *, role: Optional[str], uid: Optional[str]) -> Reply:
        result = self.backend.remove_uid(role or "", uid or "")
        return Reply(
            "UID Removed" if result.success else "Failed to Remove UID",
            result.message,
            success=result.success,
            fields=[("Role", role or ""), ("UID", uid or "")],
        )

    def _list(self, *, role: Optional[str], uid: Optional[str]) -> Reply:
        uids = self.backend.list_uids(role or "")
        code = self.registry.normalize(role) or role or ""
        return Reply(
            f"{code} Whitelist",
            self.registry.describe(code) or "No description available",
            fields=[(f"UIDs ({len(uids)})", format_uid_list(uids))],
        )

    def _roles(self, *, role: Optional[str], uid: Optional[str]) -> Reply:
        return Reply(
            "Available Whitelist Roles",
            "Use these role names with the add, remove and list commands.",
            fields=[(info.code, info.description) for info in self.registry.roles()],
        )

    def _status(self, *, role: Optional[str], uid: Optional[str]) -> Reply:
        doc = self.backend.list_all()
        stats = "\n".join(f"**{code}**: {len(uids)} UIDs" for code, uids in doc.items())
        fields = [
            ("Mode", "Panel server" if self.panel_enabled else "Local File"),
            ("Whitelist Statistics", stats or "No data available"),
        ]
        missing = self.backend.staff_without_umbrella(doc)
        if missing:
            lines = [f"**{code}**: {', '.join(uids)}" for code, uids in missing.items()]
            fields.append(("Staff missing from ALL", "\n".join(lines)))
        return Reply("Whitelist Status", fields=fields)

    def _backup(self, *, role: Optional[str], uid: Optional[str]) -> Reply:
        if not self.panel_enabled or not hasattr(self.backend, "backup"):
            return Reply(
                "Backup unavailable",
                "Backup is only available when using the panel integration.",
                success=False,
                ephemeral=True,
            )
        path = self.backend.backup()
        return Reply("Backup Created", f"Whitelist backup saved to:\n`{path}`")


__all__ = ["Reply", "WhitelistCommands", "format_uid_list"]
