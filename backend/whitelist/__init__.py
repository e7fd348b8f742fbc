"""Role-based Steam id whitelist: codec, stores and the database service."""

from .codec import WhitelistTextCodec, parse_whitelist, replace_role_list
from .domain import DEFAULT_REGISTRY, RoleInfo, RoleRegistry, is_valid_uid
from .errors import OperationResult, WhitelistError
from .sources import LocalFileSource, MemorySource
from .store import WhitelistStore

__all__ = [
    "DEFAULT_REGISTRY",
    "LocalFileSource",
    "MemorySource",
    "OperationResult",
    "RoleInfo",
    "RoleRegistry",
    "WhitelistError",
    "WhitelistStore",
    "WhitelistTextCodec",
    "is_valid_uid",
    "parse_whitelist",
    "replace_role_list",
]
