"""Collection name constants and shared document defaults."""

from datetime import datetime, timezone

# Collection names
USERS = "users"
ROLES = "roles"
CONVERSATIONS = "conversations"
MESSAGES = "messages"
AGENTS = "agents"
FILES = "files"
SESSIONS = "sessions"
TOKENS = "tokens"
TRANSACTIONS = "transactions"
PROJECTS = "projects"
AUDIT_LOGS = "auditlogs"

# User role constants
ROLE_USER = "USER"

# Permission groups and the capability flags each one carries
PERMISSION_SCHEMA: dict[str, tuple[str, ...]] = {
    "BOOKMARKS": ("USE",),
    "PROMPTS": ("USE", "CREATE", "SHARED_GLOBAL"),
    "MEMORIES": ("USE", "CREATE", "UPDATE", "READ", "OPT_OUT"),
    "AGENTS": ("USE", "CREATE", "SHARED_GLOBAL"),
    "MULTI_CONVO": ("USE",),
    "TEMPORARY_CHAT": ("USE",),
    "RUN_CODE": ("USE",),
    "WEB_SEARCH": ("USE",),
    "PEOPLE_PICKER": ("VIEW_USERS", "VIEW_GROUPS", "VIEW_ROLES"),
    "MARKETPLACE": ("USE",),
    "FILE_SEARCH": ("USE",),
    "FILE_CITATIONS": ("USE",),
}


def default_permissions() -> dict[str, dict[str, bool]]:
    return {group: {flag: False for flag in flags} for group, flags in PERMISSION_SCHEMA.items()}


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the driver hands back from the store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
