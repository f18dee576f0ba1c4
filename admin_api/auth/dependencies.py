"""Actor identity resolved from headers injected by the authenticating proxy."""

from dataclasses import dataclass

from fastapi import HTTPException, Request

UNKNOWN = "unknown"

# (email header, user header), checked in order
IDENTITY_HEADERS = (
    ("X-Forwarded-Email", "X-Forwarded-User"),
    ("X-Auth-Request-Email", "X-Auth-Request-User"),
)


@dataclass
class Actor:
    email: str
    name: str
    ip: str

    @property
    def authenticated(self) -> bool:
        return self.email != UNKNOWN


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    if request.client:
        return request.client.host
    return UNKNOWN


def _identity(request: Request) -> tuple[str | None, str | None]:
    email = name = None
    for email_header, user_header in IDENTITY_HEADERS:
        email = email or request.headers.get(email_header)
        name = name or request.headers.get(user_header)
    return email, name


async def get_actor(request: Request) -> Actor:
    """FastAPI dependency: who is performing this request. Never fails."""
    email, name = _identity(request)
    return Actor(email=email or UNKNOWN, name=name or email or UNKNOWN, ip=_client_ip(request))


async def require_actor(request: Request) -> Actor:
    """FastAPI dependency: like ``get_actor`` but 401 without proxy identity."""
    actor = await get_actor(request)
    if not actor.authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return actor
