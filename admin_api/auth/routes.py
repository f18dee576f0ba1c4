"""Current-actor endpoint backed by the authenticating proxy headers."""

from fastapi import APIRouter, Depends

from admin_api.auth.dependencies import Actor, require_actor
from admin_api.db.client import CollectionStore
from admin_api.db.models import ROLE_USER, USERS
from admin_api.dependencies import get_store
from admin_api.resources.descriptors import USERS as USER_RESOURCE
from admin_api.resources.identity import normalize

router = APIRouter(prefix="/api", tags=["Auth"])


@router.get("/user", summary="Current user", description="Identity of the proxy-authenticated caller, enriched with the matching user record.")
async def current_user(
    actor: Actor = Depends(require_actor),
    store: CollectionStore = Depends(get_store),
):
    user = await store.find_one(USERS, {"email": actor.email})
    if user is None:
        return {"id": actor.email, "email": actor.email, "name": actor.name, "role": ROLE_USER}
    profile = normalize(user, USER_RESOURCE)
    profile.setdefault("role", ROLE_USER)
    profile.setdefault("name", actor.name)
    return profile
