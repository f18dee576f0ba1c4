"""Mapping between store documents and public resource ids.

Each resource exposes an ``id`` chosen per its descriptor plus the store's own
key as ``_id``. The inverse direction turns a request id back into a store
filter using the same rules.
"""

from typing import TYPE_CHECKING, Any

from bson import ObjectId

if TYPE_CHECKING:
    from admin_api.resources.descriptors import ResourceDescriptor

COMPOSITE_SEPARATOR = "::"


def to_jsonable(value: Any) -> Any:
    """Recursively replace ObjectIds with their hex strings."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def native_key(raw_id: str) -> ObjectId | str:
    return ObjectId(raw_id) if ObjectId.is_valid(raw_id) else raw_id


def public_id(doc: dict, descriptor: "ResourceDescriptor") -> str | None:
    if descriptor.key_field == "_id":
        return str(doc["_id"])
    value = doc.get(descriptor.key_field)
    if value is None:
        return str(doc["_id"]) if descriptor.native_fallback else None
    return str(value)


def id_filter(raw_id: str, descriptor: "ResourceDescriptor") -> dict[str, Any]:
    if descriptor.key_field == "_id":
        return {"_id": native_key(raw_id)}
    if descriptor.native_fallback:
        # Documents without the application id were published under their store key
        return {"$or": [{descriptor.key_field: raw_id}, {"_id": native_key(raw_id)}]}
    return {descriptor.key_field: raw_id}


def strip_hidden(doc: dict, descriptor: "ResourceDescriptor") -> dict:
    return {k: v for k, v in doc.items() if k not in descriptor.hidden_fields}


def normalize(doc: dict, descriptor: "ResourceDescriptor") -> dict:
    body = to_jsonable(strip_hidden(doc, descriptor))
    body.pop("id", None)
    body.pop("_id", None)
    return {"id": public_id(doc, descriptor), "_id": str(doc["_id"]), **body}


def composite_id(namespace: str, name: str) -> str:
    return f"{namespace}{COMPOSITE_SEPARATOR}{name}"


def parse_composite_id(value: str) -> tuple[str, str]:
    """Split ``<namespace>::<name>``. Raises ValueError unless both parts are non-empty."""
    parts = value.split(COMPOSITE_SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid id '{value}': expected <namespace>{COMPOSITE_SEPARATOR}<name>")
    return parts[0], parts[1]
