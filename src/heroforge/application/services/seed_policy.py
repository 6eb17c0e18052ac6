from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping


CREATION_SEED_NAMESPACE = "character.create"


def _normalize(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _normalize(val) for key, val in sorted(value.items(), key=lambda item: str(item[0]))}
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        # Integers are hashed as decimal strings, at any width.
        return str(value)
    return str(value)


def serialize_seed_payload(namespace: str, context: Mapping[str, Any]) -> str:
    payload = {"namespace": str(namespace), "context": _normalize(context)}
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def derive_seed(namespace: str, context: Mapping[str, Any]) -> int:
    digest = hashlib.sha256(serialize_seed_payload(namespace, context).encode("utf-8")).hexdigest()
    return int(digest, 16)


def derive_creation_seed(random_value: int, request_id: str, owner: str) -> int:
    """Bind oracle entropy to the request and its owner before any allocation draw."""

    return derive_seed(
        CREATION_SEED_NAMESPACE,
        {
            "random_value": int(random_value),
            "request_id": str(request_id),
            "owner": str(owner),
        },
    )
