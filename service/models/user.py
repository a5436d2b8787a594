"""
User record.

Known fields are typed; anything else the caller sends lands in `attributes`,
which only accepts scalars. Stored items are flat dicts.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from service.errors.models import ValidationError

KNOWN_FIELDS = ("id", "name", "email", "createdAt", "updatedAt")
UPDATABLE_FIELDS = ("name", "email")
SCALAR_TYPES = (str, int, float, bool, type(None))


def utc_now_iso(after: Optional[str] = None) -> str:
    """Current UTC time as ISO-8601; strictly later than `after` if given."""
    now = datetime.now(timezone.utc)
    if after:
        try:
            previous = datetime.fromisoformat(after.replace("Z", "+00:00"))
        except ValueError:
            previous = None
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
    return now.isoformat(timespec="microseconds")


def new_user_id() -> str:
    """Timestamp plus random suffix, so concurrent creates don't collide."""
    return f"user-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


@dataclass
class User:
    """A user record in the key-value store."""

    id: str
    name: str = ""
    email: str = ""
    created_at: str = ""
    updated_at: str = ""
    attributes: dict = field(default_factory=dict)
    # e.g., {"team": "platform", "age": 31}

    @classmethod
    def from_payload(cls, payload: Any, user_id: str, now: str) -> "User":
        """Validate a create payload and stamp server-assigned fields."""
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        name = payload.get("name", "Unknown")
        email = payload.get("email", "")
        for label, value in (("name", name), ("email", email)):
            if not isinstance(value, str):
                raise ValidationError(f"Field '{label}' must be a string")

        attributes = {}
        for key, value in payload.items():
            if key in KNOWN_FIELDS:
                continue
            if not isinstance(value, SCALAR_TYPES):
                raise ValidationError(f"Field '{key}' must be a scalar value")
            attributes[key] = value

        return cls(
            id=user_id,
            name=name,
            email=email,
            created_at=now,
            updated_at=now,
            attributes=attributes,
        )

    @classmethod
    def from_item(cls, item: dict) -> "User":
        """Tolerant of items written by older handlers (missing fields)."""
        return cls(
            id=str(item["id"]),
            name=item.get("name", ""),
            email=item.get("email", ""),
            created_at=item.get("createdAt", ""),
            updated_at=item.get("updatedAt", ""),
            attributes={k: v for k, v in item.items() if k not in KNOWN_FIELDS},
        )

    def to_item(self) -> dict:
        return {
            **self.attributes,
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


def parse_update(payload: Any) -> dict:
    """Pick the fields a PUT may change. Everything else is ignored."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    mutation = {}
    for key in UPDATABLE_FIELDS:
        value = payload.get(key)
        if value is None or value == "":
            continue
        if not isinstance(value, str):
            raise ValidationError(f"Field '{key}' must be a string")
        mutation[key] = value
    return mutation
