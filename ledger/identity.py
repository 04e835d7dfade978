"""Identity matching policy for the claim ledger.

A participant may present several identity keys. Only the first non-empty
key, in priority order, is used to look up earlier claims, so a participant
known by phone number is never confused with someone who only gave a name.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, fields
from typing import Any, Iterable, Mapping, Optional, Sequence

from django.conf import settings
from django.db.models import Q

from promo_backend.errors import InvalidIdentity

DEFAULT_PRIORITY: Sequence[str] = (
    "national_id",
    "phone_number",
    "voucher_number",
    "display_name",
)

# Name matches only count against rows that were themselves identified by name.
WEAK_KEY_EXCLUSIONS: Mapping[str, tuple[str, ...]] = {
    "display_name": ("national_id", "phone_number"),
}

# Column widths of the matching ClaimRecord fields.
MAX_LENGTHS: Mapping[str, int] = {
    "national_id": 32,
    "phone_number": 32,
    "voucher_number": 64,
    "display_name": 255,
}

DEDUP_KEY_LENGTH = 191

PAYLOAD_ALIASES: Mapping[str, tuple[str, ...]] = {
    "national_id": ("nationalId", "national_id", "dni"),
    "phone_number": ("phoneNumber", "phone_number", "phone"),
    "voucher_number": ("voucherNumber", "voucher_number", "voucher"),
    "display_name": ("name", "displayName", "display_name"),
}


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


@dataclass(frozen=True, slots=True)
class Identity:
    national_id: Optional[str] = None
    phone_number: Optional[str] = None
    voucher_number: Optional[str] = None
    display_name: Optional[str] = None

    def __post_init__(self) -> None:
        for field in fields(self):
            value = _clean(getattr(self, field.name))
            if value is not None and len(value) > MAX_LENGTHS[field.name]:
                raise InvalidIdentity(
                    f"{field.name} must be at most {MAX_LENGTHS[field.name]} characters."
                )
            object.__setattr__(self, field.name, value)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Identity":
        """Build an identity from a request body or query string."""
        values = {}
        for field_name, aliases in PAYLOAD_ALIASES.items():
            for alias in aliases:
                if _clean(payload.get(alias)):
                    values[field_name] = payload.get(alias)
                    break
        return cls(**values)

    def is_empty(self) -> bool:
        return all(getattr(self, field.name) is None for field in fields(self))

    def as_fields(self) -> dict[str, Optional[str]]:
        return {field.name: getattr(self, field.name) for field in fields(self)}


@dataclass(frozen=True, slots=True)
class IdentityKey:
    field: str
    exclude_rows_with: tuple[str, ...] = ()

    def extract(self, identity: Identity) -> Optional[str]:
        return getattr(identity, self.field)

    def match(self, value: str) -> Q:
        condition = Q(**{self.field: value})
        for other in self.exclude_rows_with:
            condition &= Q(**{f"{other}__isnull": True})
        return condition


class IdentityPolicy:
    """Ordered list of identity keys; the first one present wins."""

    def __init__(self, keys: Iterable[IdentityKey]):
        self.keys = tuple(keys)
        if not self.keys:
            raise ValueError("An identity policy needs at least one key.")
        known = {field.name for field in fields(Identity)}
        unknown = [key.field for key in self.keys if key.field not in known]
        if unknown:
            raise ValueError(f"Unknown identity fields: {', '.join(unknown)}")

    @classmethod
    def from_priority(cls, priority: Iterable[str]) -> "IdentityPolicy":
        return cls(
            IdentityKey(field, WEAK_KEY_EXCLUSIONS.get(field, ()))
            for field in priority
        )

    def resolve(self, identity: Identity) -> tuple[IdentityKey, str]:
        for key in self.keys:
            value = key.extract(identity)
            if value is not None:
                return key, value
        raise InvalidIdentity()

    def match(self, identity: Identity) -> Q:
        key, value = self.resolve(identity)
        return key.match(value)

    def dedup_key(self, identity: Identity) -> str:
        key, value = self.resolve(identity)
        dedup_key = f"{key.field}:{value}"
        if len(dedup_key) > DEDUP_KEY_LENGTH:
            digest = hashlib.sha256(value.encode("utf-8")).hexdigest()
            dedup_key = f"{key.field}:sha256:{digest}"
        return dedup_key


def get_policy() -> IdentityPolicy:
    priority = getattr(settings, "LEDGER_IDENTITY_PRIORITY", DEFAULT_PRIORITY)
    return IdentityPolicy.from_priority(priority)
