from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from app.domain.parties import PartyRelation

EDITABLE_FIELDS = ("start_date", "end_date", "rent", "deposit", "status")


@dataclass(frozen=True, slots=True)
class EndDateOnly:
    """Commit a negotiated end date. Any party (or an admin) may do this."""

    end_date: date | None


@dataclass(frozen=True, slots=True)
class FullEdit:
    """Edit of landlord-owned fields; may also carry end_date."""

    changes: Mapping[str, Any] = field(default_factory=dict)


ContractFieldUpdate = EndDateOnly | FullEdit


def build_field_update(changes: Mapping[str, Any]) -> ContractFieldUpdate:
    """Turn the explicitly provided fields of an update into its variant."""
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown contract fields: {', '.join(sorted(unknown))}")
    if set(changes) == {"end_date"}:
        return EndDateOnly(end_date=changes["end_date"])
    return FullEdit(changes=dict(changes))


def may_apply(update: ContractFieldUpdate, relation: str) -> bool:
    match update:
        case EndDateOnly():
            return relation in (
                PartyRelation.LANDLORD,
                PartyRelation.TENANT_MEMBER,
                PartyRelation.ADMIN_OVERRIDE,
            )
        case FullEdit():
            return relation in (PartyRelation.LANDLORD, PartyRelation.ADMIN_OVERRIDE)
    return False
