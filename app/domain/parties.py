from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from app.domain.enums import UserRole


class PartyRelation:
    """How a caller relates to a contract or rental request."""

    LANDLORD = "landlord"
    TENANT_MEMBER = "tenant_member"
    ADMIN_OVERRIDE = "admin_override"
    UNAUTHORIZED = "unauthorized"

    ALL = (LANDLORD, TENANT_MEMBER, ADMIN_OVERRIDE, UNAUTHORIZED)
    # Relations that hold a seat in negotiation and signing
    PARTIES = (LANDLORD, TENANT_MEMBER)


@dataclass(frozen=True, slots=True)
class Membership:
    """Already-loaded membership data for one contract or rental request.

    For a contract: the landlord and the tenant roster.
    For a rental request: the listing owner and the requester.
    """

    landlord_user_id: int
    tenant_user_ids: frozenset[int]

    @classmethod
    def of(cls, landlord_user_id: int, tenant_user_ids: Iterable[int]) -> Membership:
        return cls(landlord_user_id=landlord_user_id, tenant_user_ids=frozenset(tenant_user_ids))

    @property
    def total_parties(self) -> int:
        return 1 + len(self.tenant_user_ids)


def classify_party(membership: Membership, user_id: int, role: str) -> str:
    """Classify the caller as exactly one PartyRelation.

    Precedence is landlord, then tenant member, then admin role: an admin who
    is also the landlord acts as the landlord.
    """
    if user_id == membership.landlord_user_id:
        return PartyRelation.LANDLORD
    if user_id in membership.tenant_user_ids:
        return PartyRelation.TENANT_MEMBER
    if role == UserRole.ADMIN:
        return PartyRelation.ADMIN_OVERRIDE
    return PartyRelation.UNAUTHORIZED


def is_party(relation: str) -> bool:
    return relation in PartyRelation.PARTIES
