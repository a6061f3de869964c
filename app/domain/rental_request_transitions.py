from __future__ import annotations

from app.domain.enums import RentalRequestStatus
from app.domain.parties import PartyRelation

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    RentalRequestStatus.PENDING: {
        RentalRequestStatus.ACCEPTED,
        RentalRequestStatus.REJECTED,
        RentalRequestStatus.CANCELLED,
    },
    RentalRequestStatus.ACCEPTED: set(),
    RentalRequestStatus.REJECTED: set(),
    RentalRequestStatus.CANCELLED: set(),
}

# Who may drive each transition. For a request, LANDLORD is the listing owner
# and TENANT_MEMBER is the requester.
PERMITTED_RELATIONS: dict[str, set[str]] = {
    RentalRequestStatus.CANCELLED: {PartyRelation.TENANT_MEMBER},
    RentalRequestStatus.ACCEPTED: {PartyRelation.LANDLORD, PartyRelation.ADMIN_OVERRIDE},
    RentalRequestStatus.REJECTED: {PartyRelation.LANDLORD, PartyRelation.ADMIN_OVERRIDE},
}

FORBIDDEN_MESSAGES: dict[str, str] = {
    RentalRequestStatus.CANCELLED: "Only the requester can cancel this request",
    RentalRequestStatus.ACCEPTED: "Only the listing owner can accept or reject requests",
    RentalRequestStatus.REJECTED: "Only the listing owner can accept or reject requests",
}


def is_valid_target(target_status: str) -> bool:
    return target_status in PERMITTED_RELATIONS


def can_transition(current_status: str, target_status: str) -> bool:
    return target_status in ALLOWED_TRANSITIONS.get(current_status, set())


def is_permitted(relation: str, target_status: str) -> bool:
    return relation in PERMITTED_RELATIONS.get(target_status, set())
