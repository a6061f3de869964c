import logging
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import app.repositories.contract as contract_repo
import app.repositories.listing as listing_repo
import app.repositories.rental_request as rental_request_repo
from app.db.models.contract import Contract as ContractModel
from app.db.models.listing import Listing as ListingModel
from app.db.models.rental_request import RentalRequest as RentalRequestModel
from app.db.models.user import User
from app.domain.enums import ListingStatus, RentalRequestStatus, UserRole
from app.domain.parties import Membership, PartyRelation, classify_party
from app.domain.rental_request_transitions import (
    FORBIDDEN_MESSAGES,
    PERMITTED_RELATIONS,
    can_transition,
    is_permitted,
    is_valid_target,
)
from app.errors import (
    DomainValidationError,
    DuplicateResourceError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from app.schemas.rental_request import RentalRequest
from app.services.notifications import (
    CONTRACT_CREATED,
    RENTAL_REQUEST_CREATED,
    RENTAL_REQUEST_UPDATED,
    Notifier,
    publish,
)

logger = logging.getLogger(__name__)


def _request_membership(listing: ListingModel, rental_request: RentalRequestModel) -> Membership:
    # The listing owner plays the landlord, the requester is the only tenant member
    return Membership.of(listing.owner_user_id, [rental_request.requester_user_id])


def _get_request_and_listing(
    db: Session, request_id: int
) -> tuple[RentalRequestModel, ListingModel]:
    rental_request = rental_request_repo.get_rental_request_by_id(db, request_id)
    if not rental_request:
        raise NotFoundError("Rental request not found")
    listing = listing_repo.get_listing_by_id(db, rental_request.listing_id)
    if not listing:
        raise NotFoundError("Listing does not exist")
    return rental_request, listing


def create_rental_request(
    db: Session,
    current_user: User,
    listing_id: int,
    desired_move_in: date | None = None,
    message: str | None = None,
    notifier: Notifier | None = None,
) -> RentalRequestModel:
    """
    Apply for a listing.

    - Validates the listing exists and is verified
    - Validates the caller is a tenant
    - Validates the caller has no pending request for the listing
    """
    listing = listing_repo.get_listing_by_id(db, listing_id)
    if not listing:
        raise NotFoundError("Listing does not exist")

    if listing.status != ListingStatus.VERIFIED:
        raise DomainValidationError("Listing is not open for rental requests")

    if current_user.role != UserRole.TENANT:
        raise ForbiddenError("Only tenants can create rental requests")

    if rental_request_repo.get_pending_request(db, listing_id, current_user.id):
        raise DuplicateResourceError("You already have a pending request for this listing")

    try:
        rental_request = rental_request_repo.create_rental_request(
            db,
            listing_id=listing_id,
            requester_user_id=current_user.id,
            desired_move_in=desired_move_in,
            message=message,
        )
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent apply by the same tenant
        db.rollback()
        raise DuplicateResourceError("You already have a pending request for this listing")

    db.refresh(rental_request)
    logger.info(
        "Rental request %s created for listing %s by user %s",
        rental_request.id,
        listing_id,
        current_user.id,
    )
    publish(notifier, RENTAL_REQUEST_CREATED, RentalRequest.model_validate(rental_request).model_dump(mode="json"))
    return rental_request


def get_rental_request(db: Session, request_id: int, current_user: User) -> RentalRequestModel:
    """Get a rental request visible to its requester, the listing owner or an admin."""
    rental_request, listing = _get_request_and_listing(db, request_id)
    relation = classify_party(
        _request_membership(listing, rental_request), current_user.id, current_user.role
    )
    if relation == PartyRelation.UNAUTHORIZED:
        raise ForbiddenError("You do not have access to this rental request")
    return rental_request


def list_rental_requests(
    db: Session,
    current_user: User,
    page: int = 1,
    page_size: int = 20,
    listing_id: int | None = None,
    requester_id: int | None = None,
    owner_id: int | None = None,
    status: str | None = None,
) -> tuple[list[RentalRequestModel], int]:
    """
    List rental requests visible to the caller.
    - Admin: all requests, every filter allowed
    - Landlord: requests on listings they own
    - Tenant: their own requests
    """
    if status is not None and status not in RentalRequestStatus.ALL:
        raise DomainValidationError(
            f"status must be one of: {', '.join(RentalRequestStatus.ALL)}"
        )

    if current_user.role == UserRole.TENANT:
        if requester_id is not None and requester_id != current_user.id:
            raise ForbiddenError("Tenants can only list their own rental requests")
        requester_id = current_user.id
    elif current_user.role == UserRole.LANDLORD:
        if owner_id is not None and owner_id != current_user.id:
            raise ForbiddenError("Landlords can only list requests on their own listings")
        owner_id = current_user.id

    return rental_request_repo.get_all_rental_requests_paginated(
        db,
        page=page,
        page_size=page_size,
        listing_id=listing_id,
        requester_id=requester_id,
        owner_id=owner_id,
        status=status,
    )


def _ensure_contract(
    db: Session, rental_request: RentalRequestModel
) -> ContractModel | None:
    """
    Create the draft contract for an accepted request unless a live one exists.

    Returns the new contract, or None when one already existed.
    """
    listing = listing_repo.lock_listing(db, rental_request.listing_id)
    existing = contract_repo.get_active_contract_for_listing(
        db, listing.id, listing.owner_user_id
    )
    if existing:
        logger.info(
            "Contract %s already exists for listing %s, not creating another",
            existing.id,
            listing.id,
        )
        return None

    try:
        with db.begin_nested():
            contract = contract_repo.create_contract(
                db,
                listing_id=listing.id,
                landlord_user_id=listing.owner_user_id,
                start_date=rental_request.desired_move_in or date.today(),
                rent=listing.price,
                deposit=listing.deposit,
                tenant_user_ids=[rental_request.requester_user_id],
            )
    except IntegrityError:
        logger.info(
            "Concurrent acceptance already created a contract for listing %s", listing.id
        )
        return None

    logger.info(
        "Contract %s created for listing %s from rental request %s",
        contract.id,
        listing.id,
        rental_request.id,
    )
    return contract


def transition_rental_request(
    db: Session,
    request_id: int,
    target_status: str,
    current_user: User,
    notifier: Notifier | None = None,
) -> RentalRequestModel:
    """
    Move a pending request to accepted, rejected or cancelled.

    Accepting also ensures a draft contract exists for the listing and its
    owner, in the same transaction as the status change.
    """
    rental_request, listing = _get_request_and_listing(db, request_id)

    if not is_valid_target(target_status):
        raise DomainValidationError(
            f"status must be one of: {', '.join(sorted(PERMITTED_RELATIONS))}"
        )

    relation = classify_party(
        _request_membership(listing, rental_request), current_user.id, current_user.role
    )
    if not is_permitted(relation, target_status):
        raise ForbiddenError(FORBIDDEN_MESSAGES[target_status])

    if not can_transition(rental_request.status, target_status):
        raise InvalidStateError("Request is no longer pending")

    contract = None
    try:
        if not rental_request_repo.set_status_if_pending(db, request_id, target_status):
            raise InvalidStateError("Request is no longer pending")
        if target_status == RentalRequestStatus.ACCEPTED:
            contract = _ensure_contract(db, rental_request)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(rental_request)
    logger.info(
        "Rental request %s moved to %s by user %s",
        rental_request.id,
        target_status,
        current_user.id,
    )

    publish(notifier, RENTAL_REQUEST_UPDATED, RentalRequest.model_validate(rental_request).model_dump(mode="json"))
    if contract is not None:
        publish(
            notifier,
            CONTRACT_CREATED,
            {
                "contract_id": contract.id,
                "listing_id": contract.listing_id,
                "landlord_user_id": contract.landlord_user_id,
                "tenant_user_ids": [rental_request.requester_user_id],
                "rental_request_id": rental_request.id,
            },
        )
    return rental_request
