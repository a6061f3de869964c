from datetime import date

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.db.models.listing import Listing as ListingModel
from app.db.models.rental_request import RentalRequest as RentalRequestModel
from app.domain.enums import RentalRequestStatus


def get_rental_request_by_id(db: Session, request_id: int) -> RentalRequestModel | None:
    """Get a rental request by ID."""
    return (
        db.query(RentalRequestModel).filter(RentalRequestModel.id == request_id).first()
    )


def get_pending_request(
    db: Session, listing_id: int, requester_user_id: int
) -> RentalRequestModel | None:
    """Get the pending request of a tenant for a listing. Used to check for duplicates."""
    return (
        db.query(RentalRequestModel)
        .filter(
            RentalRequestModel.listing_id == listing_id,
            RentalRequestModel.requester_user_id == requester_user_id,
            RentalRequestModel.status == RentalRequestStatus.PENDING,
        )
        .first()
    )


def create_rental_request(
    db: Session,
    listing_id: int,
    requester_user_id: int,
    desired_move_in: date | None = None,
    message: str | None = None,
) -> RentalRequestModel:
    """Stage a new pending rental request. Pure data access - no business logic."""
    db_request = RentalRequestModel(
        listing_id=listing_id,
        requester_user_id=requester_user_id,
        desired_move_in=desired_move_in,
        message=message,
        status=RentalRequestStatus.PENDING,
    )
    db.add(db_request)
    db.flush()
    return db_request


def set_status_if_pending(db: Session, request_id: int, status: str) -> bool:
    """
    Move a request out of 'pending' with a single conditional UPDATE.

    Returns False when the row was no longer pending, so two concurrent
    transitions of the same request can never both succeed.
    """
    result = db.execute(
        update(RentalRequestModel)
        .where(
            RentalRequestModel.id == request_id,
            RentalRequestModel.status == RentalRequestStatus.PENDING,
        )
        .values(status=status, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def get_all_rental_requests_paginated(
    db: Session,
    page: int = 1,
    page_size: int = 20,
    listing_id: int | None = None,
    requester_id: int | None = None,
    owner_id: int | None = None,
    status: str | None = None,
) -> tuple[list[RentalRequestModel], int]:
    """
    Get rental requests with pagination and optional filters, newest first.

    Returns:
        Tuple of (list of rental requests, total count)
    """
    query = db.query(RentalRequestModel)

    if owner_id is not None:
        query = query.join(
            ListingModel, ListingModel.id == RentalRequestModel.listing_id
        ).filter(ListingModel.owner_user_id == owner_id)

    if listing_id is not None:
        query = query.filter(RentalRequestModel.listing_id == listing_id)

    if requester_id is not None:
        query = query.filter(RentalRequestModel.requester_user_id == requester_id)

    if status is not None:
        query = query.filter(RentalRequestModel.status == status)

    total = query.count()
    skip = (page - 1) * page_size
    requests = (
        query.order_by(RentalRequestModel.created_at.desc(), RentalRequestModel.id.desc())
        .offset(skip)
        .limit(page_size)
        .all()
    )
    return requests, total
