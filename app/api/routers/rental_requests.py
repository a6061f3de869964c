from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, get_notifier, require_roles
from app.db.models.user import User
from app.schemas.pagination import PaginatedResponse
from app.schemas.rental_request import (
    RentalRequest,
    RentalRequestCreate,
    RentalRequestStatusUpdate,
)
from app.services.notifications import Notifier
from app.services.rental_request import (
    create_rental_request,
    get_rental_request,
    list_rental_requests,
    transition_rental_request,
)

router = APIRouter(prefix="/rental-requests", tags=["rental-requests"])


@router.get("", response_model=PaginatedResponse[RentalRequest])
def get_all_rental_requests(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(20, ge=1, le=100, description="Number of items per page"),
    listing_id: int | None = Query(None, description="Filter by listing ID"),
    requester_id: int | None = Query(None, description="Filter by requester user ID"),
    owner_id: int | None = Query(None, description="Filter by listing owner user ID"),
    status: str | None = Query(None, description="Filter by request status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get rental requests with pagination and optional filters.
    - Admin: all requests
    - Landlord: requests on their own listings
    - Tenant: their own requests
    """
    requests, total = list_rental_requests(
        db,
        current_user,
        page=page,
        page_size=page_size,
        listing_id=listing_id,
        requester_id=requester_id,
        owner_id=owner_id,
        status=status,
    )
    return PaginatedResponse(
        items=[RentalRequest.model_validate(rental_request) for rental_request in requests],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{request_id}", response_model=RentalRequest)
def get_rental_request_by_id(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rental_request = get_rental_request(db, request_id, current_user)
    return RentalRequest.model_validate(rental_request)


@router.post("", response_model=RentalRequest, status_code=status.HTTP_201_CREATED)
def create_new_rental_request(
    request_data: RentalRequestCreate,
    db: Session = Depends(get_db),
    notifier: Notifier | None = Depends(get_notifier),
    current_user: User = Depends(require_roles("tenant")),
):
    """
    Apply for a verified listing. Only tenants can create rental requests.
    """
    rental_request = create_rental_request(
        db,
        current_user,
        listing_id=request_data.listing_id,
        desired_move_in=request_data.desired_move_in,
        message=request_data.message,
        notifier=notifier,
    )
    return RentalRequest.model_validate(rental_request)


@router.put("/{request_id}/status", response_model=RentalRequest)
def update_rental_request_status(
    request_id: int,
    status_data: RentalRequestStatusUpdate,
    db: Session = Depends(get_db),
    notifier: Notifier | None = Depends(get_notifier),
    current_user: User = Depends(get_current_user),
):
    """
    Accept, reject or cancel a pending request.
    - accepted / rejected: listing owner or admin
    - cancelled: the requester

    Accepting creates a draft contract for the listing unless one exists.
    """
    rental_request = transition_rental_request(
        db, request_id, status_data.status, current_user, notifier=notifier
    )
    return RentalRequest.model_validate(rental_request)
