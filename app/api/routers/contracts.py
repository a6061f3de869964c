from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, get_notifier
from app.db.models.user import User
from app.schemas.contract import (
    Agreement,
    Contract,
    ContractCreate,
    ContractSummary,
    ContractUpdate,
    ProposedEndDateUpdate,
    SignContractRequest,
    SignContractResponse,
)
from app.schemas.pagination import PaginatedResponse
from app.services.contract import create_contract, get_contract, list_contracts, update_contract
from app.services.negotiation import get_agreement, propose_end_date, to_agreement_view
from app.services.notifications import Notifier
from app.services.signature import confirm_contract, sign_contract

router = APIRouter(prefix="/contracts", tags=["contracts"])


@router.get("", response_model=PaginatedResponse[ContractSummary])
def get_all_contracts(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(20, ge=1, le=100, description="Number of items per page"),
    landlord_id: int | None = Query(None, description="Filter by landlord user ID"),
    tenant_id: int | None = Query(None, description="Filter by tenant member user ID"),
    status: str | None = Query(None, description="Filter by contract status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get contracts with pagination and optional filters.
    - Admin: all contracts
    - Landlord: contracts they own
    - Tenant: contracts they are a member of
    """
    items, total = list_contracts(
        db,
        current_user,
        page=page,
        page_size=page_size,
        landlord_id=landlord_id,
        tenant_id=tenant_id,
        status=status,
    )
    return PaginatedResponse(items=items, total=total, page=page, page_size=page_size)


@router.post("", response_model=Contract, status_code=201)
def create_new_contract(
    contract_data: ContractCreate,
    db: Session = Depends(get_db),
    notifier: Notifier | None = Depends(get_notifier),
    current_user: User = Depends(get_current_user),
):
    """
    Draft a contract from an accepted rental request (listing owner or admin).

    The requester is always a tenant member; tenant_ids adds co-tenants.
    """
    return create_contract(
        db,
        current_user,
        rental_request_id=contract_data.rental_request_id,
        start_date=contract_data.start_date,
        end_date=contract_data.end_date,
        rent=contract_data.rent,
        deposit=contract_data.deposit,
        tenant_ids=contract_data.tenant_ids,
        notifier=notifier,
    )


@router.get("/{contract_id}", response_model=Contract)
def get_contract_by_id(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return get_contract(db, contract_id, current_user)


@router.put("/{contract_id}", response_model=Contract)
def update_contract_by_id(
    contract_id: int,
    contract_data: ContractUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Update a contract.

    Fields not included in the request are not updated. A request carrying
    only end_date is open to every party; any other field needs the landlord
    or an admin.
    """
    update_data = contract_data.model_dump(exclude_unset=True)
    return update_contract(db, contract_id, current_user, update_data)


@router.put("/{contract_id}/proposed-end-date", response_model=Agreement)
def put_proposed_end_date(
    contract_id: int,
    proposal: ProposedEndDateUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    agreement = propose_end_date(db, contract_id, current_user, proposal.proposed_end_date)
    return to_agreement_view(agreement)


@router.get("/{contract_id}/agreement", response_model=Agreement)
def get_contract_agreement(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return to_agreement_view(get_agreement(db, contract_id, current_user))


@router.post("/{contract_id}/sign", response_model=SignContractResponse)
def sign_contract_by_id(
    contract_id: int,
    sign_data: SignContractRequest | None = None,
    db: Session = Depends(get_db),
    notifier: Notifier | None = Depends(get_notifier),
    current_user: User = Depends(get_current_user),
):
    """
    Sign a contract as the landlord or a tenant member.

    The contract becomes 'signed' once every party has signed.
    """
    sign_data = sign_data or SignContractRequest()
    return sign_contract(
        db,
        contract_id,
        current_user,
        signature_method=sign_data.signature_method,
        notifier=notifier,
    )


@router.post("/{contract_id}/confirm", response_model=SignContractResponse)
def confirm_contract_by_id(
    contract_id: int,
    sign_data: SignContractRequest | None = None,
    db: Session = Depends(get_db),
    notifier: Notifier | None = Depends(get_notifier),
    current_user: User = Depends(get_current_user),
):
    """
    Commit the agreed end date and sign in one step.
    """
    sign_data = sign_data or SignContractRequest()
    return confirm_contract(
        db,
        contract_id,
        current_user,
        signature_method=sign_data.signature_method,
        notifier=notifier,
    )
