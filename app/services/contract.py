import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import app.repositories.contract as contract_repo
import app.repositories.listing as listing_repo
import app.repositories.proposed_end_date as proposed_end_date_repo
import app.repositories.rental_request as rental_request_repo
import app.repositories.signature as signature_repo
import app.repositories.user as user_repo
from app.db.models.contract import Contract as ContractModel
from app.db.models.user import User
from app.domain.contract_update import (
    ContractFieldUpdate,
    EndDateOnly,
    FullEdit,
    build_field_update,
    may_apply,
)
from app.domain.enums import ContractStatus, RentalRequestStatus, UserRole
from app.domain.parties import Membership, PartyRelation, classify_party
from app.errors import (
    DomainValidationError,
    DuplicateResourceError,
    ForbiddenError,
    NotFoundError,
)
from app.schemas.contract import Contract as ContractView
from app.schemas.contract import ContractSignature, ContractSummary, ProposedEndDates
from app.schemas.user import UserSummary
from app.services.notifications import CONTRACT_CREATED, Notifier, publish

logger = logging.getLogger(__name__)


def load_contract(db: Session, contract_id: int, lock: bool = False) -> ContractModel:
    """Get a contract or raise NotFoundError. With lock=True the row stays locked until commit."""
    if lock:
        contract = contract_repo.lock_contract(db, contract_id)
    else:
        contract = contract_repo.get_contract_by_id(db, contract_id)
    if not contract:
        raise NotFoundError("Contract not found")
    return contract


def contract_membership(db: Session, contract: ContractModel) -> Membership:
    return Membership.of(contract.landlord_user_id, contract_repo.get_tenant_ids(db, contract.id))


def classify_caller(
    db: Session, contract: ContractModel, current_user: User
) -> tuple[Membership, str]:
    membership = contract_membership(db, contract)
    return membership, classify_party(membership, current_user.id, current_user.role)


def get_proposed_end_dates(
    db: Session, contract_id: int, membership: Membership
) -> tuple[date | None, dict[int, date]]:
    """
    Read the current proposals split into (landlord, {tenant_id: date}).

    Proposals from users who are no longer parties are ignored. When the
    negotiation table has not been migrated the state is simply empty.
    """
    if not proposed_end_date_repo.negotiation_table_exists(db):
        logger.warning("Negotiation table missing, reporting empty proposals for contract %s", contract_id)
        return None, {}

    landlord = None
    tenants: dict[int, date] = {}
    for proposal in proposed_end_date_repo.get_proposals(db, contract_id):
        if proposal.user_id == membership.landlord_user_id:
            landlord = proposal.proposed_end_date
        elif proposal.user_id in membership.tenant_user_ids:
            tenants[proposal.user_id] = proposal.proposed_end_date
    return landlord, tenants


def _base_fields(contract: ContractModel) -> dict[str, Any]:
    return {
        "id": contract.id,
        "listing_id": contract.listing_id,
        "landlord_user_id": contract.landlord_user_id,
        "start_date": contract.start_date,
        "end_date": contract.end_date,
        "rent": contract.rent,
        "deposit": contract.deposit,
        "status": contract.status,
        "signed_at": contract.signed_at,
        "created_at": contract.created_at,
        "updated_at": contract.updated_at,
    }


def build_contract_view(db: Session, contract: ContractModel) -> ContractView:
    """Assemble the full contract view: parties, signatures and negotiation state."""
    tenants = contract_repo.get_tenants(db, contract.id)
    membership = Membership.of(contract.landlord_user_id, [tenant.id for tenant in tenants])
    signatures = signature_repo.get_signatures(db, contract.id)
    landlord_date, tenant_dates = get_proposed_end_dates(db, contract.id, membership)

    return ContractView(
        **_base_fields(contract),
        tenants=[UserSummary.model_validate(tenant) for tenant in tenants],
        landlord=UserSummary.model_validate(contract.landlord),
        signatures=[
            ContractSignature(
                user_id=signature.user_id,
                signed_at=signature.signed_at,
                signature_method=signature.signature_method,
                full_name=signature.signer.full_name,
                email=signature.signer.email,
            )
            for signature in signatures
        ],
        proposed_end_dates=ProposedEndDates(landlord=landlord_date, tenants=tenant_dates),
        signed_count=len({signature.user_id for signature in signatures}),
        total_parties=membership.total_parties,
    )


def get_contract(db: Session, contract_id: int, current_user: User) -> ContractView:
    """
    Get a contract by ID.
    - Landlord and tenant members: their own contracts
    - Admin: any contract
    """
    contract = load_contract(db, contract_id)
    _, relation = classify_caller(db, contract, current_user)
    if relation == PartyRelation.UNAUTHORIZED:
        raise ForbiddenError("You do not have access to this contract")
    return build_contract_view(db, contract)


def list_contracts(
    db: Session,
    current_user: User,
    page: int = 1,
    page_size: int = 20,
    landlord_id: int | None = None,
    tenant_id: int | None = None,
    status: str | None = None,
) -> tuple[list[ContractSummary], int]:
    """
    List contracts visible to the caller.
    - Admin: all contracts, every filter allowed
    - Landlord: contracts they own
    - Tenant: contracts they are a member of
    """
    if status is not None and status not in ContractStatus.ALL:
        raise DomainValidationError(f"status must be one of: {', '.join(ContractStatus.ALL)}")

    if current_user.role == UserRole.TENANT:
        if tenant_id is not None and tenant_id != current_user.id:
            raise ForbiddenError("Tenants can only list their own contracts")
        tenant_id = current_user.id
    elif current_user.role == UserRole.LANDLORD:
        if landlord_id is not None and landlord_id != current_user.id:
            raise ForbiddenError("Landlords can only list their own contracts")
        landlord_id = current_user.id

    contracts, total = contract_repo.get_all_contracts_paginated(
        db,
        page=page,
        page_size=page_size,
        landlord_id=landlord_id,
        tenant_id=tenant_id,
        status=status,
    )
    rosters = contract_repo.get_tenants_for_contracts(db, [contract.id for contract in contracts])
    items = [
        ContractSummary(
            **_base_fields(contract),
            tenants=[UserSummary.model_validate(tenant) for tenant in rosters[contract.id]],
        )
        for contract in contracts
    ]
    return items, total


def _validate_roster(db: Session, tenant_user_ids: list[int]) -> None:
    users = {user.id: user for user in user_repo.get_users_by_ids(db, tenant_user_ids)}
    for tenant_user_id in tenant_user_ids:
        user = users.get(tenant_user_id)
        if user is None:
            raise DomainValidationError(f"User {tenant_user_id} does not exist")
        if user.role != UserRole.TENANT:
            raise DomainValidationError(f"User {tenant_user_id} is not a tenant")


def create_contract(
    db: Session,
    current_user: User,
    rental_request_id: int,
    start_date: date,
    rent: Decimal,
    deposit: Decimal = Decimal("0"),
    end_date: date | None = None,
    tenant_ids: list[int] | None = None,
    notifier: Notifier | None = None,
) -> ContractView:
    """
    Draft a contract from an accepted rental request.

    - Validates the request exists and is accepted
    - Validates the caller owns the listing or is an admin
    - Validates the dates and every extra tenant
    - The requester is always a tenant member; the listing owner is the landlord
    """
    rental_request = rental_request_repo.get_rental_request_by_id(db, rental_request_id)
    if not rental_request or rental_request.status != RentalRequestStatus.ACCEPTED:
        raise NotFoundError("Accepted rental request not found")

    listing = listing_repo.get_listing_by_id(db, rental_request.listing_id)
    if not listing:
        raise NotFoundError("Listing does not exist")
    if listing.owner_user_id != current_user.id and current_user.role != UserRole.ADMIN:
        raise ForbiddenError("You do not own this listing")

    if end_date is not None and end_date < start_date:
        raise DomainValidationError("End date must be after start date")
    if rent < 0 or deposit < 0:
        raise DomainValidationError("Rent and deposit must not be negative")

    tenant_user_ids = [rental_request.requester_user_id]
    for tenant_id in tenant_ids or []:
        if tenant_id not in tenant_user_ids:
            tenant_user_ids.append(tenant_id)
    _validate_roster(db, tenant_user_ids)

    try:
        listing_repo.lock_listing(db, listing.id)
        if contract_repo.get_active_contract_for_listing(db, listing.id, listing.owner_user_id):
            raise DuplicateResourceError(
                "A contract that is not cancelled already exists for this listing and landlord"
            )
        contract = contract_repo.create_contract(
            db,
            listing_id=listing.id,
            landlord_user_id=listing.owner_user_id,
            start_date=start_date,
            end_date=end_date,
            rent=rent,
            deposit=deposit,
            tenant_user_ids=tenant_user_ids,
        )
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent accept or create on the same listing
        db.rollback()
        raise DuplicateResourceError(
            "A contract that is not cancelled already exists for this listing and landlord"
        )
    except Exception:
        db.rollback()
        raise

    db.refresh(contract)
    logger.info(
        "Contract %s created for listing %s by user %s with tenants %s",
        contract.id,
        listing.id,
        current_user.id,
        tenant_user_ids,
    )
    publish(
        notifier,
        CONTRACT_CREATED,
        {
            "contract_id": contract.id,
            "listing_id": contract.listing_id,
            "landlord_user_id": contract.landlord_user_id,
            "tenant_user_ids": sorted(tenant_user_ids),
            "rental_request_id": rental_request.id,
        },
    )
    return build_contract_view(db, contract)


def apply_field_update(
    db: Session,
    contract: ContractModel,
    update: ContractFieldUpdate,
    relation: str,
    current_user: User,
) -> ContractModel:
    """
    Authorize and stage a field update on a locked contract. Does not commit.

    EndDateOnly is open to every party and admins, FullEdit to the landlord
    and admins only.
    """
    if not may_apply(update, relation):
        raise ForbiddenError("You do not have permission to update this contract")

    match update:
        case EndDateOnly(end_date=end_date):
            fields: dict[str, Any] = {"end_date": end_date}
        case FullEdit(changes=changes):
            fields = dict(changes)

    start_date = fields.get("start_date", contract.start_date)
    end_date = fields.get("end_date", contract.end_date)
    if end_date is not None and end_date < start_date:
        raise DomainValidationError("End date must be after start date")

    if fields.get("status") == ContractStatus.SIGNED and contract.status != ContractStatus.SIGNED:
        fields["signed_at"] = datetime.now(timezone.utc)
        logger.warning(
            "Contract %s marked signed directly by user %s (%s), bypassing signatures",
            contract.id,
            current_user.id,
            relation,
        )
    elif "status" in fields and fields["status"] != ContractStatus.SIGNED:
        # Leaving 'signed' drops the old finalization time
        fields["signed_at"] = None

    return contract_repo.update_contract(db, contract, **fields)


def update_contract(
    db: Session,
    contract_id: int,
    current_user: User,
    changes: dict[str, Any],
) -> ContractView:
    """
    Update a contract.

    Only fields explicitly provided in changes are updated. An update of
    end_date alone may come from any party; anything else is landlord/admin.
    """
    if not changes:
        raise DomainValidationError("No fields to update")
    try:
        update = build_field_update(changes)
    except ValueError as e:
        raise DomainValidationError(str(e))

    try:
        contract = load_contract(db, contract_id, lock=True)
        _, relation = classify_caller(db, contract, current_user)
        apply_field_update(db, contract, update, relation, current_user)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateResourceError(
            "A contract that is not cancelled already exists for this listing and landlord"
        )
    except Exception:
        db.rollback()
        raise

    db.refresh(contract)
    logger.info("Contract %s updated by user %s: %s", contract.id, current_user.id, sorted(changes))
    return build_contract_view(db, contract)
