from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy import exists
from sqlalchemy.orm import Session

from app.db.models.contract import Contract as ContractModel
from app.db.models.contract import ContractTenant as ContractTenantModel
from app.db.models.user import User as UserModel
from app.domain.enums import ContractStatus


def get_contract_by_id(db: Session, contract_id: int) -> ContractModel | None:
    """Get a contract by ID."""
    return db.query(ContractModel).filter(ContractModel.id == contract_id).first()


def lock_contract(db: Session, contract_id: int) -> ContractModel | None:
    """
    Get a contract by ID holding a row lock until the transaction ends.

    Every write to a contract's tenants, signatures or proposals goes through
    this lock, so those writes are serialized per contract.
    """
    return (
        db.query(ContractModel)
        .filter(ContractModel.id == contract_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_active_contract_for_listing(
    db: Session, listing_id: int, landlord_user_id: int
) -> ContractModel | None:
    """Get the non-cancelled contract for a listing and landlord, if any."""
    return (
        db.query(ContractModel)
        .filter(
            ContractModel.listing_id == listing_id,
            ContractModel.landlord_user_id == landlord_user_id,
            ContractModel.status != ContractStatus.CANCELLED,
        )
        .first()
    )


def create_contract(
    db: Session,
    listing_id: int,
    landlord_user_id: int,
    start_date: date,
    rent: Decimal,
    deposit: Decimal,
    tenant_user_ids: list[int],
    end_date: date | None = None,
) -> ContractModel:
    """Stage a draft contract and its tenant roster. Pure data access - no business logic."""
    db_contract = ContractModel(
        listing_id=listing_id,
        landlord_user_id=landlord_user_id,
        start_date=start_date,
        end_date=end_date,
        rent=rent,
        deposit=deposit,
        status=ContractStatus.DRAFT,
    )
    db.add(db_contract)
    db.flush()

    for tenant_user_id in tenant_user_ids:
        db.add(ContractTenantModel(contract_id=db_contract.id, tenant_user_id=tenant_user_id))
    db.flush()
    return db_contract


def get_tenant_ids(db: Session, contract_id: int) -> list[int]:
    """Get the tenant member IDs of a contract."""
    rows = (
        db.query(ContractTenantModel.tenant_user_id)
        .filter(ContractTenantModel.contract_id == contract_id)
        .all()
    )
    return [row.tenant_user_id for row in rows]


def get_tenants(db: Session, contract_id: int) -> list[UserModel]:
    """Get the tenant members of a contract as users."""
    return (
        db.query(UserModel)
        .join(ContractTenantModel, ContractTenantModel.tenant_user_id == UserModel.id)
        .filter(ContractTenantModel.contract_id == contract_id)
        .order_by(UserModel.id)
        .all()
    )


def get_tenants_for_contracts(
    db: Session, contract_ids: list[int]
) -> dict[int, list[UserModel]]:
    """Get tenant rosters for several contracts at once, keyed by contract ID."""
    rosters: dict[int, list[UserModel]] = defaultdict(list)
    if not contract_ids:
        return rosters
    rows = (
        db.query(ContractTenantModel.contract_id, UserModel)
        .join(UserModel, ContractTenantModel.tenant_user_id == UserModel.id)
        .filter(ContractTenantModel.contract_id.in_(contract_ids))
        .order_by(UserModel.id)
        .all()
    )
    for contract_id, user in rows:
        rosters[contract_id].append(user)
    return rosters


def update_contract(db: Session, contract: ContractModel, **kwargs) -> ContractModel:
    """
    Update a contract. Only updates fields that are explicitly provided.

    To clear a field (set to None), explicitly pass it with None value.
    """
    for field_name in ("start_date", "end_date", "rent", "deposit", "status", "signed_at"):
        if field_name in kwargs:
            setattr(contract, field_name, kwargs[field_name])

    db.flush()
    return contract


def get_all_contracts_paginated(
    db: Session,
    page: int = 1,
    page_size: int = 20,
    landlord_id: int | None = None,
    tenant_id: int | None = None,
    status: str | None = None,
) -> tuple[list[ContractModel], int]:
    """
    Get contracts with pagination and optional filters, newest first.

    Returns:
        Tuple of (list of contracts, total count)
    """
    query = db.query(ContractModel)

    if landlord_id is not None:
        query = query.filter(ContractModel.landlord_user_id == landlord_id)

    if tenant_id is not None:
        query = query.filter(
            exists().where(
                ContractTenantModel.contract_id == ContractModel.id,
                ContractTenantModel.tenant_user_id == tenant_id,
            )
        )

    if status is not None:
        query = query.filter(ContractModel.status == status)

    total = query.count()
    skip = (page - 1) * page_size
    contracts = (
        query.order_by(ContractModel.created_at.desc(), ContractModel.id.desc())
        .offset(skip)
        .limit(page_size)
        .all()
    )
    return contracts, total
