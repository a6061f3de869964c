from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, joinedload

from app.db.models.contract import Contract as ContractModel
from app.db.models.contract import ContractTenant as ContractTenantModel
from app.db.models.signature import ContractSignature as SignatureModel
from app.domain.enums import ContractStatus


def get_signature(db: Session, contract_id: int, user_id: int) -> SignatureModel | None:
    """Get the signature of a user on a contract."""
    return (
        db.query(SignatureModel)
        .filter(SignatureModel.contract_id == contract_id, SignatureModel.user_id == user_id)
        .first()
    )


def get_signatures(db: Session, contract_id: int) -> list[SignatureModel]:
    """Get all signatures of a contract with their signers loaded, oldest first."""
    return (
        db.query(SignatureModel)
        .options(joinedload(SignatureModel.signer))
        .filter(SignatureModel.contract_id == contract_id)
        .order_by(SignatureModel.signed_at, SignatureModel.user_id)
        .all()
    )


def create_signature(
    db: Session,
    contract_id: int,
    user_id: int,
    signature_method: str,
    signed_at: datetime,
) -> SignatureModel:
    """Stage a signature row. Raises IntegrityError on a duplicate (contract, user)."""
    signature = SignatureModel(
        contract_id=contract_id,
        user_id=user_id,
        signature_method=signature_method,
        signed_at=signed_at,
    )
    db.add(signature)
    db.flush()
    return signature


def _signed_count_subquery(contract_id: int):
    return (
        select(func.count(SignatureModel.user_id.distinct()))
        .where(SignatureModel.contract_id == contract_id)
        .scalar_subquery()
    )


def _total_parties_subquery(contract_id: int):
    # The landlord plus every tenant member
    return (
        select(func.count() + 1)
        .select_from(ContractTenantModel)
        .where(ContractTenantModel.contract_id == contract_id)
        .scalar_subquery()
    )


def finalize_if_complete(db: Session, contract_id: int, signed_at: datetime) -> bool:
    """
    Flip a draft contract to 'signed' iff every required party has signed.

    Count, compare and flip happen in one UPDATE statement; the status guard
    means a contract is finalized at most once. Returns True when this call
    performed the finalization.
    """
    result = db.execute(
        update(ContractModel)
        .where(
            ContractModel.id == contract_id,
            ContractModel.status == ContractStatus.DRAFT,
            _signed_count_subquery(contract_id) == _total_parties_subquery(contract_id),
        )
        .values(status=ContractStatus.SIGNED, signed_at=signed_at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
