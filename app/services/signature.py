import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import app.repositories.signature as signature_repo
from app.db.models.contract import Contract as ContractModel
from app.db.models.user import User
from app.domain.contract_update import EndDateOnly
from app.domain.enums import ContractStatus, SignatureMethod
from app.domain.parties import Membership, is_party
from app.errors import (
    DuplicateResourceError,
    ForbiddenError,
    InvalidStateError,
)
from app.schemas.contract import SignContractResponse
from app.services.contract import (
    apply_field_update,
    build_contract_view,
    classify_caller,
    load_contract,
)
from app.services.negotiation import current_agreement
from app.services.notifications import CONTRACT_SIGNED, Notifier, publish

logger = logging.getLogger(__name__)


def _sign_locked(
    db: Session,
    contract: ContractModel,
    relation: str,
    current_user: User,
    signature_method: str,
) -> bool:
    """
    Record the caller's signature on a locked contract, then try to finalize.

    Returns True when this signature completed the contract.
    """
    if not is_party(relation):
        raise ForbiddenError("You are not authorized to sign this contract")
    if contract.status == ContractStatus.CANCELLED:
        raise InvalidStateError("Cannot sign a cancelled contract")
    if signature_repo.get_signature(db, contract.id, current_user.id):
        raise DuplicateResourceError("You have already signed this contract")

    now = datetime.now(timezone.utc)
    try:
        with db.begin_nested():
            signature_repo.create_signature(
                db,
                contract_id=contract.id,
                user_id=current_user.id,
                signature_method=signature_method,
                signed_at=now,
            )
    except IntegrityError:
        raise DuplicateResourceError("You have already signed this contract")

    return signature_repo.finalize_if_complete(db, contract.id, now)


def _after_commit(
    db: Session,
    contract: ContractModel,
    membership: Membership,
    current_user: User,
    finalized: bool,
    notifier: Notifier | None,
) -> SignContractResponse:
    db.refresh(contract)
    logger.info("User %s signed contract %s", current_user.id, contract.id)
    if finalized:
        logger.info("Contract %s finalized, all %s parties signed", contract.id, membership.total_parties)
        publish(
            notifier,
            CONTRACT_SIGNED,
            {
                "contract_id": contract.id,
                "listing_id": contract.listing_id,
                "landlord_user_id": contract.landlord_user_id,
                "tenant_user_ids": sorted(membership.tenant_user_ids),
                "signed_at": contract.signed_at.isoformat() if contract.signed_at else None,
            },
        )
    view = build_contract_view(db, contract)
    signature = next(s for s in view.signatures if s.user_id == current_user.id)
    return SignContractResponse(signature=signature, contract=view, finalized=finalized)


def sign_contract(
    db: Session,
    contract_id: int,
    current_user: User,
    signature_method: str = SignatureMethod.CHECKBOX,
    notifier: Notifier | None = None,
) -> SignContractResponse:
    """
    Sign a contract as the landlord or a tenant member.

    The contract flips to 'signed' in the same transaction as the last
    required signature. Returns the new signature, the contract view and
    whether this call finalized it.
    """
    try:
        contract = load_contract(db, contract_id, lock=True)
        membership, relation = classify_caller(db, contract, current_user)
        finalized = _sign_locked(db, contract, relation, current_user, signature_method)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return _after_commit(db, contract, membership, current_user, finalized, notifier)


def confirm_contract(
    db: Session,
    contract_id: int,
    current_user: User,
    signature_method: str = SignatureMethod.CHECKBOX,
    notifier: Notifier | None = None,
) -> SignContractResponse:
    """
    Commit the agreed end date and sign, in one transaction.

    Fails with InvalidStateError unless both sides agree on the end date.
    """
    try:
        contract = load_contract(db, contract_id, lock=True)
        membership, relation = classify_caller(db, contract, current_user)
        if not is_party(relation):
            raise ForbiddenError("You are not authorized to sign this contract")

        agreement = current_agreement(db, contract.id, membership)
        if not agreement.is_agreed:
            raise InvalidStateError(
                f"End date agreement is {agreement.state}; both sides must agree before signing"
            )

        apply_field_update(
            db, contract, EndDateOnly(end_date=agreement.agreed_end_date), relation, current_user
        )
        finalized = _sign_locked(db, contract, relation, current_user, signature_method)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return _after_commit(db, contract, membership, current_user, finalized, notifier)
