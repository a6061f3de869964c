import logging
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session

import app.repositories.proposed_end_date as proposed_end_date_repo
from app.db.models.user import User
from app.domain.negotiation import Agreement, evaluate_agreement
from app.domain.parties import Membership, PartyRelation, is_party
from app.errors import DomainValidationError, ForbiddenError
from app.schemas.contract import Agreement as AgreementView
from app.schemas.contract import ProposedEndDates
from app.services.contract import classify_caller, get_proposed_end_dates, load_contract

logger = logging.getLogger(__name__)


def current_agreement(db: Session, contract_id: int, membership: Membership) -> Agreement:
    landlord, tenants = get_proposed_end_dates(db, contract_id, membership)
    return evaluate_agreement(landlord, tenants)


def to_agreement_view(agreement: Agreement) -> AgreementView:
    return AgreementView(
        state=agreement.state,
        agreed_end_date=agreement.agreed_end_date,
        proposed_end_dates=ProposedEndDates(
            landlord=agreement.landlord, tenants=dict(agreement.tenants)
        ),
    )


def get_agreement(db: Session, contract_id: int, current_user: User) -> Agreement:
    """Evaluate the end date agreement. Readable by every party and admins."""
    contract = load_contract(db, contract_id)
    membership, relation = classify_caller(db, contract, current_user)
    if relation == PartyRelation.UNAUTHORIZED:
        raise ForbiddenError("You do not have access to this contract")
    return current_agreement(db, contract.id, membership)


def propose_end_date(
    db: Session,
    contract_id: int,
    current_user: User,
    proposed_end_date: date,
) -> Agreement:
    """
    Record the caller's proposed end date, replacing any earlier one.

    Only the landlord and tenant members hold a seat in the negotiation.
    Returns the agreement as it stands after the proposal.
    """
    try:
        contract = load_contract(db, contract_id, lock=True)
        membership, relation = classify_caller(db, contract, current_user)
        if not is_party(relation):
            raise ForbiddenError("Only contract parties can propose an end date")
        if proposed_end_date < contract.start_date:
            raise DomainValidationError("End date must be after start date")

        proposed_end_date_repo.upsert_proposal(
            db,
            contract_id=contract.id,
            user_id=current_user.id,
            proposed_end_date=proposed_end_date,
            updated_at=datetime.now(timezone.utc),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    agreement = current_agreement(db, contract_id, membership)
    logger.info(
        "User %s proposed end date %s for contract %s, agreement is %s",
        current_user.id,
        proposed_end_date,
        contract_id,
        agreement.state,
    )
    return agreement
