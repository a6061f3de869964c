from datetime import date, datetime

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from app.db.models.proposed_end_date import ProposedEndDate as ProposedEndDateModel


def negotiation_table_exists(db: Session) -> bool:
    """Whether the proposed end dates table has been migrated in this database."""
    return inspect(db.connection()).has_table(ProposedEndDateModel.__tablename__)


def get_proposals(db: Session, contract_id: int) -> list[ProposedEndDateModel]:
    """Get every user's current proposal for a contract."""
    return (
        db.query(ProposedEndDateModel)
        .filter(ProposedEndDateModel.contract_id == contract_id)
        .order_by(ProposedEndDateModel.user_id)
        .all()
    )


def upsert_proposal(
    db: Session,
    contract_id: int,
    user_id: int,
    proposed_end_date: date,
    updated_at: datetime,
) -> ProposedEndDateModel:
    """
    Insert or replace a user's proposal. Last write wins, no history is kept.

    Callers must hold the contract row lock so that two writes by the same
    user cannot both take the insert branch.
    """
    proposal = db.get(ProposedEndDateModel, (contract_id, user_id), populate_existing=True)
    if proposal is None:
        proposal = ProposedEndDateModel(contract_id=contract_id, user_id=user_id)
        db.add(proposal)

    proposal.proposed_end_date = proposed_end_date
    proposal.updated_at = updated_at
    db.flush()
    return proposal
