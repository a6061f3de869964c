from app.db.models.user import User
from app.db.models.listing import Listing
from app.db.models.rental_request import RentalRequest
from app.db.models.contract import Contract, ContractTenant
from app.db.models.signature import ContractSignature
from app.db.models.proposed_end_date import ProposedEndDate

__all__ = [
    "User",
    "Listing",
    "RentalRequest",
    "Contract",
    "ContractTenant",
    "ContractSignature",
    "ProposedEndDate",
]
