from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.domain.enums import ContractStatus, SignatureMethod
from app.schemas.user import UserSummary


class ContractSignature(BaseModel):
    user_id: int
    signed_at: datetime
    signature_method: str
    full_name: str | None = None
    email: str | None = None


class ProposedEndDates(BaseModel):
    landlord: date | None = None
    tenants: dict[int, date] = Field(default_factory=dict)


class ContractSummary(BaseModel):
    """Contract as listed: base fields and tenant roster."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    listing_id: int
    landlord_user_id: int
    start_date: date
    end_date: date | None = None
    rent: Decimal
    deposit: Decimal
    status: str
    signed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    tenants: list[UserSummary] = Field(default_factory=list)


class Contract(ContractSummary):
    """Full contract view with parties, signatures and negotiation state."""

    landlord: UserSummary | None = None
    signatures: list[ContractSignature] = Field(default_factory=list)
    proposed_end_dates: ProposedEndDates = Field(default_factory=ProposedEndDates)
    signed_count: int = 0
    total_parties: int = 1


class ContractCreate(BaseModel):
    rental_request_id: int
    start_date: date
    end_date: date | None = None
    rent: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    deposit: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    tenant_ids: list[int] = Field(
        default_factory=list,
        description="Tenant members besides the requester, who is always included",
    )


class ContractUpdate(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    rent: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    deposit: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    status: str | None = None

    @model_validator(mode="after")
    def validate_status(self):
        """Ensure status, when given, is a known contract status."""
        if self.status is not None and self.status not in ContractStatus.ALL:
            raise ValueError(
                f"status must be one of: {', '.join(ContractStatus.ALL)}"
            )
        return self

    @model_validator(mode="after")
    def validate_required_fields_not_null(self):
        """Only end_date may be explicitly cleared."""
        for field_name in ("start_date", "rent", "deposit", "status"):
            if field_name in self.model_fields_set and getattr(self, field_name) is None:
                raise ValueError(f"{field_name} cannot be null")
        return self


class ProposedEndDateUpdate(BaseModel):
    proposed_end_date: date


class Agreement(BaseModel):
    state: str
    agreed_end_date: date | None = None
    proposed_end_dates: ProposedEndDates


class SignContractRequest(BaseModel):
    signature_method: str = Field(default=SignatureMethod.CHECKBOX)

    @model_validator(mode="after")
    def validate_signature_method(self):
        if self.signature_method not in SignatureMethod.ALL:
            raise ValueError(
                f"signature_method must be one of: {', '.join(SignatureMethod.ALL)}"
            )
        return self


class SignContractResponse(BaseModel):
    """The caller's new signature, the contract after signing, and whether it was finalized."""

    signature: ContractSignature
    contract: Contract
    finalized: bool
