from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.user import UserSummary


class RentalRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    listing_id: int
    requester_user_id: int
    desired_move_in: date | None = None
    message: str | None = None
    status: str
    created_at: datetime
    updated_at: datetime
    requester: UserSummary | None = None


class RentalRequestCreate(BaseModel):
    listing_id: int
    desired_move_in: date | None = None
    message: str | None = Field(None, max_length=2000)


class RentalRequestStatusUpdate(BaseModel):
    # Any string is accepted here; unknown targets are rejected by the service
    status: str = Field(..., min_length=1, max_length=20)
