from pydantic import BaseModel, ConfigDict


class UserSummary(BaseModel):
    """Public view of a user as shown on requests and contracts."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
