"""Provider profile schemas."""
from decimal import Decimal

from pydantic import BaseModel, Field


class ProfileUpsert(BaseModel):
    expertise: str
    price_per_session: Decimal = Field(ge=0)


class ProviderResponse(BaseModel):
    account_id: int
    first_name: str
    last_name: str
    expertise: str
    price_per_session: Decimal
