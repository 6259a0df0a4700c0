from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from petpromise.models.user import Role


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokenRequest(CamelModel):
    """Identity claims to sign; anything beyond the email is carried as-is."""
    model_config = ConfigDict(extra="allow")

    email: EmailStr


class TokenResponse(BaseModel):
    token: str


class RoleUpdate(BaseModel):
    role: Role = "Admin"


class AdoptionRequestCreate(CamelModel):
    model_config = ConfigDict(extra="allow")

    requestor_email: EmailStr
    requestor_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    pet_name: Optional[str] = None
    pet_image: Optional[str] = None


class PaymentIntentRequest(CamelModel):
    donation_amount: Decimal


class PaymentIntentResponse(CamelModel):
    client_secret: str


class ApplyDonationRequest(CamelModel):
    transaction_id: str = Field(..., min_length=1)
