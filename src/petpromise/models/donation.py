from decimal import Decimal

from pydantic import EmailStr, Field, model_validator

from petpromise.models.document import Document, utc_now


class Donation(Document):
    """Ledger entry keyed by the external charge reference."""

    id: str = ""
    transaction_id: str = Field(..., min_length=1)
    campaign_id: str
    donor_email: EmailStr
    donor_name: str | None = None
    amount: Decimal = Field(..., gt=0)
    applied_to_campaign: bool = False
    created_at: str = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _key_by_transaction(self):
        self.id = self.transaction_id
        return self
