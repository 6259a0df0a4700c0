from datetime import datetime, timezone
from decimal import Decimal

from pydantic import EmailStr, Field

from petpromise.models.document import Document, new_id, utc_now


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO date or datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_expired(campaign: dict, now: datetime | None = None) -> bool:
    last_date = parse_timestamp(campaign.get("lastDate"))
    if last_date is None:
        return False
    return last_date < (now or datetime.now(timezone.utc))


def with_expired(campaign: dict, now: datetime | None = None) -> dict:
    return {**campaign, "expired": is_expired(campaign, now)}


class DonationCampaign(Document):
    id: str = Field(default_factory=new_id)
    owner_email: EmailStr
    pet_name: str | None = None
    pet_image: str | None = None
    max_donation_amount: Decimal | None = Field(None, ge=0)
    short_description: str | None = None
    long_description: str | None = None
    last_date: str
    is_paused: bool = False
    total_donated_amount: Decimal = Decimal("0")
    campaign_added_date: str = Field(default_factory=utc_now)
