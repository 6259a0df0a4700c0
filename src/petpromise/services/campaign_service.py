import logging
import random

from petpromise.core.errors import BadRequest, NotFound
from petpromise.core.security import Caller, require_self, require_self_or_admin
from petpromise.data_access.dynamodb import DynamoStore
from petpromise.data_access.filters import Filter, exclude_owner, only_owner
from petpromise.models.campaign import DonationCampaign, is_expired, with_expired
from petpromise.models.document import new_id, utc_now
from petpromise.services.mutations import MutationResult, conditional_update
from petpromise.services.query import (
    CAMPAIGN_DATA_LIMIT,
    PUBLIC_CAMPAIGNS_LIMIT,
    Page,
    paginate,
)

logger = logging.getLogger(__name__)

CAMPAIGN_SORT_KEY = "campaignAddedDate"
RECOMMENDATION_COUNT = 3

# The total is only moved by the donation ledger.
READ_ONLY_CAMPAIGN_FIELDS = frozenset({"id", "ownerEmail", "campaignAddedDate", "totalDonatedAmount"})


class CampaignService:
    def __init__(self, campaigns: DynamoStore, users: DynamoStore):
        self.campaigns = campaigns
        self.users = users

    def create_campaign(self, caller: Caller, campaign: DonationCampaign) -> dict:
        require_self(caller, campaign.owner_email)
        item = campaign.model_copy(
            update={"id": new_id(), "total_donated_amount": 0, "is_paused": False,
                    "campaign_added_date": utc_now()}
        ).to_item()
        self.campaigns.put(item)
        logger.info(f"Campaign {item['id']} created by {caller.email}")
        return with_expired(item)

    def get_campaign(self, campaign_id: str) -> dict | None:
        campaign = self.campaigns.get(campaign_id)
        return with_expired(campaign) if campaign else None

    def _page(self, filter: Filter | None, page, limit, default_limit: int) -> Page:
        result = paginate(self.campaigns, filter, page, limit,
                          default_limit=default_limit, sort_key=CAMPAIGN_SORT_KEY)
        result.items = [with_expired(c) for c in result.items]
        return result

    def list_public(self, page, limit) -> Page:
        return self._page(None, page, limit, PUBLIC_CAMPAIGNS_LIMIT)

    def list_mine(self, caller: Caller, email: str | None, page, limit) -> Page:
        require_self(caller, email)
        return self._page(only_owner(email), page, limit, CAMPAIGN_DATA_LIMIT)

    def list_others(self, caller: Caller, page, limit) -> Page:
        return self._page(exclude_owner(caller.email), page, limit, CAMPAIGN_DATA_LIMIT)

    def _active(self) -> list[dict]:
        return [
            with_expired(c)
            for c in self.campaigns.scan(Filter(equals={"isPaused": False}))
            if not is_expired(c)
        ]

    def recommended(self, exclude_id: str | None = None) -> list[dict]:
        """A random handful of active campaigns other than ``exclude_id``."""
        candidates = [c for c in self._active() if c["id"] != exclude_id]
        return random.sample(candidates, min(RECOMMENDATION_COUNT, len(candidates)))

    def active_campaigns(self) -> list[dict]:
        return self._active()

    def _owned_campaign(self, caller: Caller, campaign_id: str) -> dict:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            raise NotFound("Campaign not found")
        require_self_or_admin(caller, campaign.get("ownerEmail"), self.users)
        return campaign

    def update_campaign(self, caller: Caller, campaign_id: str, changes: dict | None) -> MutationResult:
        if not changes:
            raise BadRequest("Update payload is empty")
        forbidden = sorted(READ_ONLY_CAMPAIGN_FIELDS.intersection(changes))
        if forbidden:
            raise BadRequest(f"Fields cannot be edited: {', '.join(forbidden)}")
        self._owned_campaign(caller, campaign_id)
        result = conditional_update(self.campaigns, campaign_id, changes)
        result.item = with_expired(result.item)
        return result

    def delete_campaign(self, campaign_id: str) -> dict:
        removed = self.campaigns.delete(campaign_id)
        if removed is None:
            raise NotFound("Campaign not found")
        logger.info(f"Campaign {campaign_id} deleted")
        return removed
