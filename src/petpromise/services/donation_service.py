import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import stripe

from petpromise.core.errors import BadRequest, NotFound, PaymentError
from petpromise.core.security import Caller, require_self, require_self_or_admin
from petpromise.data_access.dynamodb import DynamoStore
from petpromise.data_access.filters import Filter, only_owner
from petpromise.models.document import utc_now
from petpromise.models.donation import Donation
from petpromise.services.mutations import MutationResult, conditional_update
from petpromise.services.query import DONATION_HISTORY_LIMIT, Page, paginate
from petpromise.services.saga import Saga

logger = logging.getLogger(__name__)

TOTAL_FIELD = "totalDonatedAmount"
APPLIED_FIELD = "appliedToCampaign"


@dataclass
class RecordResult:
    donation: dict
    created: bool


@dataclass
class LedgerResult:
    donation: dict | None
    campaign: dict | None
    changed: bool


def to_minor_units(amount) -> int:
    try:
        value = Decimal(str(amount))
    except InvalidOperation as e:
        raise PaymentError(f"Invalid donation amount: {amount}") from e
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class DonationService:
    """
    Donation ledger plus the campaign totals derived from it. A campaign's
    total only moves when a ledger entry flips ``appliedToCampaign``, so each
    transaction id is counted at most once.
    """

    def __init__(
        self,
        donations: DynamoStore,
        campaigns: DynamoStore,
        users: DynamoStore,
        currency: str = "usd",
        minimum_amount_cents: int = 50
    ):
        self.donations = donations
        self.campaigns = campaigns
        self.users = users
        self.currency = currency
        self.minimum_amount_cents = minimum_amount_cents

    def create_payment_intent(self, amount) -> str:
        cents = to_minor_units(amount)
        if cents <= 0:
            raise PaymentError("Donation amount must be positive")
        if cents < self.minimum_amount_cents:
            raise PaymentError(f"Donation amount must be at least {self.minimum_amount_cents} minor units")

        try:
            intent = stripe.PaymentIntent.create(
                amount=cents,
                currency=self.currency,
                payment_method_types=["card"],
            )
        except stripe.StripeError as e:
            logger.error(f"Error creating Stripe intent: {e}")
            raise PaymentError("Payment intent could not be created") from e

        return intent.client_secret

    def record_donation(self, caller: Caller, donation: Donation) -> RecordResult:
        """Persist a confirmed charge. Retries with the same transaction id return the first record."""
        require_self(caller, donation.donor_email)
        if self.campaigns.get(donation.campaign_id) is None:
            raise NotFound("Campaign not found")

        item = donation.model_copy(
            update={"applied_to_campaign": False, "created_at": utc_now()}
        ).to_item()
        if not self.donations.create(item):
            logger.info(f"Skipped duplicate donation record for {donation.transaction_id}.")
            return RecordResult(donation=self.donations.get(donation.transaction_id), created=False)

        logger.info(f"Recorded donation {donation.transaction_id} for campaign {donation.campaign_id}")
        return RecordResult(donation=item, created=True)

    def _get_donation(self, transaction_id: str) -> dict:
        donation = self.donations.get(transaction_id)
        if donation is None:
            raise NotFound("Donation not found")
        return donation

    def get_confirmation(self, caller: Caller, transaction_id: str) -> dict:
        donation = self._get_donation(transaction_id)
        require_self_or_admin(caller, donation.get("donorEmail"), self.users)
        return donation

    def apply_donation(self, caller: Caller, campaign_id: str, transaction_id: str) -> LedgerResult:
        """Add a recorded donation to its campaign total, once."""
        donation = self._get_donation(transaction_id)
        require_self_or_admin(caller, donation.get("donorEmail"), self.users)
        if donation.get("campaignId") != campaign_id:
            raise BadRequest("Donation belongs to a different campaign")

        claimed = self.donations.set_fields(transaction_id, {APPLIED_FIELD: True},
                                            expected={APPLIED_FIELD: False})
        if claimed is None:
            logger.info(f"Donation {transaction_id} already applied to campaign {campaign_id}.")
            return LedgerResult(donation=donation, campaign=self.campaigns.get(campaign_id), changed=False)

        amount = Decimal(str(donation["amount"]))
        with Saga("apply_donation") as saga:
            saga.compensate_with(
                lambda: self.donations.set_fields(transaction_id, {APPLIED_FIELD: False})
            )
            campaign = saga.step(lambda: self._increment_total(campaign_id, amount))

        return LedgerResult(donation=claimed, campaign=campaign, changed=True)

    def _increment_total(self, campaign_id: str, amount: Decimal) -> dict:
        campaign = self.campaigns.increment(campaign_id, TOTAL_FIELD, amount)
        if campaign is None:
            raise NotFound("Campaign not found")
        return campaign

    def refund_donation(self, caller: Caller, transaction_id: str) -> LedgerResult:
        """
        Remove a refunded donation and take it back out of the campaign
        total. A second refund of the same transaction finds nothing.
        """
        donation = self._get_donation(transaction_id)
        require_self_or_admin(caller, donation.get("donorEmail"), self.users)

        removed = self.donations.delete(transaction_id)
        if removed is None:
            raise NotFound("Donation already refunded")

        if not removed.get(APPLIED_FIELD):
            logger.info(f"Refunded donation {transaction_id} was never applied to a campaign.")
            return LedgerResult(donation=removed, campaign=None, changed=True)

        campaign_id = removed["campaignId"]
        amount = Decimal(str(removed["amount"]))
        with Saga("refund_donation") as saga:
            saga.compensate_with(lambda: self.donations.put(removed))
            campaign = saga.step(lambda: self._decrement_total(campaign_id, amount))

        return LedgerResult(donation=removed, campaign=campaign, changed=True)

    def _decrement_total(self, campaign_id: str, amount: Decimal) -> dict | None:
        campaign = self.campaigns.increment(campaign_id, TOTAL_FIELD, -amount, minimum=amount)
        if campaign is not None:
            return campaign

        if self.campaigns.get(campaign_id) is None:
            logger.warning(f"Campaign {campaign_id} no longer exists; nothing to adjust after refund.")
            return None

        # The stored total is smaller than the refund; rebuild it from the ledger.
        logger.warning(f"Campaign {campaign_id} total below refund of {amount}; reconciling from ledger.")
        return self.reconcile_campaign_total(campaign_id).item

    def ledger_total(self, campaign_id: str) -> Decimal:
        applied = self.donations.scan(Filter(equals={"campaignId": campaign_id, APPLIED_FIELD: True}))
        return sum((Decimal(str(d["amount"])) for d in applied), Decimal("0"))

    def reconcile_campaign_total(self, campaign_id: str) -> MutationResult:
        """Write the ledger sum as the campaign total; no write if it already matches."""
        result = conditional_update(self.campaigns, campaign_id, {TOTAL_FIELD: self.ledger_total(campaign_id)})
        if result.changed:
            logger.warning(f"Campaign {campaign_id} total corrected to {result.item.get(TOTAL_FIELD)}")
        return result

    def list_for_campaign(self, campaign_id: str) -> list[dict]:
        donors = self.donations.scan(Filter(equals={"campaignId": campaign_id}))
        return sorted(donors, key=lambda d: str(d.get("createdAt") or ""), reverse=True)

    def history(self, caller: Caller, email: str | None, page, limit) -> Page:
        require_self(caller, email)
        return paginate(self.donations, only_owner(email, field_name="donorEmail"), page, limit,
                        default_limit=DONATION_HISTORY_LIMIT)
