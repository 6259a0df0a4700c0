import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends

from petpromise.api.schemas import (
    AdoptionRequestCreate,
    ApplyDonationRequest,
    PaymentIntentRequest,
    PaymentIntentResponse,
    RoleUpdate,
    TokenRequest,
    TokenResponse,
)
from petpromise.core.dependencies import (
    Container,
    get_container,
    require_admin,
    require_authenticated,
)
from petpromise.core.errors import BadRequest
from petpromise.core.security import Caller, issue_token
from petpromise.models.campaign import DonationCampaign
from petpromise.models.donation import Donation
from petpromise.models.pet import Pet
from petpromise.models.user import User
from petpromise.services.mutations import MutationResult, StatusTransition
from petpromise.services.status_service import STATUS_TRANSITIONS

router = APIRouter()
logger = logging.getLogger(__name__)

NO_CHANGES = "No changes detected, all fields match"


def mutation_response(result: MutationResult, message: str = "Updated") -> dict:
    return {
        "message": message if result.changed else NO_CHANGES,
        "changed": result.changed,
        "result": result.item,
    }


# Identity & users

@router.post("/jwt", response_model=TokenResponse)
def create_token(body: TokenRequest, container: Container = Depends(get_container)):
    token = issue_token(body.model_dump(), container.token_secret, container.token_ttl)
    return TokenResponse(token=token)


@router.post("/users")
def register_user(user: User, container: Container = Depends(get_container)):
    created = container.user_service.register(user)
    if created is None:
        return {"message": "USER ALREADY EXISTS", "insertedId": None}
    return {"insertedId": created["email"], "user": created}


@router.get("/user-role")
def get_user_role(
    email: Optional[str] = None,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    return container.user_service.get_role(caller, email)


@router.get("/all-users")
def list_users(
    page: Optional[str] = None,
    caller: Caller = Depends(require_admin),
    container: Container = Depends(get_container)
):
    result = container.user_service.list_users(caller, page)
    return {"users": result.items, "totalUsers": result.total_count}


@router.patch("/make-admin/{email}")
def make_admin(
    email: str,
    body: Optional[RoleUpdate] = None,
    caller: Caller = Depends(require_admin),
    container: Container = Depends(get_container)
):
    role = body.role if body else "Admin"
    result = container.user_service.set_role(email, role)
    return {**mutation_response(result, f"User updated with role '{role}'"), "updatedUserRole": result.changed}


# Pets

@router.get("/pet-listing")
def pet_listing(
    sortByCategory: Optional[str] = None,
    searchQuery: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    container: Container = Depends(get_container)
):
    result = container.pet_service.list_available(sortByCategory, searchQuery, page, limit)
    return {
        "pets": result.items,
        "currentPage": result.page,
        "totalPets": result.total_count,
        "totalPages": result.total_pages,
        "hasMore": result.has_more,
    }


@router.get("/pet-details/{pet_id}")
def pet_details(pet_id: str, container: Container = Depends(get_container)):
    return container.pet_service.get_pet(pet_id)


@router.get("/my-added-pets")
def my_added_pets(
    email: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    result = container.pet_service.list_mine(caller, email, page, limit)
    return {"result": result.items, "totalPets": result.total_count}


@router.get("/all-pets")
def all_pets(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    caller: Caller = Depends(require_admin),
    container: Container = Depends(get_container)
):
    result = container.pet_service.list_others(caller, page, limit)
    return {"total": result.total_count, "pets": result.items}


@router.post("/add-a-pet")
def add_pet(
    pet: Pet,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    item = container.pet_service.add_pet(caller, pet)
    return {"insertedId": item["id"], "pet": item}


@router.put("/update-pets/{pet_id}")
def update_pet(
    pet_id: str,
    changes: Optional[dict[str, Any]] = Body(default=None),
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    result = container.pet_service.update_pet(caller, pet_id, changes)
    return mutation_response(result, "Pet updated")


@router.delete("/delete-pet/{pet_id}")
def delete_pet(
    pet_id: str,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    container.pet_service.delete_pet(caller, pet_id)
    return {"deletedCount": 1}


# Adoption workflow

@router.post("/requested-pets/{pet_id}")
def request_pet(
    pet_id: str,
    body: AdoptionRequestCreate,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    details = body.model_dump(by_alias=True, exclude_none=True)
    item = container.adoption_service.submit_request(caller, pet_id, details)
    return {"insertedId": item["id"], "request": item}


@router.get("/adoption-requests")
def adoption_requests(
    email: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    result = container.adoption_service.list_for_owner(caller, email, page, limit)
    return {"total": result.total_count, "result": result.items}


@router.get("/my-adoption-requests")
def my_adoption_requests(
    email: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    result = container.adoption_service.list_for_requestor(caller, email, page, limit)
    return {"total": result.total_count, "result": result.items}


@router.patch("/accept-request/{request_id}")
def accept_request(
    request_id: str,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    outcome = container.adoption_service.accept_request(caller, request_id)
    return {
        "message": "Adoption request accepted" if outcome.changed else NO_CHANGES,
        "changed": outcome.changed,
        "pet": outcome.pet,
        "request": outcome.request,
        "withdrawnRequests": outcome.withdrawn,
    }


@router.delete("/reject-request/{request_id}")
def reject_request(
    request_id: str,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    outcome = container.adoption_service.reject_request(caller, request_id)
    return {"deletedCount": 1, "pet": outcome.pet}


def _status_endpoint(transition: StatusTransition):
    def endpoint(
        id: str,
        body: Optional[dict[str, Any]] = Body(default=None),
        caller: Caller = Depends(require_authenticated),
        container: Container = Depends(get_container)
    ):
        result = container.status_service.apply(caller, transition, id, body)
        return mutation_response(result, "Status updated")
    return endpoint


for path, transition in STATUS_TRANSITIONS.items():
    router.add_api_route(
        path,
        _status_endpoint(transition),
        methods=["PATCH"],
        name=path.strip("/").split("/")[0],
    )


# Donation campaigns

@router.get("/donation-campaigns")
def donation_campaigns(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    container: Container = Depends(get_container)
):
    result = container.campaign_service.list_public(page, limit)
    return {
        "campaigns": result.items,
        "currentPage": result.page,
        "totalCampaigns": result.total_count,
        "totalPages": result.total_pages,
        "hasMore": result.has_more,
    }


@router.get("/recommended-donation/{campaign_id}")
def recommended_donation(campaign_id: str, container: Container = Depends(get_container)):
    return container.campaign_service.recommended(exclude_id=campaign_id)


@router.get("/recommended-donation-homePage")
def recommended_donation_home(container: Container = Depends(get_container)):
    return container.campaign_service.active_campaigns()


@router.get("/donation-details-page-data/{campaign_id}")
def donation_details(campaign_id: str, container: Container = Depends(get_container)):
    return container.campaign_service.get_campaign(campaign_id)


@router.get("/my-campaign-data")
def my_campaign_data(
    email: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    result = container.campaign_service.list_mine(caller, email, page, limit)
    return {"campaigns": result.items, "totalCampaigns": result.total_count}


@router.get("/all-campaign-data")
def all_campaign_data(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    caller: Caller = Depends(require_admin),
    container: Container = Depends(get_container)
):
    result = container.campaign_service.list_others(caller, page, limit)
    return {"campaigns": result.items, "totalCampaigns": result.total_count}


@router.post("/post-campaign")
def post_campaign(
    campaign: DonationCampaign,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    item = container.campaign_service.create_campaign(caller, campaign)
    return {"insertedId": item["id"], "campaign": item}


@router.put("/update-campaign/{campaign_id}")
def update_campaign(
    campaign_id: str,
    changes: Optional[dict[str, Any]] = Body(default=None),
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    result = container.campaign_service.update_campaign(caller, campaign_id, changes)
    return mutation_response(result, "Campaign updated")


@router.delete("/delete-campaign/{campaign_id}")
def delete_campaign(
    campaign_id: str,
    caller: Caller = Depends(require_admin),
    container: Container = Depends(get_container)
):
    container.campaign_service.delete_campaign(campaign_id)
    return {"deletedCount": 1}


# Donations

@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
def create_payment_intent(
    body: PaymentIntentRequest,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    client_secret = container.donation_service.create_payment_intent(body.donation_amount)
    return PaymentIntentResponse(client_secret=client_secret)


@router.post("/donations")
def record_donation(
    donation: Donation,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    result = container.donation_service.record_donation(caller, donation)
    if not result.created:
        return {"message": "DONATION ALREADY RECORDED", "insertedId": None, "donation": result.donation}
    return {"insertedId": result.donation["transactionId"], "donation": result.donation}


@router.patch("/change-donated-amount/{campaign_id}")
def change_donated_amount(
    campaign_id: str,
    body: Optional[ApplyDonationRequest] = None,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    if body is None:
        raise BadRequest("A transactionId is required")
    result = container.donation_service.apply_donation(caller, campaign_id, body.transaction_id)
    return {
        "message": "TOTAL AMOUNT UPDATED" if result.changed else "DONATION ALREADY APPLIED",
        "updated": result.changed,
        "campaign": result.campaign,
    }


@router.patch("/amount-change-for-refund/{campaign_id}")
def reconcile_donated_amount(
    campaign_id: str,
    caller: Caller = Depends(require_admin),
    container: Container = Depends(get_container)
):
    result = container.donation_service.reconcile_campaign_total(campaign_id)
    return {**mutation_response(result, "Amount updated successfully"), "updated": result.changed}


@router.get("/payment-confirmation/{transaction_id}")
def payment_confirmation(
    transaction_id: str,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    return container.donation_service.get_confirmation(caller, transaction_id)


@router.get("/donators/{campaign_id}")
def donators(
    campaign_id: str,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    return container.donation_service.list_for_campaign(campaign_id)


@router.get("/donation-history")
def donation_history(
    email: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    result = container.donation_service.history(caller, email, page, limit)
    return {"result": result.items, "total": result.total_count}


@router.delete("/delete-payment-after-refund/{transaction_id}")
def refund_donation(
    transaction_id: str,
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
):
    result = container.donation_service.refund_donation(caller, transaction_id)
    return {"deletedCount": 1, "campaign": result.campaign}
