import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import boto3
import stripe
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from petpromise.core.config import Settings
from petpromise.core.errors import Forbidden, Unauthenticated
from petpromise.core.security import Caller, InvalidToken, is_admin, verify_token
from petpromise.data_access.dynamodb import DynamoStore
from petpromise.services.adoption_service import AdoptionService
from petpromise.services.campaign_service import CampaignService
from petpromise.services.donation_service import DonationService
from petpromise.services.pet_service import PetService
from petpromise.services.status_service import StatusService
from petpromise.services.user_service import UserService

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass
class Container:
    """Everything a request handler needs, built once per process."""
    token_secret: str
    token_ttl: timedelta
    users: DynamoStore
    pets: DynamoStore
    requests: DynamoStore
    campaigns: DynamoStore
    donations: DynamoStore
    user_service: UserService
    pet_service: PetService
    adoption_service: AdoptionService
    campaign_service: CampaignService
    donation_service: DonationService
    status_service: StatusService


def assemble(settings: Settings, users: DynamoStore, pets: DynamoStore, requests: DynamoStore,
             campaigns: DynamoStore, donations: DynamoStore) -> Container:
    return Container(
        token_secret=settings.ACCESS_TOKEN_SECRET,
        token_ttl=timedelta(hours=settings.TOKEN_TTL_HOURS),
        users=users,
        pets=pets,
        requests=requests,
        campaigns=campaigns,
        donations=donations,
        user_service=UserService(users),
        pet_service=PetService(pets, users),
        adoption_service=AdoptionService(pets, requests),
        campaign_service=CampaignService(campaigns, users),
        donation_service=DonationService(
            donations,
            campaigns,
            users,
            currency=settings.PAYMENT_CURRENCY,
            minimum_amount_cents=settings.MINIMUM_DONATION_CENTS
        ),
        status_service=StatusService(
            {"pets": pets, "requests": requests, "campaigns": campaigns},
            users
        ),
    )


def get_boto_session(settings: Settings) -> boto3.Session:
    return boto3.Session(
        region_name=settings.AWS_REGION,
        profile_name=settings.AWS_PROFILE
    )


def build_container(settings: Settings) -> Container:
    stripe.api_key = settings.STRIPE_SECRET_KEY

    session = get_boto_session(settings)
    dynamodb = session.resource("dynamodb", endpoint_url=settings.DYNAMODB_ENDPOINT_URL)
    logger.info(f"Connected to DynamoDB in {settings.AWS_REGION}")

    return assemble(
        settings,
        users=DynamoStore(dynamodb.Table(settings.USERS_TABLE_NAME), key="email"),
        pets=DynamoStore(dynamodb.Table(settings.PETS_TABLE_NAME)),
        requests=DynamoStore(dynamodb.Table(settings.ADOPTION_REQUESTS_TABLE_NAME)),
        campaigns=DynamoStore(dynamodb.Table(settings.CAMPAIGNS_TABLE_NAME)),
        donations=DynamoStore(dynamodb.Table(settings.DONATIONS_TABLE_NAME)),
    )


def get_container(request: Request) -> Container:
    return request.app.state.container


async def require_authenticated(
    token: Optional[HTTPAuthorizationCredentials] = Depends(security),
    container: Container = Depends(get_container)
) -> Caller:
    if token is None or not token.credentials:
        raise Unauthenticated("Unauthorized access")
    try:
        claims = verify_token(token.credentials, container.token_secret)
    except InvalidToken as e:
        logger.info(f"Rejected bearer token: {e}")
        raise Unauthenticated("Unauthorized access") from e
    return Caller(email=claims["email"])


def require_admin(
    caller: Caller = Depends(require_authenticated),
    container: Container = Depends(get_container)
) -> Caller:
    if not is_admin(container.users.get(caller.email)):
        logger.warning(f"Admin access denied for {caller.email}")
        raise Forbidden("Forbidden access")
    return caller
