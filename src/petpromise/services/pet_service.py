import logging

from petpromise.core.errors import BadRequest, NotFound
from petpromise.core.security import Caller, require_self, require_self_or_admin
from petpromise.data_access.dynamodb import DynamoStore
from petpromise.data_access.filters import Filter, exclude_owner, only_owner
from petpromise.models.document import new_id, utc_now
from petpromise.models.pet import Pet
from petpromise.services.mutations import MutationResult, conditional_update
from petpromise.services.query import (
    ADMIN_PETS_LIMIT,
    MY_PETS_LIMIT,
    PET_LISTING_LIMIT,
    Page,
    paginate,
)

logger = logging.getLogger(__name__)

# Managed by the adoption workflow or fixed at creation.
READ_ONLY_PET_FIELDS = frozenset({"id", "ownerEmail", "createdAt", "adopted", "isRequested"})


class PetService:
    def __init__(self, pets: DynamoStore, users: DynamoStore):
        self.pets = pets
        self.users = users

    def add_pet(self, caller: Caller, pet: Pet) -> dict:
        require_self(caller, pet.owner_email)
        item = pet.model_copy(
            update={"id": new_id(), "adopted": False, "is_requested": False, "created_at": utc_now()}
        ).to_item()
        self.pets.put(item)
        logger.info(f"Pet {item['id']} added by {caller.email}")
        return item

    def get_pet(self, pet_id: str) -> dict | None:
        return self.pets.get(pet_id)

    def list_available(self, category: str | None, search: str | None, page, limit) -> Page:
        filter = Filter(equals={"adopted": False})
        if category:
            filter = filter.merged(Filter(equals={"category": category}))
        if search:
            filter = filter.merged(Filter(contains={"name": search}))
        return paginate(self.pets, filter, page, limit, default_limit=PET_LISTING_LIMIT)

    def list_mine(self, caller: Caller, email: str | None, page, limit) -> Page:
        if not email:
            raise BadRequest("An email is required")
        require_self(caller, email)
        return paginate(self.pets, only_owner(email), page, limit, default_limit=MY_PETS_LIMIT)

    def list_others(self, caller: Caller, page, limit) -> Page:
        return paginate(self.pets, exclude_owner(caller.email), page, limit,
                        default_limit=ADMIN_PETS_LIMIT)

    def _owned_pet(self, caller: Caller, pet_id: str) -> dict:
        pet = self.pets.get(pet_id)
        if pet is None:
            raise NotFound("Pet not found")
        require_self_or_admin(caller, pet.get("ownerEmail"), self.users)
        return pet

    def update_pet(self, caller: Caller, pet_id: str, changes: dict | None) -> MutationResult:
        if not changes:
            raise BadRequest("Update payload is empty")
        forbidden = sorted(READ_ONLY_PET_FIELDS.intersection(changes))
        if forbidden:
            raise BadRequest(f"Fields cannot be edited: {', '.join(forbidden)}")
        self._owned_pet(caller, pet_id)
        return conditional_update(self.pets, pet_id, changes)

    def delete_pet(self, caller: Caller, pet_id: str) -> dict:
        self._owned_pet(caller, pet_id)
        removed = self.pets.delete(pet_id)
        if removed is None:
            raise NotFound("Pet not found")
        logger.info(f"Pet {pet_id} deleted by {caller.email}")
        return removed
