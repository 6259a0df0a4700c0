import logging
from dataclasses import dataclass

from petpromise.core.errors import Conflict, Forbidden, NotFound
from petpromise.core.security import Caller, is_self, require_self
from petpromise.data_access.dynamodb import DynamoStore
from petpromise.data_access.filters import Filter
from petpromise.models.document import utc_now
from petpromise.models.pet import AdoptionRequest, adoption_request_id
from petpromise.services.mutations import conditional_update
from petpromise.services.query import ADOPTION_REQUESTS_LIMIT, Page, paginate
from petpromise.services.saga import Saga

logger = logging.getLogger(__name__)

ADOPTED_FLAGS = {"adopted": True, "isRequested": False}
PENDING_FLAGS = {"adopted": False, "isRequested": True}


@dataclass
class AdoptionOutcome:
    request: dict | None
    pet: dict | None
    changed: bool
    withdrawn: int = 0


class AdoptionService:
    """
    Moves a pet through Available -> Requested -> Adopted (or back to
    Available on rejection). Pet and request live in separate tables, so each
    transition is a saga rather than one atomic write.
    """

    def __init__(self, pets: DynamoStore, requests: DynamoStore):
        self.pets = pets
        self.requests = requests

    def _get_pet(self, pet_id: str) -> dict:
        pet = self.pets.get(pet_id)
        if pet is None:
            raise NotFound("Pet not found")
        return pet

    def _get_request(self, request_id: str) -> dict:
        request = self.requests.get(request_id)
        if request is None:
            raise NotFound("Adoption request not found")
        return request

    def _require_pet_owner(self, caller: Caller, request: dict) -> None:
        if not is_self(caller, request.get("ownerEmail")):
            logger.warning(f"{caller.email} tried to decide on request {request['id']}")
            raise Forbidden("Only the pet owner can decide on this request")

    def _pending_for_pet(self, pet_id: str) -> list[dict]:
        return self.requests.scan(Filter(equals={"petId": pet_id, "isRequested": True}))

    def submit_request(self, caller: Caller, pet_id: str, details: dict) -> dict:
        """
        Create the request, then flag the pet as requested. The request id is
        derived from (requestor, pet) so the table itself rejects duplicates,
        including concurrent ones.
        """
        requestor_email = details.get("requestorEmail")
        require_self(caller, requestor_email)

        pet = self._get_pet(pet_id)
        if pet.get("adopted"):
            raise Conflict("Pet has already been adopted")
        if pet.get("ownerEmail") == requestor_email:
            raise Conflict("You cannot request your own pet")

        request = AdoptionRequest(
            **{
                **details,
                "id": adoption_request_id(requestor_email, pet_id),
                "petId": pet_id,
                "ownerEmail": pet["ownerEmail"],
                "petName": details.get("petName") or pet.get("name"),
                "petImage": details.get("petImage") or pet.get("imageUrl"),
                "isRequested": True,
                "adopted": False,
            }
        ).model_copy(update={"created_at": utc_now()})
        item = request.to_item()

        if not self.requests.create(item):
            raise Conflict("ALREADY REQUESTED")

        with Saga("submit_request") as saga:
            saga.compensate_with(lambda: self.requests.delete(item["id"]))
            saga.step(lambda: conditional_update(self.pets, pet_id, {"isRequested": True}))

        logger.info(f"Adoption request {item['id']} submitted for pet {pet_id}")
        return item

    def accept_request(self, caller: Caller, request_id: str) -> AdoptionOutcome:
        request = self._get_request(request_id)
        self._require_pet_owner(caller, request)
        pet_id = request["petId"]
        self._get_pet(pet_id)

        # Only one accept can flip the pet; the write is guarded on adopted=False.
        pet = self.pets.set_fields(pet_id, ADOPTED_FLAGS, expected={"adopted": False})
        if pet is None:
            pet = self._get_pet(pet_id)
            if not request.get("adopted"):
                raise Conflict("Pet has already been adopted through another request")
            request_result = conditional_update(self.requests, request_id, ADOPTED_FLAGS)
            return AdoptionOutcome(request=request_result.item, pet=pet, changed=request_result.changed)

        with Saga("accept_request") as saga:
            saga.compensate_with(lambda: self.pets.set_fields(pet_id, PENDING_FLAGS))
            request_result = saga.step(
                lambda: conditional_update(self.requests, request_id, ADOPTED_FLAGS)
            )

        withdrawn = 0
        for other in self._pending_for_pet(pet_id):
            if other["id"] != request_id and self.requests.delete(other["id"]) is not None:
                withdrawn += 1
        if withdrawn:
            logger.info(f"Withdrew {withdrawn} competing request(s) for adopted pet {pet_id}")

        return AdoptionOutcome(
            request=request_result.item,
            pet=pet,
            changed=True,
            withdrawn=withdrawn,
        )

    def reject_request(self, caller: Caller, request_id: str) -> AdoptionOutcome:
        request = self._get_request(request_id)
        self._require_pet_owner(caller, request)
        if request.get("adopted"):
            raise Conflict("An accepted request cannot be rejected")
        pet_id = request["petId"]

        removed = self.requests.delete(request_id)
        if removed is None:
            raise NotFound("Adoption request not found")

        with Saga("reject_request") as saga:
            saga.compensate_with(lambda: self.requests.put(removed))
            pet = None
            if self.pets.get(pet_id) is not None and not self._pending_for_pet(pet_id):
                pet = saga.step(
                    lambda: conditional_update(self.pets, pet_id, {"isRequested": False})
                ).item

        logger.info(f"Adoption request {request_id} rejected")
        return AdoptionOutcome(request=removed, pet=pet, changed=True)

    def list_for_owner(self, caller: Caller, email: str | None, page, limit) -> Page:
        """Pending requests on the caller's pets."""
        require_self(caller, email)
        filter = Filter(equals={"ownerEmail": email, "isRequested": True})
        return paginate(self.requests, filter, page, limit, default_limit=ADOPTION_REQUESTS_LIMIT)

    def list_for_requestor(self, caller: Caller, email: str | None, page, limit) -> Page:
        require_self(caller, email)
        filter = Filter(equals={"requestorEmail": email})
        return paginate(self.requests, filter, page, limit, default_limit=ADOPTION_REQUESTS_LIMIT)
