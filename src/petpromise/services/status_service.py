import logging

from petpromise.core.errors import NotFound
from petpromise.core.security import Caller, require_self_or_admin
from petpromise.data_access.dynamodb import DynamoStore
from petpromise.services.mutations import MutationResult, StatusTransition, apply_status_transition

logger = logging.getLogger(__name__)

PET_ADOPTED = StatusTransition(store="pets", allowed_fields={"adopted": bool})
PET_REQUESTED = StatusTransition(store="pets", allowed_fields={"isRequested": bool})
PET_FLAGS = StatusTransition(store="pets", allowed_fields={"adopted": bool, "isRequested": bool})
REQUEST_REQUESTED = StatusTransition(store="requests", allowed_fields={"isRequested": bool})
REQUEST_ADOPTED = StatusTransition(store="requests", allowed_fields={"adopted": bool, "isRequested": bool})
CAMPAIGN_PAUSED = StatusTransition(store="campaigns", allowed_fields={"isPaused": bool})

# PATCH path -> transition. One handler serves all of them.
STATUS_TRANSITIONS: dict[str, StatusTransition] = {
    "/change-pet-status/{id}": PET_FLAGS,
    "/change-status-to-requested/{id}": PET_REQUESTED,
    "/accept-request-change-adoptedStatus/{id}": PET_ADOPTED,
    "/accept-request-change-reqStatus-petCollection/{id}": PET_REQUESTED,
    "/reject-request-status-change/{id}": PET_REQUESTED,
    "/accept-request-change-reqStatus/{id}": REQUEST_REQUESTED,
    "/accept-request-change-adoptedStatus-requestedPets/{id}": REQUEST_ADOPTED,
    "/change-isPaused-status/{id}": CAMPAIGN_PAUSED,
}


class StatusService:
    def __init__(self, stores: dict[str, DynamoStore], users: DynamoStore):
        self.stores = stores
        self.users = users

    def apply(self, caller: Caller, transition: StatusTransition, key_value: str,
              partial: dict | None) -> MutationResult:
        store = self.stores[transition.store]
        document = store.get(key_value)
        if document is None:
            raise NotFound(f"No document with id {key_value}")
        require_self_or_admin(caller, document.get(transition.owner_field), self.users)

        result = apply_status_transition(store, key_value, transition.allowed_fields, partial)
        if result.changed:
            logger.info(f"{caller.email} set {sorted(partial)} on {key_value} in {store.name}")
        return result
