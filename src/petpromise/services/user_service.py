import logging

from petpromise.core.errors import NotFound
from petpromise.core.security import ADMIN_ROLE, USER_ROLE, Caller, require_self
from petpromise.data_access.dynamodb import DynamoStore
from petpromise.data_access.filters import exclude_owner
from petpromise.models.document import utc_now
from petpromise.models.user import Role, User
from petpromise.services.mutations import MutationResult, conditional_update
from petpromise.services.query import ALL_USERS_LIMIT, Page, paginate

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, users: DynamoStore):
        self.users = users

    def register(self, user: User) -> dict | None:
        """Create the user on first sight; returns None if the email is already known."""
        item = user.model_copy(update={"role": USER_ROLE, "created_at": utc_now()}).to_item()
        if not self.users.create(item):
            return None
        logger.info(f"Registered user {user.email}")
        return item

    def get_role(self, caller: Caller, email: str) -> str:
        require_self(caller, email)
        user = self.users.get(email)
        if user is None:
            raise NotFound("User not found")
        return user.get("role", "User")

    def list_users(self, caller: Caller, page) -> Page:
        """Admin view; the caller never sees their own account."""
        return paginate(
            self.users,
            exclude_owner(caller.email, field_name="email"),
            page,
            ALL_USERS_LIMIT,
            default_limit=ALL_USERS_LIMIT,
        )

    def set_role(self, email: str, role: Role = ADMIN_ROLE) -> MutationResult:
        result = conditional_update(self.users, email, {"role": role})
        if result.changed:
            logger.info(f"User {email} role changed to {role}")
        return result
