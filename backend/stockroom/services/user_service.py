import logging
from typing import Any, List, Optional
from stockroom.core.errors import conflict, not_found, validation_error
from stockroom.repositories.base import (
    InventoryStore,
    RecordNotFound,
    UniqueConstraintViolation,
)

logger = logging.getLogger(__name__)

USER_NOT_FOUND_MESSAGE = "User not found"


class UserService:
    """Profile reads and edits; registration lives in AuthService"""

    def __init__(self, store: InventoryStore) -> None:
        self.store = store

    def list_users(self) -> List[Any]:
        return self.store.list_users()

    def get_user(self, user_id: int) -> Any:
        user = self.store.find_user_by_id(user_id)
        if user is None:
            raise not_found(USER_NOT_FOUND_MESSAGE)
        return user

    def update_user(self, user_id: int, name: Optional[str] = None, email: Optional[str] = None) -> Any:
        changes = {key: value for key, value in (("name", name), ("email", email)) if value}
        if not changes:
            raise validation_error("No data provided for update")
        try:
            user = self.store.update_user(user_id, **changes)
        except RecordNotFound:
            raise not_found(USER_NOT_FOUND_MESSAGE)
        except UniqueConstraintViolation:
            raise conflict("Email already in use")
        logger.info(f"User updated: {user_id}")
        return user

    def delete_user(self, user_id: int) -> None:
        try:
            self.store.delete_user(user_id)
        except RecordNotFound:
            raise not_found(USER_NOT_FOUND_MESSAGE)
        logger.info(f"User deleted: {user_id}")
