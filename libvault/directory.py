"""User lookup and maintenance.

User IDs are stored encrypted under each user's own password, so there is no
index to probe. Every lookup walks all partitions and trial-decrypts each
``UserID`` with the supplied password; records that do not decrypt are simply
not candidates. A lookup with the wrong password therefore looks exactly like
a lookup for a user that does not exist.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from libvault import security
from libvault.database import RecordStore
from libvault.exceptions import ValidationError
from libvault.session import Session
from libvault.user import USER_TYPES, BorrowedBook, User, UserDocument, canonical_user_type
from libvault.validators import TextValidator

logger = logging.getLogger(__name__)


def locate_user(document: UserDocument, user_id: str, password: str) -> Optional[Tuple[str, User]]:
    """Return (partition, user) for the first record whose ID decrypts to ``user_id``."""
    for user_type, user in document.iter_users():
        if security.matches(user.user_id, password, user_id):
            return user_type, user
    return None


class UserDirectory:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    # ------------------------- Lookups ------------------------- #
    def find_user(self, user_id: str, password: str) -> Optional[User]:
        document = self.store.load_users()
        if document is None:
            logger.warning("No user data found in database file: %s", self.store.user_path)
            return None
        found = locate_user(document, user_id, password)
        return found[1] if found else None

    def get_user_type(self, user_id: str, password: str) -> Optional[str]:
        document = self.store.load_users()
        if document is None:
            return None
        found = locate_user(document, user_id, password)
        return found[0] if found else None

    def find_borrowed_books(self, user_id: str, password: str) -> List[BorrowedBook]:
        user = self.find_user(user_id, password)
        return list(user.books) if user else []

    def authenticate(self, user_id: str, password: str) -> Optional[Session]:
        """Verify credentials and open a session, or return None."""
        document = self.store.load_users()
        if document is None:
            return None
        found = locate_user(document, user_id, password)
        if not found:
            logger.info("Login rejected: unknown user or wrong password")
            return None
        user_type, user = found
        if not security.matches(user.password, password, password):
            logger.warning("Login rejected: stored password check failed")
            return None
        name = security.try_decrypt(user.name, password)
        return Session(
            user_id=user_id,
            display_name=name.plaintext if name.ok else user_id,
            user_type=user_type,
            key=password,
        )

    # ------------------------- Maintenance ------------------------- #
    def add_user(self, user_id: str, name: str, password: str, user_type: str) -> bool:
        try:
            user_id = TextValidator.require(user_id, "User ID")
            name = TextValidator.require(name, "Name")
            TextValidator.require(password, "Password")
        except ValidationError as e:
            logger.warning("Rejected new user: %s", e)
            return False

        document = self.store.load_users()
        if document is None:
            logger.error("No user data found in database file: %s", self.store.user_path)
            return False

        # Only catches duplicates registered under the same password
        if locate_user(document, user_id, password):
            logger.warning("User already exists")
            return False

        partition = document.partitions.get(canonical_user_type(user_type))
        if partition is None:
            logger.error("No user type array %r in %s", user_type, self.store.user_path)
            return False

        partition.append(User(
            user_id=security.encrypt(user_id, password),
            name=security.encrypt(name, password),
            password=security.encrypt(password, password),
        ))
        return self.store.save_users(document)

    def update_user(self, original_user_id: str, name: str, password: str, user_type: str) -> bool:
        new_type = canonical_user_type(user_type)
        try:
            name = TextValidator.require(name, "Name")
            if new_type not in USER_TYPES:
                raise ValidationError(f"Unknown user type: {user_type}")
        except ValidationError as e:
            logger.warning("Rejected user update: %s", e)
            return False

        document = self.store.load_users()
        if document is None:
            logger.error("No user data found for update operation")
            return False

        found = locate_user(document, original_user_id, password)
        if not found:
            logger.warning("User not found for update")
            return False
        current_type, user = found

        user.user_id = security.encrypt(original_user_id, password)
        user.name = security.encrypt(name, password)
        user.password = security.encrypt(password, password)

        if current_type != new_type:
            document.move(user, current_type, new_type)
            logger.info("Moved user from %s to %s", current_type, new_type)

        success = self.store.save_users(document)
        if not success:
            logger.error("Failed to save user data after update")
        return success

    def remove_user(self, user_id: str, password: str) -> bool:
        document = self.store.load_users()
        if document is None:
            logger.error("Failed to read user database")
            return False

        found = locate_user(document, user_id, password)
        if not found:
            logger.warning("User not found for removal")
            return False
        user_type, user = found
        if user.books:
            logger.warning("Refusing to remove a user who still holds %d book(s)", len(user.books))
            return False

        partition = document.partitions[user_type]
        partition[:] = [u for u in partition if u is not user]
        return self.store.save_users(document)
