from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from libvault.exceptions import ValidationError

STUDENTS = "Students"
GENERAL_PUBLIC = "General Public"
ADMINS = "Admins"

# Scan order used by every lookup
USER_TYPES: Tuple[str, ...] = (STUDENTS, GENERAL_PUBLIC, ADMINS)

_TYPE_ALIASES = {
    "student": STUDENTS,
    "students": STUDENTS,
    "public": GENERAL_PUBLIC,
    "general public": GENERAL_PUBLIC,
    "general-public": GENERAL_PUBLIC,
    "admin": ADMINS,
    "admins": ADMINS,
}

STATUS_ON_TIME = 1
STATUS_DUE_TODAY = 0
STATUS_OVERDUE = -1


def canonical_user_type(user_type: Optional[str]) -> Optional[str]:
    """Map a display name or alias to the partition key used in the document.

    Unknown values are returned unchanged so callers can still reject them.
    """
    if user_type is None:
        return None
    return _TYPE_ALIASES.get(user_type.strip().lower(), user_type)


class BorrowedBook:
    def __init__(self, book_id: str, date_issued: str, status: int = STATUS_ON_TIME) -> None:
        self.book_id = book_id
        self.date_issued = date_issued  # encrypted ISO date
        self.status = int(status)

    def to_dict(self) -> dict:
        return {"BookID": self.book_id, "DateIssued": self.date_issued, "Status": self.status}

    @staticmethod
    def from_dict(data: dict) -> "BorrowedBook":
        if not isinstance(data, dict) or not isinstance(data.get("BookID"), str):
            raise ValidationError("Borrowed book entry needs a BookID")
        try:
            status = int(data.get("Status", STATUS_ON_TIME))
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Borrowed book {data['BookID']} has a non-numeric status") from e
        return BorrowedBook(data["BookID"], data.get("DateIssued", ""), status)


class User:
    """One user record. Every identifying field holds an encrypted token."""

    def __init__(self, user_id: str, name: str, password: str,
                 books: Optional[List[BorrowedBook]] = None) -> None:
        self.user_id = user_id
        self.name = name
        self.password = password
        self.books: List[BorrowedBook] = books if books is not None else []

    def find_loan(self, book_id: str) -> Optional[BorrowedBook]:
        return next((b for b in self.books if b.book_id == book_id), None)

    def to_dict(self) -> dict:
        return {
            "UserID": self.user_id,
            "Name": self.name,
            "Password": self.password,
            "Books": [b.to_dict() for b in self.books],
        }

    @staticmethod
    def from_dict(data: dict) -> "User":
        if not isinstance(data, dict):
            raise ValidationError("User entry must be an object")
        missing = [k for k in ("UserID", "Name", "Password") if not isinstance(data.get(k), str)]
        if missing:
            raise ValidationError(f"User entry is missing fields: {', '.join(missing)}")
        raw_books = data.get("Books") or []
        if not isinstance(raw_books, list):
            raise ValidationError("User Books must be a list")
        return User(
            user_id=data["UserID"],
            name=data["Name"],
            password=data["Password"],
            books=[BorrowedBook.from_dict(b) for b in raw_books],
        )


class UserDocument:
    """The whole user collection, keyed by partition name."""

    def __init__(self, partitions: Optional[Dict[str, List[User]]] = None) -> None:
        self.partitions: Dict[str, List[User]] = partitions if partitions is not None else {}

    @staticmethod
    def empty() -> "UserDocument":
        return UserDocument({t: [] for t in USER_TYPES})

    def iter_users(self) -> Iterator[Tuple[str, User]]:
        """Yield (partition, user) over the known partitions in scan order."""
        for user_type in USER_TYPES:
            for user in self.partitions.get(user_type, []):
                yield user_type, user

    def all_users(self) -> Iterator[User]:
        for users in self.partitions.values():
            yield from users

    def move(self, user: User, old_type: str, new_type: str) -> None:
        old = self.partitions.get(old_type, [])
        for i, candidate in enumerate(old):
            if candidate is user:
                del old[i]
                break
        self.partitions.setdefault(new_type, []).append(user)

    def to_dict(self) -> dict:
        return {name: [u.to_dict() for u in users] for name, users in self.partitions.items()}

    @staticmethod
    def from_dict(data: dict) -> "UserDocument":
        if not isinstance(data, dict):
            raise ValidationError("User document must be an object")
        partitions: Dict[str, List[User]] = {}
        for name, users in data.items():
            if not isinstance(users, list):
                raise ValidationError(f"Partition {name!r} must be a list")
            partitions[name] = [User.from_dict(u) for u in users]
        return UserDocument(partitions)
