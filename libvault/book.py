from __future__ import annotations

import re

from libvault.exceptions import ValidationError
from libvault.validators import CountValidator

_SHELF_PREFIX = re.compile(r"^[A-Z]{1,2}")


def shelf_number(book_id: str) -> int:
    """Decode the 1-2 letter shelf prefix of a book ID (A=1 ... ZZ=702).

    Returns -1 when the ID does not start with an uppercase ASCII letter.
    """
    match = _SHELF_PREFIX.match(book_id or "")
    if not match:
        return -1
    number = 0
    for ch in match.group():
        number = number * 26 + (ord(ch) - ord("A") + 1)
    return number


class Book:
    """A single catalog entry as stored in the book document."""

    def __init__(self, book_id: str, title: str, author: str, publisher: str,
                 available: int = 0, on_loan: int = 0) -> None:
        # stored as given; trimming happens when input is validated
        self.book_id = book_id
        self.title = title
        self.author = author
        self.publisher = publisher
        self.available = int(available)
        self.on_loan = int(on_loan)

    @property
    def shelf_number(self) -> int:
        return shelf_number(self.book_id)

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ID: {self.book_id})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book({self.book_id!r}, {self.title!r})"

    def to_dict(self) -> dict:
        return {
            "BookID": self.book_id,
            "Title": self.title,
            "Author": self.author,
            "Publisher": self.publisher,
            "Available": self.available,
            "OnLoan": self.on_loan,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        if not isinstance(data, dict):
            raise ValidationError("Book entry must be an object")
        missing = [k for k in ("BookID", "Title", "Author", "Publisher") if not isinstance(data.get(k), str)]
        if missing:
            raise ValidationError(f"Book entry is missing fields: {', '.join(missing)}")
        # sayaçlar diskten de negatif olamaz
        available = CountValidator.parse_count(data.get("Available", 0), f"Book {data['BookID']} Available")
        on_loan = CountValidator.parse_count(data.get("OnLoan", 0), f"Book {data['BookID']} OnLoan")
        return Book(
            book_id=data["BookID"],
            title=data["Title"],
            author=data["Author"],
            publisher=data["Publisher"],
            available=available,
            on_loan=on_loan,
        )
