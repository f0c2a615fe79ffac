from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from libvault.book import Book, shelf_number
from libvault.database import RecordStore
from libvault.exceptions import ValidationError
from libvault.validators import CountValidator, ShelfValidator, TextValidator

logger = logging.getLogger(__name__)


class AvailabilityOperation(Enum):
    BORROW = "borrow"
    RETURN = "return"


def shelf_code(number: int) -> Optional[str]:
    """Encode a shelf number as A..Z (1-26) or AA..ZZ (27-702); None otherwise."""
    if number <= 0:
        return None
    if number <= 26:
        return chr(ord("A") + number - 1)
    if number <= 702:
        first, second = divmod(number - 27, 26)
        return chr(ord("A") + first) + chr(ord("A") + second)
    return None


def stable_title_hash(title: str) -> int:
    """32-bit signed string hash over UTF-16 code units.

    Matches the hash the existing book documents were generated with, so IDs
    stay stable across processes (unlike the builtin ``hash``).
    """
    # lone surrogates are hashed as raw code units
    data = title.encode("utf-16-be", "surrogatepass")
    h = 0
    for i in range(0, len(data), 2):
        h = (31 * h + ((data[i] << 8) | data[i + 1])) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def generate_book_id(shelf: Any, title: str) -> Optional[str]:
    """Derive ``<shelf code><6 digits>`` from a shelf number and a title.

    Distinct titles can collide on the 6-digit suffix; collisions are only
    rejected when a book is written.
    """
    try:
        number = ShelfValidator.parse_shelf_number(shelf)
    except ValidationError as e:
        logger.warning("Failed to generate book ID for shelf %r: %s", shelf, e)
        return None
    code = shelf_code(number)
    if code is None or title is None:
        return None
    digits = abs(stable_title_hash(title)) % 1_000_000
    book_id = f"{code}{digits:06d}"
    logger.debug("Generated book ID %s for book: %s", book_id, title)
    return book_id


class Library:
    """Manages the book collection and its availability counters."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    # ------------------------- Lookups ------------------------- #
    def list_books(self) -> List[Book]:
        return self.store.load_books() or []

    def find_books(self, term: str) -> List[Book]:
        """Case-insensitive match on title, author, publisher, ID or shelf number."""
        books = self.store.load_books()
        if books is None:
            logger.error("Failed to load book database for search operation")
            return []
        needle = (term or "").lower()
        found = [
            b for b in books
            if not needle
            or needle in b.title.lower()
            or needle in b.author.lower()
            or needle in b.publisher.lower()
            or needle in b.book_id.lower()
            or needle in str(b.shelf_number)
        ]
        logger.info("Book search completed: found %d books matching '%s'", len(found), term)
        return found

    def find_book(self, book_id: str) -> Optional[Book]:
        return next((b for b in self.list_books() if b.book_id == book_id), None)

    def get_book_title(self, book_id: str) -> Optional[str]:
        book = self.find_book(book_id)
        return book.title if book else None

    def find_book_id(self, title: str) -> Optional[str]:
        wanted = (title or "").lower()
        return next((b.book_id for b in self.list_books() if b.title.lower() == wanted), None)

    def get_statistics(self) -> Dict[str, Any]:
        books = self.list_books()
        return {
            "total_books": len(books),
            "copies_available": sum(b.available for b in books),
            "copies_on_loan": sum(b.on_loan for b in books),
            "unique_authors": len({b.author for b in books}),
        }

    # ------------------------- Core operations ------------------------- #
    def add_book(self, shelf: Any, title: str, author: str, publisher: str,
                 available: Any = 1, on_loan: Any = 0) -> bool:
        try:
            book = self._build_book(shelf, title, author, publisher, available, on_loan)
        except ValidationError as e:
            logger.warning("Rejected new book %r: %s", title, e)
            return False

        books = self.store.load_books()
        if books is None:
            logger.error("No book data found in database file: %s", self.store.book_path)
            return False
        if any(b.book_id == book.book_id for b in books):
            logger.warning("Book with ID %s already exists", book.book_id)
            return False

        books.append(book)
        success = self.store.save_books(books)
        if success:
            logger.info("Successfully added book: %s with ID: %s", book.title, book.book_id)
        else:
            logger.error("Failed to save book data after adding: %s", book.title)
        return success

    def update_book(self, original_book_id: str, shelf: Any, title: str, author: str,
                    publisher: str, available: Any, on_loan: Any) -> bool:
        try:
            updated = self._build_book(shelf, title, author, publisher, available, on_loan)
        except ValidationError as e:
            logger.warning("Rejected update of %s: %s", original_book_id, e)
            return False

        books = self.store.load_books()
        if books is None:
            logger.error("No book data found for update operation")
            return False

        target = next((b for b in books if b.book_id == original_book_id), None)
        if target is None:
            logger.warning("Book with ID %s not found for update", original_book_id)
            return False

        new_id = updated.book_id
        if new_id != original_book_id and any(b.book_id == new_id for b in books if b is not target):
            logger.warning("Cannot update book: new ID %s already exists", new_id)
            return False

        target.book_id = new_id
        target.title = updated.title
        target.author = updated.author
        target.publisher = updated.publisher
        target.available = updated.available
        target.on_loan = updated.on_loan

        success = self.store.save_books(books)
        if not success:
            logger.error("Failed to save book data after updating: %s", original_book_id)
            return False

        if new_id != original_book_id and not self.update_user_book_references(original_book_id, new_id):
            logger.error("Failed to update user book references from %s to %s", original_book_id, new_id)
        logger.info("Successfully updated book: %s -> %s", original_book_id, new_id)
        return True

    def delete_book(self, book_id: str) -> bool:
        books = self.store.load_books()
        if books is None:
            logger.error("No book data found for delete operation")
            return False

        remaining = [b for b in books if b.book_id != book_id]
        if len(remaining) == len(books):
            logger.warning("Book with ID %s not found for deletion", book_id)
            return False

        success = self.store.save_books(remaining)
        if not success:
            logger.error("Failed to save book data after deletion")
            return False

        if not self.update_user_book_references(book_id, None):
            logger.error("Failed to remove user book references for deleted book %s", book_id)
        logger.info("Book with ID %s deleted successfully", book_id)
        return True

    def adjust_availability(self, book_id: str, operation: AvailabilityOperation) -> bool:
        """Move one copy between Available and OnLoan. Returns False on any failure."""
        books = self.store.load_books()
        if books is None:
            logger.error("Book data is missing. Cannot update availability.")
            return False

        book = next((b for b in books if b.book_id == book_id), None)
        if book is None:
            logger.warning("Book not found: %s", book_id)
            return False

        if operation is AvailabilityOperation.BORROW:
            if book.available <= 0:
                logger.warning("Book not available for borrowing: %s", book_id)
                return False
            book.available -= 1
            book.on_loan += 1
        else:
            book.available += 1
            book.on_loan = max(0, book.on_loan - 1)

        success = self.store.save_books(books)
        if success:
            logger.info("Successfully updated book availability for %s: %s", operation.value, book_id)
        else:
            logger.error("Failed to save book data after availability update")
        return success

    # ------------------------- Cross-document cascade ------------------------- #
    def update_user_book_references(self, old_book_id: str, new_book_id: Optional[str]) -> bool:
        """Rename (or with ``new_book_id=None`` drop) a book ID in every user's loans.

        Book IDs are stored in plaintext, so no password is needed here.
        """
        document = self.store.load_users()
        if document is None:
            logger.warning("No user data found for book reference update")
            return False

        touched = 0
        for user in document.all_users():
            if new_book_id is None:
                kept = [b for b in user.books if b.book_id != old_book_id]
                touched += len(user.books) - len(kept)
                user.books = kept
            else:
                for loan in user.books:
                    if loan.book_id == old_book_id:
                        loan.book_id = new_book_id
                        touched += 1

        if not touched:
            logger.info("No user book references found for book ID: %s", old_book_id)
            return True
        return self.store.save_users(document)

    # ------------------------- Utilities ------------------------- #
    @staticmethod
    def _build_book(shelf: Any, title: str, author: str, publisher: str,
                    available: Any, on_loan: Any) -> Book:
        title = TextValidator.validate_title(title)
        author = TextValidator.validate_author(author)
        publisher = TextValidator.require(publisher, "Publisher")
        number = ShelfValidator.parse_shelf_number(shelf)
        if not ShelfValidator.is_valid_shelf(number):
            raise ValidationError(f"Shelf number out of range: {number}")
        book_id = generate_book_id(number, title)
        if book_id is None:
            raise ValidationError(f"Could not derive a book ID for shelf {number}")
        return Book(
            book_id=book_id,
            title=title,
            author=author,
            publisher=publisher,
            available=CountValidator.parse_count(available, "Available"),
            on_loan=CountValidator.parse_count(on_loan, "OnLoan"),
        )
