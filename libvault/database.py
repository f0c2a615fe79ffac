"""Whole-document JSON persistence for the user and book collections.

Each call reads or rewrites an entire file. There is no locking and no
transaction: two writers that overlap on the same document will silently
lose one of the updates (last write wins over a stale read). This is a known
limitation of the flat-file format, not something this module tries to fix.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from libvault.book import Book
from libvault.config import settings
from libvault.exceptions import ValidationError
from libvault.user import UserDocument

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_document(path: PathLike) -> Optional[Any]:
    """Read and parse a JSON file. Any read or parse failure returns None."""
    file_path = Path(path)
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        logger.debug("Successfully read JSON document from: %s", file_path)
        return data
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error("Error reading JSON file %s: %s", file_path, e)
        return None


def save_document(path: PathLike, document: Any) -> bool:
    """Write the whole document, creating parent directories first."""
    file_path = Path(path)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(document, indent=2, ensure_ascii=False)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(payload)
        logger.debug("Successfully saved JSON document to: %s", file_path)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error("Error saving JSON document to %s: %s", file_path, e)
        return False


class RecordStore:
    """Typed access to the two collections on disk."""

    def __init__(self, user_path: Optional[PathLike] = None, book_path: Optional[PathLike] = None) -> None:
        self.user_path = Path(user_path) if user_path else settings.user_data_path
        self.book_path = Path(book_path) if book_path else settings.book_data_path

    def load_users(self) -> Optional[UserDocument]:
        raw = load_document(self.user_path)
        if raw is None:
            return None
        try:
            return UserDocument.from_dict(raw)
        except ValidationError as e:
            logger.error("User document %s is malformed: %s", self.user_path, e)
            return None

    def save_users(self, document: UserDocument) -> bool:
        return save_document(self.user_path, document.to_dict())

    def load_books(self) -> Optional[List[Book]]:
        raw = load_document(self.book_path)
        if raw is None:
            return None
        if not isinstance(raw, list):
            logger.error("Book document %s is not a JSON array", self.book_path)
            return None
        try:
            return [Book.from_dict(item) for item in raw]
        except ValidationError as e:
            logger.error("Book document %s is malformed: %s", self.book_path, e)
            return None

    def save_books(self, books: List[Book]) -> bool:
        return save_document(self.book_path, [b.to_dict() for b in books])

    def initialize_data_files(self) -> bool:
        """Create empty documents for any collection file that does not exist yet.

        Existing files are never touched.
        """
        ok = True
        if not self.user_path.exists():
            ok = self.save_users(UserDocument.empty()) and ok
            logger.info("Initialized data file: %s", self.user_path)
        if not self.book_path.exists():
            ok = self.save_books([]) and ok
            logger.info("Initialized data file: %s", self.book_path)
        return ok
