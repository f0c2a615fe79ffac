from __future__ import annotations

import logging
from functools import wraps
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from libvault import lending
from libvault.book import Book
from libvault.database import RecordStore
from libvault.directory import UserDirectory
from libvault.lending import Discrepancy, LendingCoordinator, LoanView
from libvault.library import Library
from libvault.session import Session, SessionHolder
from libvault.user import BorrowedBook, User

logger = logging.getLogger(__name__)


def _boundary(default: Any):
    """Nothing raises past the facade: log and fall back to ``default``."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.exception("Unexpected error in %s", func.__name__)
                return default() if callable(default) else default
        return wrapper
    return decorator


class LibrarySystem:
    """
    Wires the store and services and offers the operations a front end calls.
    Every method returns a value, None, False or an empty list; none raise.
    """

    def __init__(self, user_path: Optional[Union[str, Path]] = None,
                 book_path: Optional[Union[str, Path]] = None,
                 compensate: Optional[bool] = None) -> None:
        self.store = RecordStore(user_path, book_path)
        self.users = UserDirectory(self.store)
        self.catalog = Library(self.store)
        self.lending = LendingCoordinator(self.store, self.catalog, compensate=compensate)
        self.sessions = SessionHolder()

    @_boundary(False)
    def initialize(self) -> bool:
        return self.store.initialize_data_files()

    # ---- session
    @_boundary(None)
    def login(self, user_id: str, password: str) -> Optional[Session]:
        session = self.users.authenticate(user_id, password)
        if session is not None:
            self.sessions.login(session)
        return session

    def logout(self) -> None:
        self.sessions.logout()

    # ---- users
    @_boundary(None)
    def find_user(self, user_id: str, password: str) -> Optional[User]:
        return self.users.find_user(user_id, password)

    @_boundary(None)
    def get_user_type(self, user_id: str, password: str) -> Optional[str]:
        return self.users.get_user_type(user_id, password)

    @_boundary(list)
    def find_borrowed_books(self, user_id: str, password: str) -> List[BorrowedBook]:
        return self.users.find_borrowed_books(user_id, password)

    @_boundary(False)
    def add_user(self, user_id: str, name: str, password: str, user_type: str) -> bool:
        return self.users.add_user(user_id, name, password, user_type)

    @_boundary(False)
    def update_user(self, original_user_id: str, name: str, password: str, user_type: str) -> bool:
        return self.users.update_user(original_user_id, name, password, user_type)

    @_boundary(False)
    def remove_user(self, user_id: str, password: str) -> bool:
        return self.users.remove_user(user_id, password)

    # ---- catalog
    @_boundary(list)
    def find_books(self, term: str = "") -> List[Book]:
        return self.catalog.find_books(term)

    @_boundary(None)
    def get_book_title(self, book_id: str) -> Optional[str]:
        return self.catalog.get_book_title(book_id)

    @_boundary(None)
    def find_book_id(self, title: str) -> Optional[str]:
        return self.catalog.find_book_id(title)

    @_boundary(False)
    def add_book(self, shelf: Any, title: str, author: str, publisher: str,
                 available: Any = 1, on_loan: Any = 0) -> bool:
        return self.catalog.add_book(shelf, title, author, publisher, available, on_loan)

    @_boundary(False)
    def update_book(self, original_book_id: str, shelf: Any, title: str, author: str,
                    publisher: str, available: Any, on_loan: Any) -> bool:
        return self.catalog.update_book(original_book_id, shelf, title, author, publisher, available, on_loan)

    @_boundary(False)
    def delete_book(self, book_id: str) -> bool:
        return self.catalog.delete_book(book_id)

    @_boundary(dict)
    def statistics(self) -> Dict[str, Any]:
        return self.catalog.get_statistics()

    # ---- circulation
    @_boundary(False)
    def borrow_book(self, user_id: str, shelf: Any, title: str, password: str) -> bool:
        return self.lending.borrow_book(user_id, shelf, title, password)

    @_boundary(False)
    def return_book(self, user_id: str, book_id: str, password: str) -> bool:
        return self.lending.return_book(user_id, book_id, password)

    @_boundary(False)
    def has_user_borrowed_book(self, user_id: str, shelf: Any, title: str, password: str) -> bool:
        return self.lending.has_user_borrowed_book(user_id, shelf, title, password)

    @_boundary(list)
    def list_loans(self, user_id: str, password: str) -> List[LoanView]:
        return self.lending.list_loans(user_id, password)

    @_boundary(0.0)
    def calculate_total_fines(self, session: Session) -> float:
        return self.lending.calculate_total_fines(session)

    @_boundary(list)
    def audit(self) -> List[Discrepancy]:
        return self.lending.audit()

    # ---- date and fee helpers
    @_boundary(None)
    def get_due_date(self, issue_date: str, user_type: str) -> Optional[str]:
        return lending.get_due_date(issue_date, user_type)

    @_boundary(None)
    def get_due_status(self, due_date: str) -> Optional[int]:
        return lending.get_due_status(due_date)

    @_boundary(0)
    def get_days_overdue(self, due_date: str) -> int:
        return lending.get_days_overdue(due_date)

    @_boundary(0.0)
    def calculate_fee(self, days_overdue: int, user_type: str) -> float:
        return lending.calculate_fee(days_overdue, user_type)
