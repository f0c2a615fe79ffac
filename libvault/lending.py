"""Borrow/return workflow across the user and book documents.

A loan touches two files: the user's ``Books`` list (step 1) and the
catalog's ``Available``/``OnLoan`` counters (step 2). They are written one
after the other with no transaction. When step 2 fails after step 1 was
saved, the user holds a loan the catalog does not reflect; this is logged as
a warning and, unless compensation is enabled, the operation still reports
success because the user-facing write went through. :meth:`audit` finds
such divergence after the fact.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, List, Optional, Union

from libvault import security
from libvault.config import settings
from libvault.database import RecordStore
from libvault.directory import locate_user
from libvault.library import AvailabilityOperation, Library, generate_book_id
from libvault.session import Session
from libvault.user import (
    ADMINS,
    GENERAL_PUBLIC,
    STATUS_DUE_TODAY,
    STATUS_ON_TIME,
    STATUS_OVERDUE,
    STUDENTS,
    BorrowedBook,
)
from libvault.validators import DateValidator

logger = logging.getLogger(__name__)

DateLike = Union[str, date]


def today() -> date:
    return date.today()


def _as_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


# ------------------------- Due dates ------------------------- #
def get_due_date(issue_date: Optional[str], user_type: Optional[str]) -> Optional[str]:
    """Issue date plus the loan period for the user type, as YYYY-MM-DD.

    Returns None for user types without a loan period or an unreadable date.
    """
    found = DateValidator.extract_iso_date(issue_date)
    if found is None:
        return None
    if user_type == STUDENTS:
        days = settings.student_loan_days
    elif user_type == GENERAL_PUBLIC:
        days = settings.public_loan_days
    else:
        return None
    try:
        issued = date.fromisoformat(found)
    except ValueError:
        return None
    return (issued + timedelta(days=days)).isoformat()


def get_due_status(due_date: DateLike) -> int:
    """1 while on time, 0 on the due date, -1 once overdue."""
    due = _as_date(due_date)
    now = today()
    if now > due:
        return STATUS_OVERDUE
    if now == due:
        return STATUS_DUE_TODAY
    return STATUS_ON_TIME


def get_days_overdue(due_date: DateLike) -> int:
    due = _as_date(due_date)
    now = today()
    return (now - due).days if now > due else 0


# ------------------------- Fees ------------------------- #
def calculate_fee(days_overdue: int, user_type: Optional[str]) -> float:
    """Overdue fee for a loan. Unknown user types cost nothing; never raises."""
    rates = {
        STUDENTS: settings.student_daily_fee,
        GENERAL_PUBLIC: settings.public_daily_fee,
        ADMINS: settings.admin_daily_fee,
    }
    rate = rates.get(user_type)
    if rate is None:
        logger.error("Error calculating fee for unknown user type: %r", user_type)
        return 0.0
    try:
        fee = max(0, int(days_overdue)) * rate
    except (TypeError, ValueError):
        logger.error("Error calculating fee: days overdue %r is not a number", days_overdue)
        return 0.0
    logger.debug("Calculated fee for %s, %s day(s) overdue: %.2f", user_type, days_overdue, fee)
    return fee


@dataclass
class LoanView:
    """A borrowed book with everything a front end shows about it."""

    book_id: str
    title: Optional[str]
    date_issued: Optional[str]
    due_date: Optional[str]
    status: int
    days_overdue: int
    fee: float


@dataclass
class Discrepancy:
    book_id: str
    kind: str  # "counter-mismatch" or "dangling-reference"
    recorded_on_loan: Optional[int]
    loans_found: int


class LendingCoordinator:
    def __init__(self, store: RecordStore, catalog: Optional[Library] = None,
                 compensate: Optional[bool] = None) -> None:
        self.store = store
        self.catalog = catalog or Library(store)
        self.compensate = settings.compensate_drift if compensate is None else compensate

    # ------------------------- Workflow ------------------------- #
    def borrow_book(self, user_id: str, shelf: Any, title: str, password: str) -> bool:
        book_id = generate_book_id(shelf, (title or "").strip())
        if book_id is None:
            logger.warning("Cannot borrow %r: invalid shelf %r", title, shelf)
            return False

        book = self.catalog.find_book(book_id)
        if book is None:
            logger.warning("Cannot borrow %s: not in catalog", book_id)
            return False
        if book.available <= 0:
            logger.warning("Cannot borrow %s: no copies available", book_id)
            return False

        document = self.store.load_users()
        if document is None:
            logger.error("User data is missing. Cannot borrow %s", book_id)
            return False
        found = locate_user(document, user_id, password)
        if not found:
            logger.warning("Borrow rejected: user not found")
            return False
        user = found[1]
        if user.find_loan(book_id):
            logger.info("User already has book %s borrowed", book_id)
            return False

        loan = BorrowedBook(book_id, security.encrypt(today().isoformat(), password), STATUS_ON_TIME)
        user.books.append(loan)
        if not self.store.save_users(document):
            logger.error("Failed to add book %s to the user's borrowed list", book_id)
            return False

        if not self.catalog.adjust_availability(book_id, AvailabilityOperation.BORROW):
            logger.warning("Failed to update book availability after borrow. "
                           "Book added to user but availability not updated for: %s", book_id)
            if self.compensate:
                self._undo_borrow(user_id, book_id, password)
                return False
        logger.info("Book %s borrowed", book_id)
        return True

    def return_book(self, user_id: str, book_id: str, password: str) -> bool:
        document = self.store.load_users()
        if document is None:
            logger.error("User data is missing. Cannot return %s", book_id)
            return False
        found = locate_user(document, user_id, password)
        if not found:
            logger.warning("Return rejected: user not found")
            return False
        user = found[1]
        loan = user.find_loan(book_id)
        if loan is None:
            logger.warning("Book %s not found in the user's borrowed list", book_id)
            return False

        position = user.books.index(loan)
        del user.books[position]
        if not self.store.save_users(document):
            logger.error("Failed to remove book %s from the user's borrowed list", book_id)
            return False

        if not self.catalog.adjust_availability(book_id, AvailabilityOperation.RETURN):
            logger.warning("Failed to update book availability after return. "
                           "Book removed from user but availability not updated for: %s", book_id)
            if self.compensate:
                self._undo_return(user_id, loan, position, password)
                return False
        logger.info("Book %s returned", book_id)
        return True

    def has_user_borrowed_book(self, user_id: str, shelf: Any, title: str, password: str) -> bool:
        book_id = generate_book_id(shelf, (title or "").strip())
        if book_id is None:
            return False
        document = self.store.load_users()
        if document is None:
            return False
        found = locate_user(document, user_id, password)
        return bool(found and found[1].find_loan(book_id))

    # ------------------------- Status cache ------------------------- #
    def update_due_status(self, user_id: str, book_id: str, status: int, password: str) -> bool:
        document = self.store.load_users()
        if document is None:
            logger.error("User data is missing. Cannot update due status.")
            return False
        found = locate_user(document, user_id, password)
        loan = found[1].find_loan(book_id) if found else None
        if loan is None:
            logger.warning("User or book not found while updating due status for %s", book_id)
            return False
        if loan.status == status:
            return True
        loan.status = status
        return self.store.save_users(document)

    def list_loans(self, user_id: str, password: str) -> List[LoanView]:
        """Describe every loan of a user, correcting stale cached statuses on the way."""
        document = self.store.load_users()
        if document is None:
            return []
        found = locate_user(document, user_id, password)
        if not found:
            return []
        user_type, user = found
        titles = {b.book_id: b.title for b in self.catalog.list_books()}

        views: List[LoanView] = []
        dirty = False
        for loan in user.books:
            issued = security.try_decrypt(loan.date_issued, password)
            issue_date = issued.plaintext if issued.ok else None
            due = get_due_date(issue_date, user_type)
            status, days = loan.status, 0
            if due is not None:
                status = get_due_status(due)
                days = get_days_overdue(due)
                if status != loan.status:
                    loan.status = status
                    dirty = True
            views.append(LoanView(
                book_id=loan.book_id,
                title=titles.get(loan.book_id),
                date_issued=issue_date,
                due_date=due,
                status=status,
                days_overdue=days,
                fee=calculate_fee(days, user_type) if days else 0.0,
            ))

        if dirty and not self.store.save_users(document):
            logger.error("Failed to save corrected due statuses")
        return views

    def calculate_total_fines(self, session: Session) -> float:
        loans = self.list_loans(session.user_id, session.key)
        return sum(v.fee for v in loans if v.status == STATUS_OVERDUE)

    # ------------------------- Reconciliation ------------------------- #
    def audit(self) -> List[Discrepancy]:
        """Compare catalog OnLoan counters with the loans actually recorded on users."""
        document = self.store.load_users()
        books = self.store.load_books()
        if document is None or books is None:
            logger.error("Audit skipped: could not load both documents")
            return []

        counts = Counter(loan.book_id for user in document.all_users() for loan in user.books)
        issues: List[Discrepancy] = []
        catalog_ids = set()
        for book in books:
            catalog_ids.add(book.book_id)
            found = counts.get(book.book_id, 0)
            if found != book.on_loan:
                issues.append(Discrepancy(book.book_id, "counter-mismatch", book.on_loan, found))
        for book_id, found in sorted(counts.items()):
            if book_id not in catalog_ids:
                issues.append(Discrepancy(book_id, "dangling-reference", None, found))

        if issues:
            logger.warning("Audit found %d discrepancy(ies)", len(issues))
        return issues

    # ------------------------- Compensation ------------------------- #
    def _undo_borrow(self, user_id: str, book_id: str, password: str) -> None:
        document = self.store.load_users()
        found = locate_user(document, user_id, password) if document else None
        loan = found[1].find_loan(book_id) if found else None
        if loan is not None:
            found[1].books.remove(loan)
            if self.store.save_users(document):
                logger.info("Compensated failed borrow of %s", book_id)
                return
        logger.error("Compensation failed: loan %s is still recorded on the user", book_id)

    def _undo_return(self, user_id: str, loan: BorrowedBook, position: int, password: str) -> None:
        document = self.store.load_users()
        found = locate_user(document, user_id, password) if document else None
        if found is None:
            logger.error("Compensation failed: could not restore loan %s", loan.book_id)
            return
        found[1].books.insert(position, loan)
        if self.store.save_users(document):
            logger.info("Compensated failed return of %s", loan.book_id)
        else:
            logger.error("Compensation failed: could not restore loan %s", loan.book_id)
