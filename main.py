import os
import sys
from typing import Optional

import typer
from rich.console import Console

from libvault.api import LibrarySystem
from libvault.config import settings
from libvault.logging_config import setup_logging
from libvault.ui_helpers import print_book_list, print_loans, print_stats_result, set_output_mode

APP_NAME = settings.app_name

console = Console()


# Test ortamını algıla
def _is_test_env() -> bool:
    return ("PYTEST_CURRENT_TEST" in os.environ) or (os.environ.get("LIBVAULT_CLI_TEST_MODE") == "1")


class LibraryManager:
    """Tekil LibrarySystem örneği; veri dosyaları değişirse yeniden oluşturulur."""

    _instance: Optional[LibrarySystem] = None
    _paths_snapshot: Optional[tuple] = None

    @classmethod
    def get_instance(cls) -> LibrarySystem:
        current = (settings.user_data_path, settings.book_data_path)
        if cls._instance is None or current != cls._paths_snapshot:
            cls._instance = LibrarySystem()
            cls._paths_snapshot = current
        return cls._instance


def _password_option():
    return typer.Option(..., "--password", "-p", prompt=True, hide_input=True, help="Kullanıcı parolası")


def _user_option():
    return typer.Option(..., "--user", "-u", help="Kullanıcı kimliği")


# --- Typer CLI Uygulaması ---
app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Çıktı formatı: plain | json | rich (varsayılan: plain)",
    )
):
    """CLI için genel seçenekler (ör. çıktı modu)."""
    if output:
        set_output_mode(output)
    if not _is_test_env():
        setup_logging()


@app.command("init")
def cli_init():
    """Create empty data files if they do not exist yet."""
    lib = LibraryManager.get_instance()
    if lib.initialize():
        print(f"Data files ready: {lib.store.user_path}, {lib.store.book_path}")
    else:
        print("Could not initialize data files.")


@app.command("login")
def cli_login(user: str = _user_option(), password: str = _password_option()):
    """Check credentials and show who you are."""
    session = LibraryManager.get_instance().login(user, password)
    if session:
        print(f"Welcome, {session.display_name} ({session.user_type})")
    else:
        print("Invalid user ID or password.")


@app.command("search")
def cli_search(term: str = typer.Argument("", help="Arama terimi (boş = tümü)")):
    """Search the catalog by title, author, publisher, ID or shelf."""
    print_book_list(LibraryManager.get_instance().find_books(term))


@app.command("stats")
def cli_stats():
    """Show catalog statistics."""
    print_stats_result(LibraryManager.get_instance().statistics())


@app.command("add-book")
def cli_add_book(
    shelf: str,
    title: str,
    author: str,
    publisher: str,
    available: int = typer.Option(1, "--available", "-a"),
    on_loan: int = typer.Option(0, "--on-loan"),
):
    """Add a book; its ID is derived from the shelf and title."""
    if LibraryManager.get_instance().add_book(shelf, title, author, publisher, available, on_loan):
        print(f"Successfully added: {title} by {author}")
    else:
        print(f"Could not add book: {title}")


@app.command("update-book")
def cli_update_book(
    book_id: str,
    shelf: str,
    title: str,
    author: str,
    publisher: str,
    available: int,
    on_loan: int,
):
    """Replace every field of a book (the ID follows shelf and title)."""
    if LibraryManager.get_instance().update_book(book_id, shelf, title, author, publisher, available, on_loan):
        print(f"Book {book_id} has been updated.")
    else:
        print(f"Could not update book {book_id}.")


@app.command("delete-book")
def cli_delete_book(book_id: str):
    """Delete a book and drop it from every user's borrowed list."""
    if LibraryManager.get_instance().delete_book(book_id):
        print(f"Book with ID {book_id} has been removed.")
    else:
        print(f"Book with ID {book_id} not found.")


@app.command("add-user")
def cli_add_user(
    user_id: str,
    name: str,
    user_type: str = typer.Option("Students", "--type", "-t", help="Students | General Public | Admins"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True,
                                 confirmation_prompt=True),
):
    """Register a user; their fields are encrypted with their password."""
    if LibraryManager.get_instance().add_user(user_id, name, password, user_type):
        print(f"User {name} has been added.")
    else:
        print("Could not add user.")


@app.command("update-user")
def cli_update_user(
    user_id: str,
    name: str,
    user_type: str = typer.Option(..., "--type", "-t"),
    password: str = _password_option(),
):
    """Change a user's name or type."""
    if LibraryManager.get_instance().update_user(user_id, name, password, user_type):
        print(f"User {user_id} has been updated.")
    else:
        print(f"Could not update user {user_id}.")


@app.command("remove-user")
def cli_remove_user(user_id: str, password: str = _password_option()):
    """Remove a user who has no borrowed books."""
    if LibraryManager.get_instance().remove_user(user_id, password):
        print(f"User {user_id} has been removed.")
    else:
        print(f"Could not remove user {user_id}.")


@app.command("borrow")
def cli_borrow(shelf: str, title: str, user: str = _user_option(), password: str = _password_option()):
    """Borrow a book by shelf number and title."""
    lib = LibraryManager.get_instance()
    if lib.has_user_borrowed_book(user, shelf, title, password):
        print(f"You already have '{title}' borrowed.")
        return
    if lib.borrow_book(user, shelf, title, password):
        print(f"Borrowed: {title}")
    else:
        print(f"Could not borrow: {title}")


@app.command("return")
def cli_return(book: str = typer.Argument(..., help="Kitap kimliği veya başlığı"),
               user: str = _user_option(), password: str = _password_option()):
    """Return a borrowed book by its ID or title."""
    lib = LibraryManager.get_instance()
    title = lib.get_book_title(book)
    book_id = book
    if title is None:
        # kimlik bulunamadı, başlık olarak dene
        book_id = lib.find_book_id(book) or book
        title = lib.get_book_title(book_id)
    if lib.return_book(user, book_id, password):
        print(f"Returned: {book_id} ({title})" if title else f"Returned: {book_id}")
    else:
        print(f"Could not return: {book_id}")


@app.command("loans")
def cli_loans(user: str = _user_option(), password: str = _password_option()):
    """List your borrowed books with due dates and fees."""
    print_loans(LibraryManager.get_instance().list_loans(user, password))


@app.command("fines")
def cli_fines(user: str = _user_option(), password: str = _password_option()):
    """Show the total of your overdue fees."""
    lib = LibraryManager.get_instance()
    session = lib.login(user, password)
    if not session:
        print("Invalid user ID or password.")
        return
    try:
        print(f"Total fines: {lib.calculate_total_fines(session):.2f}")
    finally:
        lib.logout()


@app.command("audit")
def cli_audit():
    """Compare catalog loan counters with the loans recorded on users."""
    issues = LibraryManager.get_instance().audit()
    if not issues:
        print("No discrepancies found.")
        return
    for issue in issues:
        recorded = "-" if issue.recorded_on_loan is None else issue.recorded_on_loan
        print(f"{issue.book_id}: {issue.kind} (catalog on loan: {recorded}, user loans: {issue.loans_found})")


if __name__ == "__main__":
    if len(sys.argv) > 1:
        app()
    else:
        console.print(f"[bold cyan]{APP_NAME}[/] - run with --help to see commands")
