import json
import os
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Environment variable to control CLI output mode
# İzin verilen değerler: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIBVAULT_CLI_OUTPUT"

_console = Console()

STATUS_LABELS = {1: "On time", 0: "Due today", -1: "Overdue"}


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_book_list(books: List[Any]) -> None:
    """Kitap listesini mevcut çıktı moduna göre yazdır.
    - plain: 'BookID - Title by Author (available/on loan)' satırları
    - json: JSON dizisi
    - rich: Rich tablosu
    """
    mode = get_output_mode()

    if not books:
        print("No books found.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Shelf", justify="right")
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Publisher", style="white")
        table.add_column("Available", justify="right", style="green")
        table.add_column("On loan", justify="right", style="yellow")
        for b in books:
            table.add_row(b.book_id, str(b.shelf_number), b.title, b.author, b.publisher,
                          str(b.available), str(b.on_loan))
        _console.print(table)
    else:
        for b in books:
            print(f"{b.book_id} - {b.title} by {b.author} ({b.available} available, {b.on_loan} on loan)")


def print_loans(loans: List[Any]) -> None:
    mode = get_output_mode()

    if not loans:
        print("No borrowed books.")
        return

    if mode == "json":
        print(json.dumps([vars(v) for v in loans], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📖 My Books", show_lines=True, header_style="bold cyan")
        for column in ("ID", "Title", "Issued", "Due", "Status", "Fee"):
            table.add_column(column)
        for v in loans:
            style = {1: "green", 0: "yellow", -1: "red"}.get(v.status, "white")
            table.add_row(v.book_id, v.title or "?", v.date_issued or "?", v.due_date or "-",
                          f"[{style}]{STATUS_LABELS.get(v.status, '?')}[/]", f"{v.fee:.2f}")
        _console.print(table)
    else:
        for v in loans:
            line = f"{v.book_id} - {v.title or '?'} due {v.due_date or '-'} [{STATUS_LABELS.get(v.status, '?')}]"
            if v.fee:
                line += f" fee {v.fee:.2f}"
            print(line)


def print_stats_result(stats: Dict[str, Any]) -> None:
    """İstatistikleri mevcut çıktı moduna göre yazdır."""
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    labels = {
        "total_books": "Total Books",
        "copies_available": "Copies Available",
        "copies_on_loan": "Copies On Loan",
        "unique_authors": "Unique Authors",
    }

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{labels[k]}:[/] {stats.get(k, 0)}" for k in labels)
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        for key, label in labels.items():
            print(f"{label}: {stats.get(key, 0)}")
