import re
from typing import Any, Optional

from libvault.exceptions import ValidationError

_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


class ShelfValidator:
    """Shelf numbers arrive as text from the caller and must be plain integers."""

    MAX_SHELF = 702

    @staticmethod
    def parse_shelf_number(raw: Any) -> int:
        if raw is None:
            raise ValidationError("Shelf number is required.")
        text = str(raw).strip()
        if not re.fullmatch(r"[+-]?\d+", text):
            raise ValidationError(f"Shelf number must be numeric: {raw!r}")
        return int(text)

    @staticmethod
    def is_valid_shelf(number: int) -> bool:
        return 1 <= number <= ShelfValidator.MAX_SHELF


class TextValidator:
    """Required-field checks for catalog and user input."""

    @staticmethod
    def require(value: Optional[str], field: str) -> str:
        if value is None or not str(value).strip():
            raise ValidationError(f"{field} cannot be empty.")
        text = str(value).strip()
        try:
            text.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ValidationError(f"{field} contains characters that cannot be stored.") from e
        return text

    @staticmethod
    def validate_title(title: Optional[str]) -> str:
        return TextValidator.require(title, "Title")

    @staticmethod
    def validate_author(author: Optional[str]) -> str:
        t = TextValidator.require(author, "Author")
        # must not be digits only
        if t.isdigit():
            raise ValidationError("Author cannot be numeric.")
        return t


class CountValidator:
    @staticmethod
    def parse_count(raw: Any, field: str) -> int:
        try:
            value = int(str(raw).strip())
        except (TypeError, ValueError) as e:
            raise ValidationError(f"{field} must be a whole number.") from e
        if value < 0:
            raise ValidationError(f"{field} cannot be negative.")
        return value


class DateValidator:
    @staticmethod
    def extract_iso_date(text: Optional[str]) -> Optional[str]:
        """Return the first YYYY-MM-DD found in ``text``, or None."""
        if not text:
            return None
        match = _DATE.search(text)
        return match.group() if match else None
