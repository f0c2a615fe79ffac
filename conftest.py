from datetime import date

import pytest

from libvault import lending
from libvault.api import LibrarySystem
from libvault.config import settings


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    # Tam 65536 tur testleri gereksiz yavaşlatır; biçim aynı kalır
    monkeypatch.setattr(settings, "pbkdf2_iterations", 1000)


@pytest.fixture
def data_files(tmp_path, monkeypatch):
    """Point the settings at per-test data files."""
    user_file = tmp_path / "data" / "UserData.json"
    book_file = tmp_path / "data" / "BookData.json"
    monkeypatch.setattr(settings, "user_file", str(user_file))
    monkeypatch.setattr(settings, "book_file", str(book_file))
    monkeypatch.setattr(settings, "compensate_drift", False)
    return user_file, book_file


@pytest.fixture
def system(data_files):
    lib = LibrarySystem()
    assert lib.initialize()
    return lib


@pytest.fixture
def freeze_today(monkeypatch):
    """Call with a date to make lending.today() return it."""
    def _freeze(value):
        monkeypatch.setattr(lending, "today", lambda: value)
        return value
    _freeze(date(2024, 1, 1))
    return _freeze
