import json

import pytest

from libvault import security
from libvault.database import RecordStore
from libvault.directory import UserDirectory, locate_user
from libvault.user import ADMINS, GENERAL_PUBLIC, STUDENTS, BorrowedBook


@pytest.fixture
def store(tmp_path):
    s = RecordStore(tmp_path / "UserData.json", tmp_path / "BookData.json")
    assert s.initialize_data_files()
    return s


@pytest.fixture
def users(store):
    return UserDirectory(store)


def test_add_user_stores_only_ciphertext(users, store):
    assert users.add_user("S1001", "Ayşe Yılmaz", "secret", "Students")

    raw = store.user_path.read_text(encoding="utf-8")
    for plain in ("S1001", "Ayşe Yılmaz", "secret"):
        assert plain not in raw

    record = json.loads(raw)[STUDENTS][0]
    assert security.decrypt(record["UserID"], "secret") == "S1001"
    assert security.decrypt(record["Name"], "secret") == "Ayşe Yılmaz"
    assert security.decrypt(record["Password"], "secret") == "secret"
    assert record["Books"] == []


def test_find_user_needs_the_right_password(users):
    users.add_user("S1001", "Ayşe", "secret", "Students")
    assert users.find_user("S1001", "secret") is not None
    assert users.find_user("S1001", "wrong") is None
    assert users.find_user("S9999", "secret") is None


def test_user_type_aliases(users):
    users.add_user("P1", "Public Person", "pw1", "public")
    users.add_user("A1", "Admin Person", "pw2", "Admins")
    assert users.get_user_type("P1", "pw1") == GENERAL_PUBLIC
    assert users.get_user_type("A1", "pw2") == ADMINS
    assert users.get_user_type("A1", "pw1") is None


def test_add_user_into_unknown_partition_fails(users):
    assert not users.add_user("X1", "Someone", "pw", "Staff")


@pytest.mark.parametrize("user_id, name, password", [("", "N", "pw"), ("U1", " ", "pw"), ("U1", "N", "")])
def test_add_user_requires_fields(users, user_id, name, password):
    assert not users.add_user(user_id, name, password, "Students")


def test_duplicate_with_same_password_is_rejected(users, store):
    assert users.add_user("S1", "First", "pw", "Students")
    assert not users.add_user("S1", "Second", "pw", "General Public")
    # a different password cannot see the first record
    assert users.add_user("S1", "Third", "other", "Students")
    assert len(store.load_users().partitions[STUDENTS]) == 2


def test_locate_scans_partitions_in_order(users, store):
    users.add_user("U1", "Admin copy", "pw", "Admins")
    document = store.load_users()
    # same credentials placed in Students too
    document.partitions[STUDENTS].append(document.partitions[ADMINS][0])
    store.save_users(document)

    user_type, user = locate_user(store.load_users(), "U1", "pw")
    assert user_type == STUDENTS


def test_authenticate(users):
    users.add_user("S1", "Ayşe", "pw", "Students")
    session = users.authenticate("S1", "pw")
    assert session.user_id == "S1"
    assert session.display_name == "Ayşe"
    assert session.user_type == STUDENTS
    assert session.key == "pw"
    assert "pw" not in repr(session)
    assert users.authenticate("S1", "nope") is None


def test_authenticate_checks_password_echo(users, store):
    users.add_user("S1", "Ayşe", "pw", "Students")
    document = store.load_users()
    document.partitions[STUDENTS][0].password = security.encrypt("something else", "pw")
    store.save_users(document)
    assert users.authenticate("S1", "pw") is None


def test_update_user_moves_partition(users, store):
    users.add_user("S1", "Ayşe", "pw", "Students")
    assert users.update_user("S1", "Ayşe Kaya", "pw", "General Public")

    document = store.load_users()
    assert document.partitions[STUDENTS] == []
    assert len(document.partitions[GENERAL_PUBLIC]) == 1
    assert users.get_user_type("S1", "pw") == GENERAL_PUBLIC
    assert users.authenticate("S1", "pw").display_name == "Ayşe Kaya"


def test_update_user_reencrypts_fields(users, store):
    users.add_user("S1", "Ayşe", "pw", "Students")
    before = store.load_users().partitions[STUDENTS][0]
    assert users.update_user("S1", "Ayşe", "pw", "Students")
    after = store.load_users().partitions[STUDENTS][0]
    assert after.user_id != before.user_id
    assert after.password != before.password


def test_update_user_rejects_unknown_type(users):
    users.add_user("S1", "Ayşe", "pw", "Students")
    assert not users.update_user("S1", "Ayşe", "pw", "Staff")
    assert users.get_user_type("S1", "pw") == STUDENTS


def test_update_missing_user(users):
    assert not users.update_user("ghost", "Name", "pw", "Students")


def test_remove_user(users):
    users.add_user("S1", "Ayşe", "pw", "Students")
    assert not users.remove_user("S1", "wrong")
    assert users.remove_user("S1", "pw")
    assert users.find_user("S1", "pw") is None
    assert not users.remove_user("S1", "pw")


def test_remove_user_with_loans_is_refused(users, store):
    users.add_user("S1", "Ayşe", "pw", "Students")
    document = store.load_users()
    document.partitions[STUDENTS][0].books.append(BorrowedBook("A141736", security.encrypt("2024-01-01", "pw")))
    store.save_users(document)

    assert not users.remove_user("S1", "pw")
    assert [b.book_id for b in users.find_borrowed_books("S1", "pw")] == ["A141736"]


def test_missing_user_file(tmp_path):
    users = UserDirectory(RecordStore(tmp_path / "none.json", tmp_path / "b.json"))
    assert users.find_user("S1", "pw") is None
    assert users.find_borrowed_books("S1", "pw") == []
    assert users.authenticate("S1", "pw") is None
    assert not users.add_user("S1", "N", "pw", "Students")


def test_unstorable_text_is_rejected(users, store):
    assert not users.add_user("S\udcff", "Ayşe", "pw", "Students")
    assert not users.add_user("S1", "Ayşe", "pw\udcff", "Students")
    assert store.load_users().partitions[STUDENTS] == []
    assert users.find_user("S1", "pw\udcff") is None
