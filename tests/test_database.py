import json

from libvault.book import Book
from libvault.database import RecordStore, load_document, save_document
from libvault.user import ADMINS, GENERAL_PUBLIC, STUDENTS, BorrowedBook, User, UserDocument


def test_load_missing_file_returns_none(tmp_path):
    assert load_document(tmp_path / "nope.json") is None


def test_load_corrupt_file_returns_none(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_document(path) is None


def test_save_creates_parent_directories(tmp_path):
    path = tmp_path / "a" / "b" / "doc.json"
    assert save_document(path, {"x": [1, 2]}) is True
    assert json.loads(path.read_text(encoding="utf-8")) == {"x": [1, 2]}


def test_save_failure_returns_false(tmp_path):
    # A directory cannot be opened for writing
    target = tmp_path / "dir.json"
    target.mkdir()
    assert save_document(target, []) is False


def test_initialize_creates_empty_documents(tmp_path):
    store = RecordStore(tmp_path / "u.json", tmp_path / "b.json")
    assert store.initialize_data_files()
    assert json.loads((tmp_path / "u.json").read_text()) == {STUDENTS: [], GENERAL_PUBLIC: [], ADMINS: []}
    assert json.loads((tmp_path / "b.json").read_text()) == []


def test_initialize_keeps_existing_files(tmp_path):
    books = tmp_path / "b.json"
    books.write_text('[{"BookID": "A000001", "Title": "T", "Author": "A", "Publisher": "P", '
                     '"Available": 1, "OnLoan": 0}]', encoding="utf-8")
    store = RecordStore(tmp_path / "u.json", books)
    store.initialize_data_files()
    assert len(store.load_books()) == 1


def test_typed_roundtrip(tmp_path):
    store = RecordStore(tmp_path / "u.json", tmp_path / "b.json")
    doc = UserDocument.empty()
    doc.partitions[STUDENTS].append(User("tok-id", "tok-name", "tok-pw", [BorrowedBook("A000001", "tok-date", -1)]))
    assert store.save_users(doc)
    assert store.save_books([Book("A000001", "Dune", "Frank Herbert", "Chilton", 2, 1)])

    loaded = store.load_users()
    user = loaded.partitions[STUDENTS][0]
    assert (user.user_id, user.name, user.password) == ("tok-id", "tok-name", "tok-pw")
    assert user.books[0].book_id == "A000001"
    assert user.books[0].status == -1

    raw_books = json.loads((tmp_path / "b.json").read_text())
    assert raw_books == [{"BookID": "A000001", "Title": "Dune", "Author": "Frank Herbert",
                          "Publisher": "Chilton", "Available": 2, "OnLoan": 1}]
    assert store.load_books()[0].shelf_number == 1


def test_book_document_must_be_a_list(tmp_path):
    books = tmp_path / "b.json"
    books.write_text("{}", encoding="utf-8")
    assert RecordStore(tmp_path / "u.json", books).load_books() is None


def test_malformed_records_are_rejected_once(tmp_path):
    users = tmp_path / "u.json"
    users.write_text(json.dumps({STUDENTS: [{"UserID": "x"}]}), encoding="utf-8")
    books = tmp_path / "b.json"
    books.write_text(json.dumps([{"BookID": "A1", "Title": "T", "Author": "A", "Publisher": "P",
                                  "Available": "many"}]), encoding="utf-8")
    store = RecordStore(users, books)
    assert store.load_users() is None
    assert store.load_books() is None


def test_unknown_partitions_survive_a_rewrite(tmp_path):
    users = tmp_path / "u.json"
    users.write_text(json.dumps({STUDENTS: [], "Staff": []}), encoding="utf-8")
    store = RecordStore(users, tmp_path / "b.json")
    store.save_users(store.load_users())
    assert set(json.loads(users.read_text())) == {STUDENTS, "Staff"}


def test_unrelated_write_keeps_stored_fields_verbatim(tmp_path):
    books = tmp_path / "b.json"
    original = [
        {"BookID": "A141736 ", "Title": "Dune", "Author": "Frank Herbert", "Publisher": "Chilton",
         "Available": 1, "OnLoan": 0},
        {"BookID": "B000001", "Title": " Emma", "Author": "Jane Austen ", "Publisher": "John Murray",
         "Available": 1, "OnLoan": 0},
    ]
    books.write_text(json.dumps(original), encoding="utf-8")
    store = RecordStore(tmp_path / "u.json", books)

    loaded = store.load_books()
    loaded[1].available, loaded[1].on_loan = 0, 1
    assert store.save_books(loaded)

    saved = json.loads(books.read_text(encoding="utf-8"))
    assert saved[0] == original[0]
    assert saved[1]["Title"] == " Emma"
    assert saved[1]["Author"] == "Jane Austen "
    assert (saved[1]["Available"], saved[1]["OnLoan"]) == (0, 1)


def test_negative_counters_are_rejected(tmp_path):
    books = tmp_path / "b.json"
    books.write_text(json.dumps([{"BookID": "A1", "Title": "T", "Author": "A", "Publisher": "P",
                                  "Available": -1, "OnLoan": 0}]), encoding="utf-8")
    assert RecordStore(tmp_path / "u.json", books).load_books() is None
