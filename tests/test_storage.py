import gspread
import pytest

import finflow.sheets as sheets
from finflow.config import Settings
from finflow.default_catalog import sample_finance_data
from finflow.io import to_frame
from finflow.results import StorageError
from finflow.sheets import SheetsStore, document_title, sanitize_tab_title
from finflow.storage import LocalStore, load_quietly, make_store, save_quietly


def test_local_store_missing_file(tmp_path):
    assert LocalStore(tmp_path / "none.json").load() is None


def test_local_store_round_trip(tmp_path):
    store = LocalStore(tmp_path / "nested" / "finance.json")
    data = sample_finance_data()
    store.save(data)
    assert store.path.exists()
    assert store.load() == data


def test_local_store_corrupt_file(tmp_path):
    path = tmp_path / "finance.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        LocalStore(path).load()


def test_local_store_invalid_document(tmp_path):
    path = tmp_path / "finance.json"
    path.write_text('{"incomeSources": 3}', encoding="utf-8")
    with pytest.raises(StorageError):
        LocalStore(path).load()


class _BrokenStore:
    def load(self):
        raise StorageError("offline")

    def save(self, data):
        raise StorageError("offline")


def test_quiet_wrappers_swallow_storage_errors():
    assert save_quietly(_BrokenStore(), sample_finance_data()) is False
    assert load_quietly(_BrokenStore()) is None


def test_quiet_wrappers_success(tmp_path):
    store = LocalStore(tmp_path / "finance.json")
    assert load_quietly(store) is None
    assert save_quietly(store, sample_finance_data()) is True
    assert load_quietly(store) == sample_finance_data()


def test_make_store(tmp_path):
    local = make_store(Settings(data_dir=tmp_path))
    assert isinstance(local, LocalStore)
    assert local.path == tmp_path / "finance-data.json"

    remote = Settings(storage="sheets", spreadsheet_id="abc")
    with pytest.raises(StorageError):
        make_store(remote)
    store = make_store(remote, client=object())
    assert isinstance(store, SheetsStore)
    assert store.title == "financeData__default"


def test_sanitize_tab_title():
    assert sanitize_tab_title("  my  plan ") == "my_plan"
    assert sanitize_tab_title("a/b:c") == "a-b-c"
    assert sanitize_tab_title("") == "default"
    assert len(sanitize_tab_title("x" * 200)) == 80
    assert document_title("financeData", "default") == "financeData__default"


def test_document_title_keeps_parts_apart():
    assert document_title("finance_data", "x") == "finance_data__x"
    # edge underscores never merge into the separator
    assert document_title("a_", "_b") == "a__b"
    assert document_title("my plan", "") == "my_plan__default"


# ---- Sheets store against in-memory fakes ----

class FakeWorksheet:
    def __init__(self, title):
        self.title = title
        self.cleared = False
        self.updates = []

    def clear(self):
        self.cleared = True

    def update(self, rng, values):
        self.updates.append((rng, values))


class FakeSpreadsheet:
    def __init__(self, worksheets=None):
        self.sheets = {ws.title: ws for ws in (worksheets or [])}

    def worksheet(self, title):
        try:
            return self.sheets[title]
        except KeyError:
            raise gspread.WorksheetNotFound(title) from None

    def add_worksheet(self, title, rows, cols):
        ws = FakeWorksheet(title)
        self.sheets[title] = ws
        return ws


class FakeClient:
    def __init__(self, spreadsheet=None):
        self.spreadsheet = spreadsheet

    def open_by_key(self, key):
        if self.spreadsheet is None:
            raise gspread.exceptions.GSpreadException(f"no spreadsheet {key}")
        return self.spreadsheet


def test_sheets_store_requires_id():
    with pytest.raises(StorageError):
        SheetsStore(FakeClient(), "", "financeData", "default")


def test_sheets_store_save_creates_worksheet(monkeypatch):
    written = {}

    def fake_set(ws, df, **kwargs):
        written["ws"] = ws
        written["df"] = df
        written["kwargs"] = kwargs

    monkeypatch.setattr(sheets, "set_with_dataframe", fake_set)
    book = FakeSpreadsheet()
    store = SheetsStore(FakeClient(book), "sheet-id", "financeData", "default")
    store.save(sample_finance_data())

    ws = book.sheets["financeData__default"]
    assert ws.cleared
    assert written["ws"] is ws
    assert len(written["df"]) == 3 + 5 + 11
    assert not written["df"].isna().any().any()


def test_sheets_store_writes_text_verbatim(monkeypatch):
    written = {}
    monkeypatch.setattr(sheets, "set_with_dataframe", lambda ws, df, **kwargs: written.update(kwargs))
    SheetsStore(FakeClient(FakeSpreadsheet()), "sheet-id", "financeData", "default").save(sample_finance_data())
    assert written["allow_formulas"] is False
    escape = written["string_escaping"]
    # "1-1" must stay an id, not become a date
    assert escape("1-1")
    assert escape("=SUM(A1:A2)")
    assert not escape("")


def test_sheets_store_load(monkeypatch):
    data = sample_finance_data()
    frame = to_frame(data).astype(str)
    monkeypatch.setattr(sheets, "get_as_dataframe", lambda ws, **kwargs: frame)
    book = FakeSpreadsheet([FakeWorksheet("financeData__default")])
    assert SheetsStore(FakeClient(book), "sheet-id", "financeData", "default").load() == data


def test_sheets_store_load_missing_worksheet():
    store = SheetsStore(FakeClient(FakeSpreadsheet()), "sheet-id", "financeData", "default")
    assert store.load() is None


def test_sheets_store_unreachable_spreadsheet():
    store = SheetsStore(FakeClient(None), "sheet-id", "financeData", "default")
    with pytest.raises(StorageError):
        store.load()
    assert save_quietly(store, sample_finance_data()) is False
