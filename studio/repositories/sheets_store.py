import json
import logging
import threading

from gspread.exceptions import APIError, WorksheetNotFound

from studio.config import BOOL_COLUMNS, HEADERS, JSON_COLUMNS
from studio.errors import NotFoundError, StoreError, UniqueViolation
from studio.repositories.store import apply_query, new_row_id, normalize_value, unique_key

logger = logging.getLogger(__name__)


# -----------------------------
# Sheet helpers
# -----------------------------
def get_or_create_worksheet(sh, tab_name: str, cache: dict):
    """
    Cached per store to avoid repeated fetch_sheet_metadata calls.
    """
    key = (sh.id, tab_name)
    if key in cache:
        return cache[key]

    try:
        ws = sh.worksheet(tab_name)  # this triggers metadata read (expensive)
    except WorksheetNotFound:
        ws = sh.add_worksheet(title=tab_name, rows=1000, cols=max(26, len(HEADERS[tab_name])))

    cache[key] = ws
    return ws


def ensure_headers(ws, headers):
    values = ws.get_all_values()
    if not values or values[0] != headers:
        ws.update(range_name="A1", values=[headers])


def encode_cell(column: str, value) -> str:
    if value is None:
        return ""
    if column in JSON_COLUMNS:
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    value = normalize_value(value)
    return "" if value is None else value


def decode_cell(column: str, value):
    if value == "" or value is None:
        return None
    if column in JSON_COLUMNS:
        try:
            return json.loads(value) if isinstance(value, str) else value
        except json.JSONDecodeError:
            return value
    if column in BOOL_COLUMNS:
        return str(value).strip().upper() == "TRUE"
    return value


class SheetsStore:
    """One worksheet per collection in a Google spreadsheet.

    Sheets have no constraints, so unique keys are checked against the
    current rows right before appending. Writes from this process are
    serialized; another process racing on the same key can still slip a
    duplicate in between the check and the append.
    """

    def __init__(self, spreadsheet):
        self.sh = spreadsheet
        self._ws_cache = {}
        self._write_lock = threading.Lock()

    def _worksheet(self, collection: str):
        if collection not in HEADERS:
            raise StoreError(f"Unknown collection: {collection}")
        return get_or_create_worksheet(self.sh, collection, self._ws_cache)

    def _records(self, collection: str) -> list[dict]:
        ws = self._worksheet(collection)
        try:
            ensure_headers(ws, HEADERS[collection])
            # Cells stay text; decode_cell and the model parsers do the typing
            records = ws.get_all_records(numericise_ignore=["all"])
        except APIError as exc:
            raise StoreError(f"Could not read {collection}: {exc}") from exc
        return [{k: decode_cell(k, v) for k, v in r.items()} for r in records]

    def select(self, collection, filters=None, *, order_by=None, descending=False, limit=None):
        return apply_query(self._records(collection), filters, order_by, descending, limit)

    def select_one(self, collection, filters):
        rows = self.select(collection, filters, limit=1)
        return rows[0] if rows else None

    def insert(self, collection, row):
        if collection not in HEADERS:
            raise StoreError(f"Unknown collection: {collection}")
        headers = HEADERS[collection]
        new = dict(row)
        if not new.get("id"):
            new["id"] = new_row_id()

        with self._write_lock:
            existing = self._records(collection)
            key = unique_key(collection, new)
            if key is not None and any(unique_key(collection, r) == key for r in existing):
                raise UniqueViolation(collection, key)
            if any(str(r.get("id")) == str(new["id"]) for r in existing):
                raise UniqueViolation(collection, (new["id"],))

            values = [encode_cell(h, new.get(h)) for h in headers]
            try:
                self._worksheet(collection).append_row(values, value_input_option="RAW")
            except APIError as exc:
                raise StoreError(f"Could not append to {collection}: {exc}") from exc

        return {h: decode_cell(h, v) for h, v in zip(headers, values)}

    def update(self, collection, row_id, changes):
        headers = HEADERS[collection]
        with self._write_lock:
            records = self._records(collection)
            for idx, r in enumerate(records):
                if str(r.get("id")) != str(row_id):
                    continue
                merged = {**r, **changes}
                values = [encode_cell(h, merged.get(h)) for h in headers]
                # +2: header row, and sheets are 1-indexed
                try:
                    self._worksheet(collection).update(range_name=f"A{idx + 2}", values=[values])
                except APIError as exc:
                    raise StoreError(f"Could not update {collection}/{row_id}: {exc}") from exc
                logger.debug("Updated %s/%s: %s", collection, row_id, sorted(changes))
                return {h: decode_cell(h, v) for h, v in zip(headers, values)}
        raise NotFoundError(collection, row_id)
