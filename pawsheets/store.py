# pawsheets/store.py
"""
Worksheet storage adapters.

MemoryStore stands in for the hosted record store, blob storage and
change-notification channel. HttpStore is the editor's client for the
pawsheets API. Both speak stored records (plain dicts in the shape
returned by worksheet.dump_record).
"""

import copy
import logging
import mimetypes
import threading
import time
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import requests

from pawsheets.config import get_settings
from pawsheets.errors import NotFound, UpstreamFailure
from pawsheets.schemas import Feedback, StoredImage, Theme, WorksheetSummary, parse_timestamp, utcnow
from pawsheets.worksheet import dump_record, new_worksheet

logger = logging.getLogger(__name__)

Listener = Callable[[dict], None]
Unsubscribe = Callable[[], None]


def created_at(record: dict) -> datetime:
    return parse_timestamp(record.get("created_at"))


def image_path(user_id: Optional[str], filename: str, timestamp_ms: Optional[int] = None) -> str:
    """Storage path `{user_id|public}/{timestamp}-{filename}`."""
    ts = int(time.time() * 1000) if timestamp_ms is None else timestamp_ms
    safe_name = filename.replace("/", "_").replace("\\", "_") or "image"
    return f"{user_id or 'public'}/{ts}-{safe_name}"


class WorksheetStore(Protocol):
    def get_worksheet(self, worksheet_id: str) -> dict: ...

    def get_or_create_for_user(self, user_id: Optional[str], name: str = "My Worksheet") -> dict: ...

    def save_worksheet(self, record: dict) -> dict: ...

    def upload_image(self, user_id: Optional[str], filename: str, data: bytes) -> StoredImage: ...

    def subscribe(self, worksheet_id: str, listener: Listener) -> Optional[Unsubscribe]: ...


# ============================================================
# in-process store
# ============================================================

class MemoryStore:
    """Thread-safe in-memory records, blobs and change notifications."""

    def __init__(self, public_base_url: Optional[str] = None):
        self.public_base_url = (public_base_url or get_settings().public_base_url).rstrip("/")
        self._lock = threading.RLock()
        self._worksheets: Dict[str, dict] = {}
        self._themes: List[dict] = []
        self._feedback: List[dict] = []
        self._blobs: Dict[str, Tuple[bytes, str]] = {}
        self._listeners: Dict[str, List[Listener]] = {}

    # -------------------------
    # worksheets
    # -------------------------

    def get_worksheet(self, worksheet_id: str) -> dict:
        with self._lock:
            record = self._worksheets.get(str(worksheet_id))
            if record is None:
                raise NotFound(f"Worksheet {worksheet_id} not found")
            return copy.deepcopy(record)

    def put_record(self, record: dict) -> dict:
        """Insert a raw record as-is (columns/rows may be JSON strings)."""
        record = copy.deepcopy(record)
        record.setdefault("id", uuid.uuid4().hex)
        record.setdefault("created_at", utcnow().isoformat())
        with self._lock:
            self._worksheets[str(record["id"])] = record
        return copy.deepcopy(record)

    def _user_records(self, user_id: Optional[str]) -> List[dict]:
        records = [r for r in self._worksheets.values() if r.get("user_id") == user_id]
        return sorted(records, key=created_at, reverse=True)

    def get_or_create_for_user(self, user_id: Optional[str], name: str = "My Worksheet") -> dict:
        """The user's newest worksheet, or a fresh skeleton on first access."""
        with self._lock:
            records = self._user_records(user_id)
            if records:
                return copy.deepcopy(records[0])
            ws = new_worksheet(user_id=user_id, name=name, worksheet_id=uuid.uuid4().hex)
            logger.info("Created worksheet %s for user %s", ws.id, user_id or "public")
            return self.put_record(dump_record(ws))

    def list_worksheets(self, user_id: Optional[str]) -> List[WorksheetSummary]:
        with self._lock:
            return [
                WorksheetSummary(id=r["id"], user_id=r.get("user_id"), name=r.get("name") or "",
                                 created_at=created_at(r))
                for r in self._user_records(user_id)
            ]

    def copy_worksheet(self, worksheet_id: str, name: str) -> dict:
        """Save the worksheet's current grid and styles as a new template."""
        record = self.get_worksheet(worksheet_id)
        record.update(id=uuid.uuid4().hex, name=name, created_at=utcnow().isoformat())
        logger.info("Copied worksheet %s to %s", worksheet_id, record["id"])
        return self.put_record(record)

    def delete_worksheet(self, worksheet_id: str) -> None:
        key = str(worksheet_id)
        with self._lock:
            if self._worksheets.pop(key, None) is None:
                raise NotFound(f"Worksheet {worksheet_id} not found")
            self._listeners.pop(key, None)
        logger.info("Deleted worksheet %s", worksheet_id)

    def save_worksheet(self, record: dict) -> dict:
        worksheet_id = str(record.get("id") or "")
        with self._lock:
            existing = self._worksheets.get(worksheet_id)
            if existing is None:
                raise NotFound(f"Worksheet {worksheet_id} not found")
            updated = copy.deepcopy(existing)
            for key in ("name", "columns", "rows", "styles"):
                if key in record:
                    updated[key] = copy.deepcopy(record[key])
            self._worksheets[worksheet_id] = updated
            listeners = list(self._listeners.get(worksheet_id, []))
        for listener in listeners:
            try:
                listener(copy.deepcopy(updated))
            except Exception:
                logger.exception("Worksheet listener failed for %s", worksheet_id)
        return copy.deepcopy(updated)

    def subscribe(self, worksheet_id: str, listener: Listener) -> Optional[Unsubscribe]:
        key = str(worksheet_id)
        with self._lock:
            self._listeners.setdefault(key, []).append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners.get(key, []):
                    self._listeners[key].remove(listener)

        return unsubscribe

    # -------------------------
    # images
    # -------------------------

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/api/images/{path}"

    def upload_image(self, user_id: Optional[str], filename: str, data: bytes) -> StoredImage:
        path = image_path(user_id, filename)
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        with self._lock:
            self._blobs[path] = (data, content_type)
        return StoredImage(path=path, url=self.public_url(path))

    def get_image(self, path: str) -> Tuple[bytes, str]:
        with self._lock:
            if path not in self._blobs:
                raise NotFound(f"Image {path} not found")
            return self._blobs[path]

    # -------------------------
    # themes & feedback
    # -------------------------

    def list_themes(self, user_id: Optional[str]) -> List[Theme]:
        with self._lock:
            themes = [Theme(**t) for t in self._themes if t.get("user_id") == user_id]
        return sorted(themes, key=lambda t: t.created_at, reverse=True)

    def save_theme(self, theme: Theme) -> Theme:
        stored = theme.model_copy(update={"id": theme.id or uuid.uuid4().hex})
        with self._lock:
            self._themes.append(stored.model_dump())
        return stored

    def add_feedback(self, feedback: Feedback) -> None:
        with self._lock:
            self._feedback.append(feedback.model_dump())

    @property
    def feedback(self) -> List[dict]:
        with self._lock:
            return list(self._feedback)


# ============================================================
# API client
# ============================================================

class HttpStore:
    """Talks to the pawsheets API. `session` may be any requests-like client."""

    def __init__(self, api_base: Optional[str] = None, session=None, timeout: float = 10):
        self.api_base = (get_settings().api_base if api_base is None else api_base).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.api_base}/api{path}"

    def _call(self, method: str, path: str, **kwargs):
        try:
            resp = self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise UpstreamFailure(f"{method} {path} failed: {e}") from e
        if resp.status_code == 404:
            raise NotFound(f"{path} not found")
        if resp.status_code >= 400:
            raise UpstreamFailure(f"{method} {path} returned {resp.status_code}: {resp.text}")
        return resp

    def get_worksheet(self, worksheet_id: str) -> dict:
        return self._call("GET", f"/worksheets/{worksheet_id}").json()

    def get_or_create_for_user(self, user_id: Optional[str], name: str = "My Worksheet") -> dict:
        return self._call("POST", "/worksheets", json={"user_id": user_id, "name": name}).json()

    def save_worksheet(self, record: dict) -> dict:
        body = {k: record[k] for k in ("name", "columns", "rows", "styles") if k in record}
        return self._call("PUT", f"/worksheets/{record['id']}", json=body).json()

    def list_worksheets(self, user_id: Optional[str]) -> List[WorksheetSummary]:
        resp = self._call("GET", "/worksheets", params={"user_id": user_id or ""})
        return [WorksheetSummary(**w) for w in resp.json()]

    def copy_worksheet(self, worksheet_id: str, name: str) -> dict:
        return self._call("POST", f"/worksheets/{worksheet_id}/copy", json={"name": name}).json()

    def delete_worksheet(self, worksheet_id: str) -> None:
        self._call("DELETE", f"/worksheets/{worksheet_id}")

    def upload_image(self, user_id: Optional[str], filename: str, data: bytes) -> StoredImage:
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        resp = self._call(
            "POST", "/images",
            data={"user_id": user_id or ""},
            files={"file": (filename, data, content_type)},
        )
        return StoredImage(**resp.json())

    def subscribe(self, worksheet_id: str, listener: Listener) -> Optional[Unsubscribe]:
        # the API has no push channel; the editor reloads on demand instead
        return None

    def list_themes(self, user_id: Optional[str]) -> List[Theme]:
        resp = self._call("GET", "/themes", params={"user_id": user_id or ""})
        return [Theme(**t) for t in resp.json()]

    def save_theme(self, theme: Theme) -> Theme:
        resp = self._call("POST", "/themes", json=theme.model_dump(mode="json"))
        return Theme(**resp.json())

    def add_feedback(self, feedback: Feedback) -> None:
        self._call("POST", "/feedback", json=feedback.model_dump())

    def embed_snippets(self, worksheet_id: str, origin: Optional[str] = None) -> dict:
        params = {"origin": origin} if origin else None
        return self._call("GET", f"/worksheets/{worksheet_id}/embed", params=params).json()

    def preview_png(self, worksheet_id: str) -> bytes:
        return self._call("GET", f"/worksheets/{worksheet_id}/preview.png").content
