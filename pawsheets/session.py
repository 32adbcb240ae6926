# pawsheets/session.py
"""
Editing session: the in-memory worksheet a user is editing, with debounced
autosave to a WorksheetStore.

- every successful edit restarts the save timer (cancel-and-reschedule)
- close() cancels a pending save; nothing is written after teardown
- out-of-band updates from the store replace local state wholesale
- image uploads show a transient local reference until the public URL is known
"""

import logging
import threading
from typing import Callable, Dict, Optional, Tuple

from pawsheets.config import get_settings
from pawsheets.errors import PawSheetsError, UpstreamFailure
from pawsheets.schemas import Worksheet
from pawsheets.store import Unsubscribe, WorksheetStore
from pawsheets.styles import StyleConfig, apply_size_preset, apply_theme, apply_theme_styles, build_styles
from pawsheets import worksheet as sheet

logger = logging.getLogger(__name__)

LOCAL_PREFIX = "local:"


class Debouncer:
    """Runs `fn` once, `delay` seconds after the last call to schedule()."""

    def __init__(self, fn: Callable[[], None], delay: float):
        self._fn = fn
        self.delay = delay
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            self._timer = threading.Timer(self.delay, self._fire, args=(generation,))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # a timer that lost the race with cancel()/schedule() must not run
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
        self._fn()

    def cancel(self) -> bool:
        with self._lock:
            self._generation += 1
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            return True
        return False

    def flush(self) -> bool:
        """Run a pending call now instead of waiting for the timer."""
        if self.cancel():
            self._fn()
            return True
        return False


class EditingSession:
    # one live session per worksheet in this process
    _live: Dict[str, "EditingSession"] = {}
    _live_lock = threading.Lock()

    def __init__(self, store: WorksheetStore, worksheet: Worksheet,
                 autosave_delay: Optional[float] = None, live_updates: bool = True):
        self.store = store
        self.worksheet = worksheet
        self.last_error: Optional[str] = None
        self.closed = False
        self._lock = threading.RLock()
        self._local = threading.local()
        # (row, col) -> value to persist while an upload is in flight
        self._pending_uploads: Dict[Tuple[int, int], str] = {}
        delay = get_settings().autosave_delay if autosave_delay is None else autosave_delay
        self._saver = Debouncer(self._save, delay)
        self._unsubscribe: Optional[Unsubscribe] = None
        if live_updates and worksheet.id:
            self._unsubscribe = store.subscribe(worksheet.id, self._on_remote_update)

    @classmethod
    def open(cls, store: WorksheetStore, worksheet_id: Optional[str] = None,
             user_id: Optional[str] = None, **kwargs) -> "EditingSession":
        """
        Load a worksheet by id, or the user's worksheet (created on first access).

        A session already open on the same worksheet is flushed and closed
        first, so its timer can't write over the new session's state.
        """
        if worksheet_id:
            record = store.get_worksheet(worksheet_id)
        else:
            record = store.get_or_create_for_user(user_id)
        key = str(record.get("id") or "")
        if key and cls._retire(key):
            record = store.get_worksheet(key)
        session = cls(store, sheet.load_record(record), **kwargs)
        if key:
            with cls._live_lock:
                cls._live[key] = session
        return session

    @classmethod
    def _retire(cls, worksheet_id: str) -> bool:
        with cls._live_lock:
            previous = cls._live.pop(worksheet_id, None)
        if previous is None or previous.closed:
            return False
        logger.info("Replacing open session on worksheet %s", worksheet_id)
        previous.flush()
        previous.close()
        return True

    # -------------------------
    # persistence
    # -------------------------

    def _snapshot(self) -> dict:
        with self._lock:
            record = sheet.dump_record(self.worksheet)
            for (r, c), previous in self._pending_uploads.items():
                if r < len(record["rows"]) and c < len(record["rows"][r]):
                    record["rows"][r][c]["value"] = previous
            return record

    def _save(self) -> None:
        if self.closed:
            return
        self._local.saving = True
        try:
            self.store.save_worksheet(self._snapshot())
            self.last_error = None
        except PawSheetsError as e:
            logger.exception("Failed to save worksheet %s", self.worksheet.id)
            self.last_error = f"Failed to save worksheet: {e}"
        finally:
            self._local.saving = False

    @property
    def save_pending(self) -> bool:
        return self._saver.pending

    def flush(self) -> bool:
        return self._saver.flush()

    def close(self) -> None:
        """End the session; a save that hasn't fired yet is dropped."""
        self.closed = True
        key = str(self.worksheet.id or "")
        with self._live_lock:
            if self._live.get(key) is self:
                del self._live[key]
        if self._saver.cancel():
            logger.info("Cancelled pending save for worksheet %s", self.worksheet.id)
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_remote_update(self, record: dict) -> None:
        # our own write echoed back by the store
        if getattr(self._local, "saving", False):
            return
        with self._lock:
            self.worksheet = sheet.load_record(record)

    def _edit(self, fn, *args):
        with self._lock:
            result = fn(self.worksheet, *args)
        self._saver.schedule()
        return result

    # -------------------------
    # grid edits
    # -------------------------

    def add_row(self) -> None:
        self._edit(sheet.add_row)

    def add_column(self) -> None:
        self._edit(sheet.add_column)

    def delete_row(self, index: int) -> None:
        self._edit(sheet.delete_row, index)

    def delete_column(self, index: int) -> None:
        self._edit(sheet.delete_column, index)

    def set_cell(self, row: int, col: int, value: str) -> None:
        self._edit(sheet.set_cell, row, col, value)

    def rename(self, name: str) -> None:
        self._edit(sheet.rename_worksheet, name)

    def replace_grid(self, columns, rows) -> None:
        """Swap in a whole edited grid (the editor's data table)."""
        def _replace(ws: Worksheet) -> None:
            ws.columns, ws.rows = sheet.normalize(columns, rows)
        self._edit(_replace)

    # -------------------------
    # styles
    # -------------------------

    def _set_styles(self, styles: StyleConfig) -> None:
        self._edit(lambda ws: setattr(ws, "styles", styles))

    def update_styles(self, overrides: dict) -> None:
        self._set_styles(build_styles(overrides, base=self.worksheet.styles))

    def replace_styles(self, styles: dict) -> None:
        self._set_styles(build_styles(styles))

    def apply_size_preset(self, name: str) -> None:
        self._set_styles(apply_size_preset(self.worksheet.styles, name))

    def apply_theme(self, name: str) -> None:
        self._set_styles(apply_theme(self.worksheet.styles, name))

    def apply_saved_theme(self, theme_styles: dict) -> None:
        self._set_styles(apply_theme_styles(self.worksheet.styles, theme_styles))

    # -------------------------
    # images
    # -------------------------

    def upload_image(self, row: int, col: int, filename: str, data: bytes) -> str:
        """
        Show a local preview reference right away, then swap in the public
        URL. On failure the cell goes back to its previous value.
        """
        with self._lock:
            previous = sheet.get_cell(self.worksheet, row, col).value
            sheet.set_cell(self.worksheet, row, col, f"{LOCAL_PREFIX}{filename}")
            self._pending_uploads[(row, col)] = previous
        try:
            stored = self.store.upload_image(self.worksheet.user_id, filename, data)
        except PawSheetsError as e:
            with self._lock:
                self._pending_uploads.pop((row, col), None)
                sheet.set_cell(self.worksheet, row, col, previous)
            logger.exception("Image upload failed for cell %s", (row, col))
            raise UpstreamFailure(f"Image upload failed: {e}") from e
        with self._lock:
            self._pending_uploads.pop((row, col), None)
            sheet.set_cell(self.worksheet, row, col, stored.url)
        self._saver.schedule()
        return stored.url
