import json
import threading
import time

from sqlalchemy.exc import SQLAlchemyError

from gofish import db
from gofish.models import SessionSnapshot

SNAPSHOT_ROW_ID = 1


class SnapshotRepository:
    """Last-write-wins store for the session table.

    Actions call ``schedule_save`` and return immediately; a single background
    writer flushes the newest document, so saves requested while a write is
    in flight collapse into one. ``save`` takes a callable so the document is
    built while the writer lock is held and a slow writer can never overwrite
    a newer snapshot with an older one. With ``inline=True`` every save is
    written before ``schedule_save`` returns.
    """

    def __init__(self, app, start_task=None, inline: bool = False):
        self.app = app
        self.inline = inline
        self._start_task = start_task or _start_thread
        self._lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._pending = None
        self._flushing = False
        self._idle = threading.Event()
        self._idle.set()

    def schedule_save(self, build_document) -> None:
        if self.inline:
            self.save(build_document)
            return
        with self._state_lock:
            self._pending = build_document
            if self._flushing:
                return
            self._flushing = True
            self._idle.clear()
        self._start_task(self._flush_pending)

    def wait_idle(self, timeout=None) -> bool:
        """Block until no save is pending or in flight."""
        return self._idle.wait(timeout)

    def _flush_pending(self) -> None:
        while True:
            with self._state_lock:
                build_document, self._pending = self._pending, None
                if build_document is None:
                    self._flushing = False
                    self._idle.set()
                    return
            try:
                self.save(build_document)
            except Exception:
                self.app.logger.exception('[snapshot-error] background flush failed')

    def save(self, build_document) -> bool:
        with self._lock:
            document = build_document() if callable(build_document) else build_document
            with self.app.app_context():
                try:
                    row = db.session.get(SessionSnapshot, SNAPSHOT_ROW_ID)
                    if row is None:
                        row = SessionSnapshot(id=SNAPSHOT_ROW_ID)
                    row.document = json.dumps(document)
                    row.updated_at = time.time()
                    db.session.add(row)
                    db.session.commit()
                except SQLAlchemyError as exc:
                    db.session.rollback()
                    self.app.logger.error(f"[snapshot-error] save failed: {exc}")
                    return False
        return True

    def load(self) -> dict:
        with self.app.app_context():
            try:
                row = db.session.get(SessionSnapshot, SNAPSHOT_ROW_ID)
            except SQLAlchemyError as exc:
                db.session.rollback()
                self.app.logger.warning(f"[snapshot-load] no snapshot available: {exc}")
                return {}
            return row.to_dict() if row else {}


def _start_thread(fn, *args):
    thread = threading.Thread(target=fn, args=args, daemon=True, name='snapshot-writer')
    thread.start()
    return thread
