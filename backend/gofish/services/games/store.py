"""In-memory session registry.

Every session gets its own re-entrant lock; the registry lock only guards
the id -> session and id -> lock maps and is never held while a session is
being mutated.
"""
import copy
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from .engine import TurnEngine
from .errors import SessionFull, SessionNotFound, StartFailed
from .events import EventLog
from .state import AI_PLAYER_ID, AI_PLAYER_NAME, MAX_SEATS, Player, Session

logger = logging.getLogger(__name__)


@dataclass
class LeaveResult:
    removed: bool
    deleted: bool
    session: Optional[Dict[str, Any]] = None


@dataclass
class RenameResult:
    found: bool
    session_id: Optional[str] = None
    old_name: Optional[str] = None
    session: Optional[Dict[str, Any]] = None


class SessionStore:
    def __init__(self, engine: TurnEngine):
        self.engine = engine
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._committed: Dict[str, Dict[str, Any]] = {}
        self._registry_lock = threading.Lock()

    # ---- locking / snapshots ----

    @contextmanager
    def locked(self, session_id: str) -> Iterator[Session]:
        with self._registry_lock:
            lock = self._locks.get(session_id)
        if lock is None:
            raise SessionNotFound(session_id)
        with lock:
            # The session may have been deleted while we waited
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            yield session

    def commit(self, session: Session) -> Dict[str, Any]:
        snapshot = session.to_dict()
        with self._registry_lock:
            if session.id in self._sessions:
                self._committed[session.id] = snapshot
        return copy.deepcopy(snapshot)

    def snapshot_document(self) -> Dict[str, Any]:
        with self._registry_lock:
            return copy.deepcopy(self._committed)

    def restore(self, document: Dict[str, Any]) -> int:
        restored = 0
        for session_id, data in (document or {}).items():
            try:
                session = Session.from_dict(data)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"[restore-skip] session={session_id} error={e}")
                continue
            with self._registry_lock:
                self._sessions[session.id] = session
                self._locks[session.id] = threading.RLock()
                self._committed[session.id] = session.to_dict()
            restored += 1
        logger.info(f"[restore] sessions={restored}")
        return restored

    def __contains__(self, session_id) -> bool:
        with self._registry_lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._sessions)

    # ---- lifecycle ----

    def create(self, creator_id: str, name: str = 'Anonymous', vs_ai: bool = False) -> Session:
        session = Session(id=str(uuid.uuid4()), vs_ai=vs_ai)
        session.players[creator_id] = Player(id=creator_id, name=name or 'Anonymous')
        if vs_ai:
            session.players[AI_PLAYER_ID] = Player(id=AI_PLAYER_ID, name=AI_PLAYER_NAME, is_ai=True)
        with self._registry_lock:
            self._sessions[session.id] = session
            self._locks[session.id] = threading.RLock()
        self.commit(session)
        logger.info(f"[create] session={session.id} creator={creator_id} vs_ai={vs_ai}")
        return session

    def join(self, session_id: str, player_id: str, name: str, log: EventLog) -> Session:
        with self.locked(session_id) as session:
            if player_id not in session.players:
                if len(session.players) >= MAX_SEATS:
                    raise SessionFull('This game already has two players')
                session.players[player_id] = Player(id=player_id, name=name or 'Anonymous',
                                                    is_ai=player_id == AI_PLAYER_ID)
                logger.info(f"[join] session={session_id} player={player_id} seat={session.seat_of(player_id)}")
            if not session.started and (len(session.players) == MAX_SEATS or session.vs_ai):
                try:
                    self.engine.start(session, log)
                except StartFailed as e:
                    # Stays WAITING; the next join retries the start
                    logger.error(f"[start-failed] session={session_id} error={e.message}")
                    log.message(f"Could not start the game: {e.message}. Join again to retry.")
            self.commit(session)
            return session

    def leave(self, session_id: str, player_id: str, log: EventLog) -> LeaveResult:
        with self.locked(session_id) as session:
            player = session.players.pop(player_id, None)
            if player is None:
                return LeaveResult(removed=False, deleted=False, session=self.commit(session))
            if not session.has_humans():
                with self._registry_lock:
                    self._sessions.pop(session_id, None)
                    self._locks.pop(session_id, None)
                    self._committed.pop(session_id, None)
                if session.deck_id:
                    self.engine.deck.discard(session.deck_id)
                logger.info(f"[delete] session={session_id} (no human players left)")
                log.deleted(session_id)
                return LeaveResult(removed=True, deleted=True)
            if session.turn == player_id:
                session.turn = next(iter(session.players))
            logger.info(f"[leave] session={session_id} player={player_id}")
            log.message(f"{player.display_name} left the game.")
            return LeaveResult(removed=True, deleted=False, session=self.commit(session))

    def get(self, session_id: str) -> Session:
        """Detached copy of the last committed state."""
        with self._registry_lock:
            snapshot = self._committed.get(session_id)
        if snapshot is None:
            raise SessionNotFound(session_id)
        return Session.from_dict(snapshot)

    def rename_player(self, player_id: str, new_name: str, log: EventLog) -> RenameResult:
        with self._registry_lock:
            candidates = list(self._sessions.keys())
        for session_id in candidates:
            try:
                with self.locked(session_id) as session:
                    player = session.players.get(player_id)
                    if player is None:
                        continue
                    old_name, player.name = player.name, new_name
                    log.message(f"{old_name} renamed to {new_name}!", session_id=session_id)
                    logger.info(f"[rename] session={session_id} player={player_id} name={new_name}")
                    return RenameResult(found=True, session_id=session_id, old_name=old_name,
                                        session=self.commit(session))
            except SessionNotFound:
                continue
        return RenameResult(found=False)
