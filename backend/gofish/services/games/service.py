"""Inbound action surface of the game core.

``GameService`` is what transports (Socket.IO handlers, REST routes) call.
Each action runs under the session's lock, commits a snapshot and
dispatches the recorded events before the lock is released, so a session's
broadcasts go out in commit order. Afterwards it schedules the AI's next
move when the computer holds the turn and queues a snapshot write.
"""
import logging
from typing import Any, Callable, Dict, Optional

from .ai import AIAgent
from .engine import TurnEngine
from .errors import SessionNotFound
from .events import EventLog
from .state import AI_PLAYER_ID, AI_PLAYER_NAME
from .store import LeaveResult, RenameResult, SessionStore

logger = logging.getLogger(__name__)


class GameService:
    def __init__(self, store: SessionStore, engine: TurnEngine, agent: AIAgent,
                 dispatcher=None, snapshots=None):
        self.store = store
        self.engine = engine
        self.agent = agent
        self.dispatcher = dispatcher
        self.snapshots = snapshots

    def create_session(self, player_id: str, name: str = 'Anonymous', vs_ai: bool = False,
                       subscribe: Optional[Callable[[str], None]] = None) -> Dict[str, Any]:
        """Create a game for ``player_id``; ``subscribe`` is called with the new id before any event goes out."""
        session = self.store.create(player_id, name, vs_ai)
        if subscribe:
            subscribe(session.id)
        log = EventLog(session.id)
        with self.store.locked(session.id) as locked:
            log.created(self.store.commit(locked))
            if vs_ai:
                self.store.join(session.id, AI_PLAYER_ID, AI_PLAYER_NAME, log)
            snapshot = self.store.commit(locked)
            ai_due = self.agent.should_act(locked)
            if vs_ai:
                log.state(snapshot)
            self._dispatch(log)
        self._after_commit(session.id if ai_due else None)
        return snapshot

    def join_session(self, session_id: str, player_id: str, name: str = 'Anonymous') -> Dict[str, Any]:
        log = EventLog(session_id)
        with self.store.locked(session_id) as session:
            if player_id not in session.players:
                log.message(f"{name or 'Anonymous'} joined")
            self.store.join(session_id, player_id, name, log)
            snapshot = self.store.commit(session)
            ai_due = self.agent.should_act(session)
            log.state(snapshot)
            self._dispatch(log)
        self._after_commit(session_id if ai_due else None)
        return snapshot

    def leave_session(self, session_id: str, player_id: str) -> LeaveResult:
        log = EventLog(session_id)
        with self.store.locked(session_id):
            result = self.store.leave(session_id, player_id, log)
            if result.session is not None and not result.deleted:
                log.state(result.session)
            self._dispatch(log)
        if result.deleted:
            self.agent.cancel(session_id)
        self._after_commit()
        return result

    def ask(self, session_id: str, from_id: str, to_id: str, rank: str) -> Dict[str, Any]:
        log = EventLog(session_id)
        with self.store.locked(session_id) as session:
            self.engine.ask(session, from_id, to_id, rank, log)
            snapshot = self.store.commit(session)
            ai_due = self.agent.should_act(session)
            log.state(snapshot)
            self._dispatch(log)
        self._after_commit(session_id if ai_due else None)
        return snapshot

    def get_session(self, session_id: str) -> Dict[str, Any]:
        return self.store.get(session_id).to_dict()

    def rename_player(self, player_id: str, new_name: str) -> RenameResult:
        log = EventLog()
        result = self.store.rename_player(player_id, new_name, log)
        if not result.found:
            logger.warning(f"[rename-miss] player={player_id} not found in any game")
            return result
        try:
            with self.store.locked(result.session_id) as session:
                # Broadcast the state as it is now, which may already include later actions
                snapshot = self.store.commit(session)
                log.message(f"{new_name} updated their name.", session_id=result.session_id)
                log.state(snapshot, session_id=result.session_id)
                self._dispatch(log)
        except SessionNotFound:
            logger.info(f"[rename-abort] session={result.session_id} deleted before broadcast")
        self._after_commit()
        return result

    def restore(self) -> int:
        if not self.snapshots:
            return 0
        restored = self.store.restore(self.snapshots.load())
        # Resume computer turns that were pending when the snapshot was written
        for session_id in list(self.store.snapshot_document()):
            with self.store.locked(session_id) as session:
                due = self.agent.should_act(session)
            if due:
                self.agent.schedule(session_id, self._run_ai_turn)
        return restored

    # ---- internals ----

    def _run_ai_turn(self, session_id: str) -> None:
        log = EventLog(session_id)
        try:
            with self.store.locked(session_id) as session:
                if not self.agent.play_turn(session, log):
                    return
                snapshot = self.store.commit(session)
                ai_due = self.agent.should_act(session)
                log.state(snapshot)
                self._dispatch(log)
        except SessionNotFound:
            logger.info(f"[ai-abort] session={session_id} no longer exists")
            return
        self._after_commit(session_id if ai_due else None)

    def _dispatch(self, log: EventLog) -> None:
        if self.dispatcher:
            self.dispatcher.dispatch(log)

    def _after_commit(self, ai_session_id: Optional[str] = None) -> None:
        if ai_session_id:
            self.agent.schedule(ai_session_id, self._run_ai_turn)
        if self.snapshots:
            self.snapshots.schedule_save(self.store.snapshot_document)
