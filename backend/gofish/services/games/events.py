"""Domain events produced while a session is mutated.

The engine only appends events to an ``EventLog``. Whoever committed the
mutation hands the log to a dispatcher afterwards, so the core never talks
to the transport directly.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

STATE_UPDATE = 'stateUpdate'
GAME_MESSAGE = 'gameMessage'
SET_COMPLETED = 'setCompleted'
GAME_CREATED = 'gameCreated'
SESSION_DELETED = 'sessionDeleted'


@dataclass
class GameEvent:
    session_id: str
    name: str
    payload: Dict[str, Any]


class EventLog:
    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id
        self.events: List[GameEvent] = []

    def _add(self, name: str, payload: Dict[str, Any], session_id: Optional[str] = None) -> None:
        self.events.append(GameEvent(session_id or self.session_id, name, payload))

    def message(self, text: str, session_id: Optional[str] = None) -> None:
        self._add(GAME_MESSAGE, {'text': text}, session_id)

    def set_completed(self, player_id: str, rank: str, session_id: Optional[str] = None) -> None:
        self._add(SET_COMPLETED, {'playerId': player_id, 'rank': rank}, session_id)

    def state(self, snapshot: Dict[str, Any], session_id: Optional[str] = None) -> None:
        self._add(STATE_UPDATE, snapshot, session_id)

    def created(self, snapshot: Dict[str, Any], session_id: Optional[str] = None) -> None:
        self._add(GAME_CREATED, {'id': snapshot['id'], 'state': snapshot}, session_id)

    def deleted(self, session_id: Optional[str] = None) -> None:
        sid = session_id or self.session_id
        self._add(SESSION_DELETED, {'id': sid}, sid)

    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def texts(self) -> List[str]:
        return [e.payload['text'] for e in self.events if e.name == GAME_MESSAGE]

    def __iter__(self):
        return iter(self.events)

    def __len__(self):
        return len(self.events)
