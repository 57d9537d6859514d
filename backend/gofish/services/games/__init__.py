"""Game domain services: the Go Fish core.

This package contains the transport-agnostic game logic (deck access,
turn engine, set detection, the computer opponent and the session store).
HTTP routes and socket handlers import ``GameService`` and never touch
sessions directly.
"""
from .ai import AIAgent
from .deck import DeckProvider, DrawResult, HttpDeckProvider, LocalDeckProvider, provider_from_config
from .engine import AUTO_DRAW, TurnEngine
from .errors import (
    DeckProviderFailure,
    GameError,
    InvalidAction,
    PlayerNotFound,
    SessionFull,
    SessionNotFound,
    StartFailed,
)
from .scheduler import TaskScheduler
from .service import GameService
from .store import SessionStore
