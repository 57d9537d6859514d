import logging
import random
from typing import Callable, Optional

from .cards import Card
from .engine import AUTO_DRAW, TurnEngine
from .events import EventLog
from .scheduler import TaskScheduler
from .state import IN_PROGRESS, Player, Session

logger = logging.getLogger(__name__)

DEFAULT_THINK_DELAY_SEC = 1.5


class AIAgent:
    """Plays the computer seat.

    The agent never acts on its own: after each committed change the game
    service calls ``schedule``; when the think-delay elapses the scheduled
    callback takes the session lock and calls ``play_turn``.
    """

    def __init__(self, engine: TurnEngine, scheduler: TaskScheduler,
                 think_delay: float = DEFAULT_THINK_DELAY_SEC, rng: Optional[random.Random] = None):
        self.engine = engine
        self.scheduler = scheduler
        self.think_delay = think_delay
        self.rng = rng or random.Random()

    def should_act(self, session: Session) -> bool:
        if session.status != IN_PROGRESS or not session.turn:
            return False
        player = session.players.get(session.turn)
        return bool(player and player.is_ai and session.opponent_of(player.id))

    def schedule(self, session_id: str, run: Callable[[str], None]) -> bool:
        task = self.scheduler.schedule(session_id, self.think_delay, lambda: run(session_id))
        return task is not None

    def cancel(self, session_id: str) -> bool:
        return self.scheduler.cancel(session_id)

    def choose_card(self, ai: Player) -> Card:
        return self.rng.choice(ai.hand)

    def play_turn(self, session: Session, log: EventLog) -> bool:
        """Take one action for the AI seat. Returns False when it was not the AI's move."""
        if not self.should_act(session):
            logger.info(f"[ai-skip] session={session.id} turn={session.turn} status={session.status}")
            return False
        ai = session.players[session.turn]
        human_id = session.opponent_of(ai.id)

        if not ai.hand:
            if session.remaining > 0:
                self.engine.ask(session, ai.id, human_id, AUTO_DRAW, log)
                if not ai.hand and session.turn == ai.id and session.status == IN_PROGRESS:
                    self.engine.pass_turn(session, ai.id, log,
                                          f"{ai.display_name} has no cards and the deck is empty - skipping turn.")
            else:
                self.engine.pass_turn(session, ai.id, log,
                                      f"{ai.display_name} has no cards and the deck is empty - skipping turn.")
            return True

        rank = self.choose_card(ai).rank
        logger.info(f"[ai-ask] session={session.id} rank={rank}")
        self.engine.ask(session, ai.id, human_id, rank, log)
        return True
