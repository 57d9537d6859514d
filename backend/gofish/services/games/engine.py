"""Turn engine: session start, asks, auto-draws and turn ownership.

All methods mutate the ``Session`` they are given and record what happened
in an ``EventLog``. Callers are expected to hold the session's lock.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .cards import DECK_SIZE, Card, normalize_rank, sort_hand
from .deck import DeckProvider
from .errors import DeckProviderFailure, InvalidAction, PlayerNotFound, StartFailed
from .events import EventLog
from .scoring import detect_sets, evaluate_winner
from .state import IN_PROGRESS, MAX_SEATS, Player, Session

logger = logging.getLogger(__name__)

AUTO_DRAW = 'AUTO_DRAW'
HAND_SIZE = 7
INITIAL_DEAL = HAND_SIZE * MAX_SEATS


@dataclass
class AskResult:
    rank: str
    received: int = 0
    drew: Optional[Card] = None
    deck_empty: bool = False
    completed: List[str] = field(default_factory=list)
    turn_switched: bool = False
    winner: Optional[str] = None


class TurnEngine:
    def __init__(self, deck: DeckProvider):
        self.deck = deck

    # ---- start ----

    def start(self, session: Session, log: EventLog) -> None:
        """Deal 7 cards to each seat and hand the turn to seat 0.

        Raises StartFailed and leaves the session untouched when the deck
        service fails or deals short.
        """
        if session.started:
            return
        if len(session.players) < MAX_SEATS:
            raise StartFailed('Waiting for a second player')
        try:
            deck_id = self.deck.new_deck()
            dealt = self.deck.draw(deck_id, INITIAL_DEAL)
        except DeckProviderFailure as e:
            raise StartFailed(f"Could not get a deck: {e.message}") from e
        if len(dealt.cards) < INITIAL_DEAL:
            raise StartFailed(f"Not enough cards drawn ({len(dealt.cards)} of {INITIAL_DEAL})")

        first, second = session.seats[:MAX_SEATS]
        session.players[first].hand = sort_hand(dealt.cards[:HAND_SIZE])
        session.players[second].hand = sort_hand(dealt.cards[HAND_SIZE:INITIAL_DEAL])
        session.deck_id = deck_id
        session.remaining = DECK_SIZE - INITIAL_DEAL
        session.turn = first
        session.started = True
        logger.info(f"[start] session={session.id} deck={deck_id} first={first}")
        log.message(f"Game started! {session.players[first].display_name} goes first.")

    # ---- turn actions ----

    def ask(self, session: Session, from_id: str, to_id: str, rank: str, log: EventLog) -> AskResult:
        asker, target = self._validate(session, from_id, to_id)
        rank = normalize_rank(rank)
        result = AskResult(rank=rank)

        if rank == AUTO_DRAW:
            self._auto_draw(session, asker, target, log, result)
        else:
            matching = [c for c in target.hand if c.rank == rank]
            if matching:
                target.hand = sort_hand([c for c in target.hand if c.rank != rank])
                asker.hand = sort_hand(asker.hand + matching)
                result.received = len(matching)
                log.message(
                    f"{asker.display_name} asked {target.display_name} for {rank}s and got {len(matching)}!"
                )
                result.completed = self.collect_sets(session, asker, log)
            else:
                card = self._draw_one(session, asker)
                if card is not None:
                    result.drew = card
                    log.message(f"{asker.display_name} asked {target.display_name} for {rank}s - Go fish!")
                else:
                    result.deck_empty = True
                    if self._finish_if_over(session, log, result):
                        return result
                    log.message(
                        f"{asker.display_name} asked {target.display_name} for {rank}s - Go fish! "
                        f"But the deck is empty."
                    )
                result.completed = self.collect_sets(session, asker, log)
                self._switch_turn(session, from_id, to_id)
                result.turn_switched = True

        self._finish_if_over(session, log, result)
        logger.info(
            f"[ask] session={session.id} from={from_id} to={to_id} rank={rank} received={result.received} "
            f"drew={bool(result.drew)} switched={result.turn_switched} winner={result.winner}"
        )
        return result

    def pass_turn(self, session: Session, from_id: str, log: EventLog, text: Optional[str] = None) -> None:
        to_id = session.opponent_of(from_id)
        if text:
            log.message(text)
        if to_id:
            self._switch_turn(session, from_id, to_id)

    def collect_sets(self, session: Session, player: Player, log: EventLog) -> List[str]:
        completed = detect_sets(player)
        for rank in completed:
            log.message(f"{player.display_name} completed a set of {rank}s!")
            log.set_completed(player.id, rank)
        return completed

    # ---- helpers ----

    def _validate(self, session: Session, from_id: str, to_id: str):
        asker = session.players.get(from_id)
        if asker is None:
            raise PlayerNotFound(from_id, session.id)
        target = session.players.get(to_id)
        if target is None:
            raise PlayerNotFound(to_id, session.id)
        if session.status != IN_PROGRESS:
            raise InvalidAction('The game is not in progress')
        if from_id == to_id:
            raise InvalidAction('You cannot ask yourself')
        if session.turn != from_id:
            raise InvalidAction(f"It is not {asker.display_name}'s turn")
        return asker, target

    def _auto_draw(self, session, asker, target, log, result) -> None:
        card = self._draw_one(session, asker)
        if card is None:
            result.deck_empty = True
            if self._finish_if_over(session, log, result):
                return
            log.message(f"{asker.display_name} tried to draw a card, but the deck is empty.")
            self._switch_turn(session, asker.id, target.id)
            result.turn_switched = True
            return
        result.drew = card
        log.message(f"{asker.display_name} had no cards and drew one from the deck.")
        result.completed = self.collect_sets(session, asker, log)

    def _draw_one(self, session: Session, player: Player) -> Optional[Card]:
        """Draw a card for ``player``; None on an empty deck or a deck service failure."""
        try:
            drawn = self.deck.draw(session.deck_id, 1)
        except DeckProviderFailure as e:
            logger.warning(f"[draw-failed] session={session.id} player={player.id} error={e.message}")
            return None
        if not drawn.cards:
            session.remaining = drawn.remaining
            return None
        card = drawn.cards[0]
        player.hand = sort_hand(player.hand + [card])
        session.remaining = drawn.remaining
        return card

    def _switch_turn(self, session: Session, from_id: str, to_id: str) -> None:
        session.turn = to_id if session.turn == from_id else from_id

    def _finish_if_over(self, session: Session, log: EventLog, result: AskResult) -> bool:
        winner = evaluate_winner(session)
        if not winner:
            return False
        if not session.winner:
            session.winner = winner
            logger.info(f"[finish] session={session.id} winner={winner}")
            log.message(f"{session.players[winner].display_name} wins the game!")
        result.winner = winner
        return True
