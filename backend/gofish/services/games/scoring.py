from collections import OrderedDict
from typing import List, Optional

from .cards import SET_SIZE, TOTAL_SETS, rank_order
from .state import Player, Session


def detect_sets(player: Player) -> List[str]:
    """Move every complete four-of-a-kind out of the player's hand.

    Returns the ranks completed by this call, lowest rank first. Normally
    that is zero or one rank, but a hand holding two quads yields both.
    """
    by_rank = OrderedDict()
    for card in player.hand:
        by_rank.setdefault(card.rank, []).append(card)

    completed = sorted((r for r, cards in by_rank.items() if len(cards) == SET_SIZE), key=rank_order)
    if not completed:
        return []

    for rank in completed:
        player.sets.append(by_rank[rank])
    player.hand = [c for c in player.hand if c.rank not in completed]
    return completed


def evaluate_winner(session: Session) -> Optional[str]:
    """Return the winner's id once all 13 sets are out, else None.

    Highest set count wins; on a tie the lowest seat wins.
    """
    if session.total_sets() < TOTAL_SETS:
        return None
    best_id, best_count = None, -1
    for pid, player in session.players.items():
        # strict comparison keeps the earliest seat on ties
        if len(player.sets) > best_count:
            best_id, best_count = pid, len(player.sets)
    return best_id
