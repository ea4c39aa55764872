"""
Swiss system: pairing the next round from current standings.
"""
import logging
from typing import FrozenSet, List, Optional, Set, Tuple

from .advancement import Bracket
from .builder import swiss_round_nodes
from .errors import (
    BracketCompleteError,
    PairingError,
    RoundIncompleteError,
    UnsupportedTypeError,
)
from .models import Branch, GameNode, MatchType, Participant, default_swiss_rounds

logger = logging.getLogger(__name__)

Pairing = List[Tuple[Participant, Participant]]


def played_pairs(bracket: Bracket) -> Set[FrozenSet[str]]:
    """Participant id pairs that have already met."""
    pairs = set()
    for node in bracket.nodes:
        if node.branch == Branch.SWISS and not node.is_bye and node.is_ready:
            pairs.add(frozenset(p.id for p in node.participants))
    return pairs


def _pair(pool: List[Participant], played: Set[FrozenSet[str]],
          rematches: int = 0) -> Optional[Pairing]:
    """
    Pair top-down with the closest-ranked opponent, backtracking on dead ends.

    At most ``rematches`` of the returned pairs may have met before.
    """
    if not pool:
        return []
    first = pool[0]
    for i in range(1, len(pool)):
        opponent = pool[i]
        cost = int(frozenset((first.id, opponent.id)) in played)
        if cost > rematches:
            continue
        rest = _pair(pool[1:i] + pool[i + 1:], played, rematches - cost)
        if rest is not None:
            return [(first, opponent)] + rest
    return None


def _pair_with_fewest_rematches(pool: List[Participant],
                                played: Set[FrozenSet[str]]) -> Pairing:
    # Allowing every pair to be a rematch always succeeds
    rematches = 1
    pairs = _pair(pool, played, rematches)
    while pairs is None:
        rematches += 1
        pairs = _pair(pool, played, rematches)
    return pairs


def _choose_bye(ranked: List[Participant], bracket: Bracket) -> Participant:
    had_bye = {n.winner for n in bracket.nodes
               if n.branch == Branch.SWISS and n.is_bye and n.winner is not None}
    for participant in reversed(ranked):
        if participant not in had_bye:
            return participant
    return ranked[-1]


def pair_next_round(bracket: Bracket) -> List[GameNode]:
    """
    Pair and add the next Swiss round.

    Every game of the current round must be completed first. Rematches are
    avoided; when that is impossible the pairing with the fewest rematches is
    used, but only if the bracket's ``allow_rematch_if_unavoidable`` option
    is set.
    """
    config = bracket.config
    if config.match_type != MatchType.SWISS:
        raise UnsupportedTypeError(f"{config.match_type.value} brackets are not paired by round")

    current = bracket.latest_round(Branch.SWISS)
    current_nodes = bracket.round_nodes(current, Branch.SWISS)
    completed = sum(1 for n in current_nodes if n.is_completed)
    if completed < len(current_nodes):
        raise RoundIncompleteError(
            f"Round {current} has {completed} of {len(current_nodes)} games completed")
    total_rounds = config.swiss_rounds
    if total_rounds is None:
        total_rounds = default_swiss_rounds(len(bracket.participants))
    if current >= total_rounds:
        raise BracketCompleteError(f"All {total_rounds} Swiss rounds have been paired")

    ranked = [row.participant for row in bracket.standings()]
    bye = None
    if len(ranked) % 2:
        bye = _choose_bye(ranked, bracket)
        ranked = [p for p in ranked if p != bye]

    played = played_pairs(bracket)
    pairs = _pair(ranked, played)
    if pairs is None:
        if not config.allow_rematch_if_unavoidable:
            raise PairingError(f"No pairing for round {current + 1} avoids a rematch")
        pairs = _pair_with_fewest_rematches(ranked, played)
        logger.debug("Round %d needs rematches: %s", current + 1,
                     [f"{a.name}-{b.name}" for a, b in pairs if frozenset((a.id, b.id)) in played])

    nodes = swiss_round_nodes(current + 1, pairs, bye, len(bracket.participants))
    bracket.add_nodes(nodes)
    return nodes
