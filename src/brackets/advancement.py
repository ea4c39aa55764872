"""
Result recording and advancement.

A ``Bracket`` owns the game nodes of one tournament. Recording a result
completes the game and writes the winner (and, in double elimination, the
loser) into the downstream slots. Games that end up facing a bye settle on
their own and keep propagating.

All changes of one operation are staged on copies and committed together, so
a failure part-way leaves the bracket exactly as it was.
"""
import logging
import random
from typing import Dict, Iterable, List, Optional, Union

from .errors import (
    AlreadyCompletedError,
    AmbiguousResultError,
    ConfigError,
    GameNotFoundError,
    InvalidWinnerError,
    PropagationError,
    SlotNotReadyError,
    UnsupportedTypeError,
)
from .models import (
    Branch,
    BracketConfig,
    GameNode,
    GameStatus,
    MatchType,
    Participant,
    StandingsRow,
)

logger = logging.getLogger(__name__)

GRAND_FINAL = 'GF'
BRACKET_RESET = 'GF2'


class ResultUpdate:
    """The completed game plus every other game the result touched."""

    def __init__(self, node: GameNode, propagated: List[GameNode]):
        self.node = node
        self.propagated = propagated

    def __repr__(self):
        return f"ResultUpdate(node={self.node.code}, propagated={[n.code for n in self.propagated]})"

    def to_dict(self) -> Dict:
        return {
            'node': self.node.to_dict(),
            'propagated': [n.to_dict() for n in self.propagated],
        }


class _Staging:
    """Copy-on-write view over a node table."""

    def __init__(self, nodes: Dict[str, GameNode]):
        self.nodes = nodes
        self.changed: Dict[str, GameNode] = {}

    def get(self, code: str) -> GameNode:
        if code not in self.changed:
            if code not in self.nodes:
                raise PropagationError(f"Downstream game {code} does not exist")
            self.changed[code] = self.nodes[code].copy()
        return self.changed[code]

    def commit(self):
        self.nodes.update(self.changed)


def _place(staging: _Staging, target, participant: Optional[Participant]) -> GameNode:
    """Write a participant (or a bye, for ``None``) into a downstream slot."""
    code, slot = target
    node = staging.get(code)
    if node.participants[slot] is not None or node.byes[slot]:
        raise PropagationError(f"Slot {slot} of {code} is already filled")
    if node.status != GameStatus.SCHEDULED:
        raise PropagationError(f"Downstream game {code} is already {node.status.value}")
    if participant is None:
        node.byes[slot] = True
    else:
        node.participants[slot] = participant
    return node


def _advance(staging: _Staging, node: GameNode) -> None:
    """Propagate a completed node's winner and loser downstream."""
    if node.code == GRAND_FINAL and node.winner_to:
        _settle_grand_final(staging, node)
        return

    if node.winner_to:
        _resolve_byes(staging, _place(staging, node.winner_to, node.winner))
    if node.loser_to:
        _resolve_byes(staging, _place(staging, node.loser_to, node.loser))


def _settle_grand_final(staging: _Staging, node: GameNode) -> None:
    """Schedule the bracket reset only when the losers-bracket champion won."""
    reset = staging.get(node.winner_to[0])
    if node.is_bye or node.winner == node.participants[0]:
        reset.status = GameStatus.CANCELLED
        return
    _place(staging, node.winner_to, node.participants[0])
    _place(staging, node.loser_to, node.participants[1])


def _resolve_byes(staging: _Staging, node: GameNode) -> None:
    """Complete a node whose slots are settled but include a bye."""
    if node.status != GameStatus.SCHEDULED or not node.is_decided or node.is_ready:
        return
    present = [p for p in node.participants if p is not None]
    node.status = GameStatus.COMPLETED
    node.is_bye = True
    node.winner = present[0] if present else None
    node.loser = None
    logger.debug("Game %s settled by bye, winner %s", node.code,
                 node.winner.name if node.winner else None)
    _advance(staging, node)


def resolve_initial_byes(nodes: Dict[str, GameNode], codes: Iterable[str]) -> None:
    """Settle bye games among ``codes`` and propagate, committing into ``nodes``."""
    staging = _Staging(nodes)
    for code in codes:
        _resolve_byes(staging, staging.get(code))
    staging.commit()


def _participant_ref(node: GameNode, ref) -> Participant:
    ref_id = ref.id if isinstance(ref, Participant) else str(ref)
    for participant in node.participants:
        if participant is not None and participant.id == ref_id:
            return participant
    raise InvalidWinnerError(f"{ref_id} is not playing in game {node.code}")


def _decide(node: GameNode, score1, score2, winner, allow_draw: bool):
    """Return (winner, loser, is_draw) for a finished game."""
    if winner is not None:
        chosen = _participant_ref(node, winner)
        return chosen, node.opponent_of(chosen), False

    if score1 is not None and score2 is not None:
        if score1 > score2:
            return node.participants[0], node.participants[1], False
        elif score2 > score1:
            return node.participants[1], node.participants[0], False
        elif allow_draw:
            return None, None, True

    raise AmbiguousResultError(
        f"Game {node.code} needs a winner: scores {score1}-{score2} do not decide it")


class Bracket:
    """The full set of game nodes for one tournament."""

    def __init__(self, config: BracketConfig, nodes: Iterable[GameNode],
                 participants: Optional[List[Participant]] = None):
        self.config = config
        self._nodes: Dict[str, GameNode] = {}
        for node in nodes:
            self._nodes[node.code] = node
        if participants is None:
            participants = []
            for node in self._nodes.values():
                for p in node.participants:
                    if p is not None and p not in participants:
                        participants.append(p)
        self.participants = list(participants)

    @classmethod
    def create(cls, config: BracketConfig, participants: List[Participant],
               rng: Union[random.Random, int, None] = None) -> 'Bracket':
        """Seed ``participants`` with the configured strategy and build the bracket."""
        from .builder import build_bracket
        from .seeding import seed_participants

        if config.participant_count != len(participants):
            raise ConfigError(
                f"Config is for {config.participant_count} participants, got {len(participants)}")
        slots = seed_participants(participants, config.seeding, config.match_type, rng)
        return cls(config, build_bracket(config, slots), participants)

    def __repr__(self):
        return f"Bracket({self.config.match_type.value}, {len(self._nodes)} games)"

    def __len__(self):
        return len(self._nodes)

    @property
    def nodes(self) -> List[GameNode]:
        return list(self._nodes.values())

    def node(self, code: str) -> GameNode:
        try:
            return self._nodes[code]
        except KeyError:
            raise GameNotFoundError(f"No game {code} in this bracket")

    def round_nodes(self, round: int, branch=None) -> List[GameNode]:
        return [n for n in self._nodes.values()
                if n.round == round and (branch is None or n.branch == Branch(branch))]

    def latest_round(self, branch=None) -> int:
        rounds = [n.round for n in self._nodes.values()
                  if branch is None or n.branch == Branch(branch)]
        return max(rounds) if rounds else 0

    def add_nodes(self, nodes: Iterable[GameNode]) -> None:
        for node in nodes:
            if node.code in self._nodes:
                raise PropagationError(f"Game {node.code} already exists")
            self._nodes[node.code] = node

    @property
    def is_complete(self) -> bool:
        return all(n.status in (GameStatus.COMPLETED, GameStatus.CANCELLED)
                   for n in self._nodes.values())

    def start_game(self, code: str) -> GameNode:
        """Move a scheduled game to in progress."""
        node = self.node(code)
        if node.status != GameStatus.SCHEDULED:
            raise AlreadyCompletedError(f"Game {code} is already {node.status.value}")
        if not node.is_ready:
            raise SlotNotReadyError(f"Game {code} is still waiting for a participant")
        started = node.copy()
        started.status = GameStatus.IN_PROGRESS
        self._nodes[code] = started
        return started

    def record_result(self, code: str, score1, score2, winner=None) -> ResultUpdate:
        """
        Complete a game and propagate its outcome.

        ``winner`` may be a Participant or a participant id. Without it the
        scores decide; a tie is a draw in round-robin, league and Swiss, and
        an error in elimination brackets.
        """
        current = self.node(code)
        if current.status not in (GameStatus.SCHEDULED, GameStatus.IN_PROGRESS):
            raise AlreadyCompletedError(f"Game {code} is already {current.status.value}")
        if not current.is_ready:
            raise SlotNotReadyError(f"Game {code} is still waiting for a participant")

        allow_draw = not self.config.match_type.is_elimination
        won, lost, is_draw = _decide(current, score1, score2, winner, allow_draw)

        staging = _Staging(self._nodes)
        node = staging.get(code)
        node.scores = [score1, score2]
        node.winner = won
        node.loser = lost
        node.is_draw = is_draw
        node.status = GameStatus.COMPLETED
        _advance(staging, node)
        staging.commit()

        propagated = [n for c, n in staging.changed.items() if c != code]
        return ResultUpdate(node, propagated)

    def champion(self) -> Optional[Participant]:
        """Winner of the deciding game, or None while it is undecided."""
        match_type = self.config.match_type
        if not match_type.is_elimination:
            raise UnsupportedTypeError(f"{match_type.value} brackets have standings, not a champion")

        if match_type == MatchType.DOUBLE_ELIMINATION:
            reset = self._nodes.get(BRACKET_RESET)
            if reset is not None and reset.status != GameStatus.CANCELLED:
                return reset.winner if reset.is_completed else None
            final = self._nodes.get(GRAND_FINAL)
        else:
            final_round = self.latest_round(Branch.MAIN)
            final = self.round_nodes(final_round, Branch.MAIN)[0]

        if final is None or not final.is_completed:
            return None
        return final.winner

    def standings(self) -> List[StandingsRow]:
        from .standings import compute_standings

        if self.config.match_type.is_elimination:
            raise UnsupportedTypeError(
                f"{self.config.match_type.value} brackets have no standings table")
        return compute_standings(
            self.nodes, self.config.tie_break_order,
            participants=self.participants,
            points_for_win=self.config.points_for_win,
            points_for_draw=self.config.points_for_draw,
            points_for_loss=self.config.points_for_loss,
        )

    def to_dict(self) -> Dict:
        return {
            'config': self.config.to_dict(),
            'participants': [p.to_dict() for p in self.participants],
            'nodes': [n.to_dict() for n in self._nodes.values()],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Bracket':
        config = BracketConfig.from_dict(data['config'])
        participants = [Participant.from_dict(p) for p in data.get('participants', [])]
        nodes = [GameNode.from_dict(n) for n in data.get('nodes', [])]
        return cls(config, nodes, participants or None)


def record_result(bracket: Bracket, code: str, score1, score2, winner=None) -> ResultUpdate:
    """Module-level form of ``Bracket.record_result``."""
    return bracket.record_result(code, score1, score2, winner)
