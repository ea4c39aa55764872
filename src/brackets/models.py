"""
Data model for brackets: participants, configuration, game nodes and standings rows.

Everything here converts to and from plain dicts so the service can store
brackets as YAML.
"""
import math
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import ConfigError, UnsupportedTypeError


class MatchType(str, Enum):
    SINGLE_ELIMINATION = 'single_elimination'
    DOUBLE_ELIMINATION = 'double_elimination'
    ROUND_ROBIN = 'round_robin'
    SWISS = 'swiss'
    LEAGUE = 'league'

    @property
    def is_elimination(self) -> bool:
        return self in (MatchType.SINGLE_ELIMINATION, MatchType.DOUBLE_ELIMINATION)

    @classmethod
    def parse(cls, value) -> 'MatchType':
        """Accept a MatchType or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedTypeError(f"Unsupported match type: {value!r}")


class SeedingStrategy(str, Enum):
    REGISTRATION = 'registration'
    RANDOM = 'random'
    MANUAL = 'manual'

    @classmethod
    def parse(cls, value) -> 'SeedingStrategy':
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ConfigError(f"Unknown seeding strategy: {value!r}")


class Branch(str, Enum):
    MAIN = 'main'
    WINNERS = 'winners'
    LOSERS = 'losers'
    FINAL = 'final'
    ROUND_ROBIN = 'round_robin'
    SWISS = 'swiss'


class GameStatus(str, Enum):
    SCHEDULED = 'scheduled'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


TIE_BREAKS = ('score_diff', 'score_for', 'wins', 'head_to_head', 'name')
DEFAULT_TIE_BREAK_ORDER = ('score_diff', 'head_to_head', 'name')


def default_swiss_rounds(participant_count: int) -> int:
    """Rounds needed to separate a single unbeaten participant: ceil(log2(n))."""
    if participant_count < 2:
        return 1
    return math.ceil(math.log2(participant_count))


class Participant:
    """An accepted entrant (team or player). Immutable once created."""

    __slots__ = ('id', 'name', 'seed')

    def __init__(self, id, name, seed=None):
        object.__setattr__(self, 'id', str(id))
        object.__setattr__(self, 'name', name)
        object.__setattr__(self, 'seed', seed)

    def __setattr__(self, key, value):
        raise AttributeError("Participant is immutable")

    def __eq__(self, other):
        if not isinstance(other, Participant):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Participant(id={self.id}, name={self.name}, seed={self.seed})"

    def to_dict(self) -> Dict:
        data = {'id': self.id, 'name': self.name}
        if self.seed is not None:
            data['seed'] = self.seed
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'Participant':
        if 'name' not in data:
            raise ConfigError(f"Participant is missing a name: {data!r}")
        name = data['name']
        if not isinstance(name, str) or not name.strip():
            raise ConfigError(f"Participant name must be a non-empty string: {name!r}")
        seed = data.get('seed')
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
            raise ConfigError(f"Seed for {name} must be an integer, got {seed!r}")
        return cls(data.get('id', name), name, seed)


class BracketConfig:
    """Read-only configuration for one bracket."""

    def __init__(self, match_type, participant_count: int,
                 tie_break_order=DEFAULT_TIE_BREAK_ORDER,
                 seeding=SeedingStrategy.REGISTRATION,
                 points_for_win: float = 3, points_for_draw: float = 1,
                 points_for_loss: float = 0, legs: int = 1,
                 swiss_rounds: Optional[int] = None,
                 allow_rematch_if_unavoidable: bool = True,
                 bracket_reset: bool = False):
        self.match_type = MatchType.parse(match_type)
        self.participant_count = participant_count
        self.tie_break_order = tuple(tie_break_order)
        self.seeding = SeedingStrategy.parse(seeding)
        self.points_for_win = points_for_win
        self.points_for_draw = points_for_draw
        self.points_for_loss = points_for_loss
        self.legs = legs
        self.allow_rematch_if_unavoidable = allow_rematch_if_unavoidable
        self.bracket_reset = bracket_reset

        unknown = [t for t in self.tie_break_order if t not in TIE_BREAKS]
        if unknown:
            raise ConfigError(f"Unknown tie-break criteria: {', '.join(unknown)}")
        if legs < 1:
            raise ConfigError("legs must be at least 1")
        if bracket_reset and self.match_type != MatchType.DOUBLE_ELIMINATION:
            raise ConfigError("bracket_reset only applies to double elimination")

        if swiss_rounds is None and participant_count >= 2:
            swiss_rounds = default_swiss_rounds(participant_count)
        if swiss_rounds is not None and swiss_rounds < 1:
            raise ConfigError("swiss_rounds must be at least 1")
        self.swiss_rounds = swiss_rounds

    def __repr__(self):
        return (f"BracketConfig(match_type={self.match_type.value}, "
                f"participant_count={self.participant_count})")

    def to_dict(self) -> Dict:
        return {
            'match_type': self.match_type.value,
            'participant_count': self.participant_count,
            'tie_break_order': list(self.tie_break_order),
            'seeding': self.seeding.value,
            'points_for_win': self.points_for_win,
            'points_for_draw': self.points_for_draw,
            'points_for_loss': self.points_for_loss,
            'legs': self.legs,
            'swiss_rounds': self.swiss_rounds,
            'allow_rematch_if_unavoidable': self.allow_rematch_if_unavoidable,
            'bracket_reset': self.bracket_reset,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'BracketConfig':
        if 'match_type' not in data:
            raise ConfigError("Bracket config is missing match_type")
        options = dict(data)
        match_type = options.pop('match_type')
        participant_count = options.pop('participant_count', 0)
        return cls(match_type, participant_count, **options)


Slot = Tuple[str, int]


class GameNode:
    """One scheduled or completed game and the slots its result feeds into."""

    def __init__(self, code: str, round: int, position: int, branch: Branch,
                 participants=None, byes=None, winner_to: Optional[Slot] = None,
                 loser_to: Optional[Slot] = None, game_number: int = 0):
        if round < 1:
            raise ValueError(f"Round must be >= 1, got {round}")
        self.code = code
        self.round = round
        self.position = position
        self.branch = Branch(branch)
        self.participants: List[Optional[Participant]] = list(participants or [None, None])
        self.byes: List[bool] = list(byes or [False, False])
        self.status = GameStatus.SCHEDULED
        self.scores: List[Optional[float]] = [None, None]
        self.winner: Optional[Participant] = None
        self.loser: Optional[Participant] = None
        self.is_bye = False
        self.is_draw = False
        self.winner_to = winner_to
        self.loser_to = loser_to
        self.game_number = game_number

    def __repr__(self):
        names = [p.name if p else ('BYE' if bye else 'TBD')
                 for p, bye in zip(self.participants, self.byes)]
        return f"GameNode({self.code}: {names[0]} vs {names[1]}, {self.status.value})"

    @property
    def is_completed(self) -> bool:
        return self.status == GameStatus.COMPLETED

    @property
    def is_ready(self) -> bool:
        """Both slots hold a participant."""
        return all(p is not None for p in self.participants)

    @property
    def is_decided(self) -> bool:
        """Every slot is either populated or a permanent bye."""
        return all(p is not None or bye for p, bye in zip(self.participants, self.byes))

    def involves(self, participant: Participant) -> bool:
        return participant in self.participants

    def opponent_of(self, participant: Participant) -> Optional[Participant]:
        if self.participants[0] == participant:
            return self.participants[1]
        if self.participants[1] == participant:
            return self.participants[0]
        return None

    def copy(self) -> 'GameNode':
        clone = GameNode.__new__(GameNode)
        clone.__dict__.update(self.__dict__)
        clone.participants = list(self.participants)
        clone.byes = list(self.byes)
        clone.scores = list(self.scores)
        return clone

    def to_dict(self) -> Dict:
        return {
            'code': self.code,
            'round': self.round,
            'position': self.position,
            'branch': self.branch.value,
            'game_number': self.game_number,
            'participants': [p.to_dict() if p else None for p in self.participants],
            'byes': list(self.byes),
            'status': self.status.value,
            'scores': list(self.scores),
            'winner': self.winner.id if self.winner else None,
            'loser': self.loser.id if self.loser else None,
            'is_bye': self.is_bye,
            'is_draw': self.is_draw,
            'winner_to': list(self.winner_to) if self.winner_to else None,
            'loser_to': list(self.loser_to) if self.loser_to else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'GameNode':
        participants = [Participant.from_dict(p) if p else None for p in data['participants']]
        node = cls(
            data['code'], data['round'], data['position'], data['branch'],
            participants=participants,
            byes=data.get('byes'),
            winner_to=tuple(data['winner_to']) if data.get('winner_to') else None,
            loser_to=tuple(data['loser_to']) if data.get('loser_to') else None,
            game_number=data.get('game_number', 0),
        )
        node.status = GameStatus(data.get('status', 'scheduled'))
        node.scores = list(data.get('scores') or [None, None])
        by_id = {p.id: p for p in participants if p}
        node.winner = by_id.get(data.get('winner'))
        node.loser = by_id.get(data.get('loser'))
        node.is_bye = data.get('is_bye', False)
        node.is_draw = data.get('is_draw', False)
        return node


class StandingsRow:
    """Aggregated results for one participant. Derived, never stored."""

    def __init__(self, participant: Participant):
        self.participant = participant
        self.played = 0
        self.wins = 0
        self.draws = 0
        self.losses = 0
        self.byes = 0
        self.score_for = 0
        self.score_against = 0
        self.points = 0
        self.rank = 0

    @property
    def score_diff(self):
        return self.score_for - self.score_against

    def __repr__(self):
        return (f"StandingsRow({self.rank}. {self.participant.name}: {self.points} pts, "
                f"{self.wins}W {self.draws}D {self.losses}L, diff {self.score_diff})")

    def to_dict(self) -> Dict:
        return {
            'rank': self.rank,
            'participant': self.participant.to_dict(),
            'played': self.played,
            'wins': self.wins,
            'draws': self.draws,
            'losses': self.losses,
            'byes': self.byes,
            'score_for': self.score_for,
            'score_against': self.score_against,
            'score_diff': self.score_diff,
            'points': self.points,
        }
