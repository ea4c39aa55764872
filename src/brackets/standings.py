"""
Standings for round-robin, league and Swiss brackets.

Standings are always recomputed by replaying completed games; nothing here
is stored.
"""
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import ConfigError
from .models import (
    DEFAULT_TIE_BREAK_ORDER,
    TIE_BREAKS,
    Branch,
    GameNode,
    Participant,
    StandingsRow,
)

_TABLE_BRANCHES = (Branch.ROUND_ROBIN, Branch.SWISS)

_KEYED_TIE_BREAKS = {
    'score_diff': lambda row: -row.score_diff,
    'score_for': lambda row: -row.score_for,
    'wins': lambda row: -row.wins,
}


def head_to_head(nodes: Iterable[GameNode], first: Participant, second: Participant) -> int:
    """Games won by ``first`` minus games won by ``second`` against each other."""
    balance = 0
    for node in nodes:
        if not node.is_completed or node.is_bye or node.is_draw:
            continue
        if node.involves(first) and node.involves(second):
            balance += 1 if node.winner == first else -1
    return balance


def _split(rows: List[StandingsRow], key) -> List[List[StandingsRow]]:
    """Sort rows by ``key`` and group rows with equal keys."""
    groups: List[List[StandingsRow]] = []
    last = object()
    for row in sorted(rows, key=key):
        value = key(row)
        if groups and value == last:
            groups[-1].append(row)
        else:
            groups.append([row])
        last = value
    return groups


def _break_ties(rows: List[StandingsRow], criteria: Sequence[str],
                games: List[GameNode]) -> List[StandingsRow]:
    if len(rows) < 2 or not criteria:
        return rows

    criterion, rest = criteria[0], criteria[1:]
    if criterion == 'name':
        return sorted(rows, key=lambda row: (row.participant.name, row.participant.id))

    if criterion == 'head_to_head':
        # Only meaningful between exactly two tied participants who met
        if len(rows) != 2:
            return _break_ties(rows, rest, games)
        balance = head_to_head(games, rows[0].participant, rows[1].participant)
        if balance > 0:
            return rows
        if balance < 0:
            return [rows[1], rows[0]]
        return _break_ties(rows, rest, games)

    ordered = []
    for group in _split(rows, _KEYED_TIE_BREAKS[criterion]):
        ordered.extend(_break_ties(group, rest, games))
    return ordered


def compute_standings(nodes: Iterable[GameNode],
                      tie_break_order: Sequence[str] = DEFAULT_TIE_BREAK_ORDER,
                      participants: Optional[Sequence[Participant]] = None,
                      points_for_win: float = 3, points_for_draw: float = 1,
                      points_for_loss: float = 0) -> List[StandingsRow]:
    """
    Calculate the ranked table from completed round-robin and Swiss games.

    Ranking: points, then ``tie_break_order`` (default score differential,
    head-to-head, name). Name is always applied last so the order is
    deterministic. Participants without a completed game are listed with
    zeros.
    """
    unknown = [t for t in tie_break_order if t not in TIE_BREAKS]
    if unknown:
        raise ConfigError(f"Unknown tie-break criteria: {', '.join(unknown)}")

    games = [n for n in nodes if n.branch in _TABLE_BRANCHES]

    rows: Dict[Participant, StandingsRow] = {}
    for participant in participants or []:
        rows[participant] = StandingsRow(participant)
    for node in games:
        for participant in node.participants:
            if participant is not None and participant not in rows:
                rows[participant] = StandingsRow(participant)

    for node in games:
        if not node.is_completed:
            continue

        if node.is_bye:
            if node.winner is not None:
                row = rows[node.winner]
                row.byes += 1
                row.wins += 1
                row.points += points_for_win
            continue

        first, second = (rows[p] for p in node.participants)
        score1, score2 = node.scores
        for row, scored, conceded in ((first, score1, score2), (second, score2, score1)):
            row.played += 1
            row.score_for += scored or 0
            row.score_against += conceded or 0

        if node.is_draw:
            for row in (first, second):
                row.draws += 1
                row.points += points_for_draw
        else:
            winner = rows[node.winner]
            loser = second if winner is first else first
            winner.wins += 1
            winner.points += points_for_win
            loser.losses += 1
            loser.points += points_for_loss

    criteria = list(tie_break_order)
    if 'name' not in criteria:
        criteria.append('name')

    ordered = []
    for group in _split(list(rows.values()), lambda row: -row.points):
        ordered.extend(_break_ties(group, criteria, games))

    for rank, row in enumerate(ordered, start=1):
        row.rank = rank
    return ordered
