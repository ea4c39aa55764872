"""
Seeding: ordering accepted participants into initial bracket slots.
"""
import math
import random
from typing import List, Optional, Sequence, Union

from .errors import ConfigError, InsufficientParticipantsError
from .models import MatchType, Participant, SeedingStrategy


def get_round_name(teams_in_round: int) -> str:
    """Get the name of an elimination round based on number of teams."""
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_teams <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_teams))


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_teams) - num_teams


def generate_bracket_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.
    This ensures that if all higher seeds win, they meet in the proper rounds.

    For 8 teams: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    Winners: 1v4 side, 2v3 side
    Final: 1v2 (if chalk)
    """
    if bracket_size == 1:
        return [1]
    if bracket_size == 2:
        return [1, 2]

    half_size = bracket_size // 2
    upper_half = generate_bracket_order(half_size)

    # Pair each upper seed with its complement
    result = []
    for seed in upper_half:
        result.extend([seed, bracket_size + 1 - seed])

    return result


def _order_by_seed(participants: Sequence[Participant]) -> List[Participant]:
    """Seeded participants by seed number, then unseeded ones in registration order."""
    seeds = [p.seed for p in participants if p.seed is not None]
    if len(seeds) != len(set(seeds)):
        raise ConfigError("Duplicate seed numbers")
    seeded = sorted((p for p in participants if p.seed is not None), key=lambda p: p.seed)
    unseeded = [p for p in participants if p.seed is None]
    return seeded + unseeded


def _with_trailing_byes(ordered: List[Participant]) -> List[Optional[Participant]]:
    """
    Fill pairs in order, giving the byes to the last participants.

    With 5 teams in an 8 bracket: [A, B, C, None, D, None, E, None]
    Full pairs come first and no pair is ever empty on both sides.
    """
    num_byes = calculate_byes(len(ordered))
    full = len(ordered) - num_byes
    slots: List[Optional[Participant]] = list(ordered[:full])
    for participant in ordered[full:]:
        slots.extend([participant, None])
    return slots


def seed_participants(participants: Sequence[Participant],
                      strategy=SeedingStrategy.REGISTRATION,
                      match_type=MatchType.SINGLE_ELIMINATION,
                      rng: Union[random.Random, int, None] = None) -> List[Optional[Participant]]:
    """
    Order participants into initial slots.

    Elimination types get a power-of-two slot list with ``None`` for byes;
    round-robin, league and Swiss get one slot per participant.

    ``rng`` is only used by the random strategy and may be a ``random.Random``
    or an int seed.
    """
    strategy = SeedingStrategy.parse(strategy)
    match_type = MatchType.parse(match_type)

    if len(participants) < 2:
        raise InsufficientParticipantsError(
            f"At least 2 participants are required, got {len(participants)}")
    if len({p.id for p in participants}) != len(participants):
        raise ConfigError("Duplicate participant ids")

    if strategy == SeedingStrategy.RANDOM:
        if not isinstance(rng, random.Random):
            rng = random.Random(rng)
        ordered = list(participants)
        rng.shuffle(ordered)
    elif strategy == SeedingStrategy.MANUAL:
        ordered = _order_by_seed(participants)
    else:
        ordered = list(participants)

    if not match_type.is_elimination:
        return ordered

    if strategy == SeedingStrategy.MANUAL:
        bracket_size = calculate_bracket_size(len(ordered))
        # Seed rank n sits where the standard order puts n; ranks past the
        # field are byes, which therefore face the top seeds.
        return [ordered[rank - 1] if rank <= len(ordered) else None
                for rank in generate_bracket_order(bracket_size)]

    return _with_trailing_byes(ordered)
