"""
Bracket construction for every supported match type.

Game codes follow the bracket display convention:
- Single elimination: R1-M1, R2-M1, ...
- Double elimination: W1-M1 (winners), L1-M1 (losers), GF, GF2 (bracket reset)
- Round robin / league: RR1-M1 (RR2-M1 for the return leg)
- Swiss: S1-M1, S2-M1, ...

``game_number`` is computed from round and position so a bracket never
depends on a running counter.
"""
import math
from typing import Dict, List, Optional, Sequence, Tuple

from .advancement import BRACKET_RESET, GRAND_FINAL, resolve_initial_byes
from .errors import InvalidParticipantCountError
from .models import Branch, BracketConfig, GameNode, MatchType, Participant

Slots = Sequence[Optional[Participant]]


def game_code(prefix: str, round_num: int, position: int) -> str:
    return f"{prefix}{round_num}-M{position + 1}"


def calculate_losers_bracket_rounds(bracket_size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For N teams in winners bracket (power of 2):
    - Winners bracket has log2(N) rounds
    - Losers bracket has 2 * (log2(N) - 1) rounds

    Pattern: minor, major, minor, major, ... ending with a major round
    """
    if bracket_size < 2:
        return 0
    winners_rounds = int(math.log2(bracket_size))
    return 2 * (winners_rounds - 1)


def losers_round_size(bracket_size: int, losers_round: int) -> int:
    """Games in a losers round; each minor/major pair (stage) shares a size."""
    stage = (losers_round + 1) // 2
    return bracket_size >> (stage + 1)


def _games_before_round(bracket_size: int, round_num: int) -> int:
    return bracket_size - (bracket_size >> (round_num - 1))


def _check_elimination_slots(slots: Slots) -> int:
    size = len(slots)
    if size & (size - 1):
        raise InvalidParticipantCountError(
            f"Elimination brackets need a power-of-two slot count, got {size}")
    if sum(1 for s in slots if s is not None) < 2:
        raise InvalidParticipantCountError("Elimination brackets need at least 2 participants")
    return int(math.log2(size))


def _build_tree(slots: Slots, branch: Branch, prefix: str) -> List[List[GameNode]]:
    """Winners-side tree shared by single and double elimination."""
    bracket_size = len(slots)
    total_rounds = int(math.log2(bracket_size))
    rounds = []

    for round_num in range(1, total_rounds + 1):
        round_nodes = []
        for k in range(bracket_size >> round_num):
            if round_num < total_rounds:
                winner_to = (game_code(prefix, round_num + 1, k // 2), k % 2)
            else:
                winner_to = None

            node = GameNode(
                game_code(prefix, round_num, k), round_num, k, branch,
                winner_to=winner_to,
                game_number=_games_before_round(bracket_size, round_num) + k + 1,
            )
            if round_num == 1:
                node.participants = [slots[2 * k], slots[2 * k + 1]]
                node.byes = [slots[2 * k] is None, slots[2 * k + 1] is None]
            round_nodes.append(node)
        rounds.append(round_nodes)

    return rounds


def _finish(rounds: List[List[GameNode]]) -> List[GameNode]:
    nodes: Dict[str, GameNode] = {}
    for round_nodes in rounds:
        for node in round_nodes:
            nodes[node.code] = node
    resolve_initial_byes(nodes, [n.code for n in rounds[0]])
    return list(nodes.values())


def build_single_elimination(config: BracketConfig, slots: Slots) -> List[GameNode]:
    _check_elimination_slots(slots)
    return _finish(_build_tree(slots, Branch.MAIN, 'R'))


def build_double_elimination(config: BracketConfig, slots: Slots) -> List[GameNode]:
    """
    Winners bracket, losers bracket and grand final.

    The losers bracket alternates between:
    - Minor rounds (L1, L3, ...): losers bracket teams pair off; L1 takes the
      losers of winners round 1
    - Major rounds (L2, L4, ...): losers of a winners round drop in against
      the previous losers round winners

    For 8 teams:
    - L1: 4 W1 losers -> 2 games
    - L2: 2 W2 losers vs 2 L1 winners -> 2 games
    - L3: 2 L2 winners -> 1 game
    - L4: W3 loser vs L3 winner -> 1 game (losers champion)
    """
    total_winners_rounds = _check_elimination_slots(slots)
    bracket_size = len(slots)
    total_losers_rounds = calculate_losers_bracket_rounds(bracket_size)

    winners = _build_tree(slots, Branch.WINNERS, 'W')
    final_round = max(total_winners_rounds, total_losers_rounds) + 1
    winners_games = bracket_size - 1

    losers = []
    offset = winners_games
    for losers_round in range(1, total_losers_rounds + 1):
        size = losers_round_size(bracket_size, losers_round)
        round_nodes = []
        for k in range(size):
            if losers_round == total_losers_rounds:
                winner_to = (GRAND_FINAL, 1)
            elif losers_round % 2 == 1:
                winner_to = (game_code('L', losers_round + 1, k), 1)
            else:
                winner_to = (game_code('L', losers_round + 1, k // 2), k % 2)
            round_nodes.append(GameNode(
                game_code('L', losers_round, k), losers_round, k, Branch.LOSERS,
                winner_to=winner_to, game_number=offset + k + 1,
            ))
        offset += size
        losers.append(round_nodes)

    # Losers of each winners round drop into the losers bracket
    for round_num, round_nodes in enumerate(winners, start=1):
        for node in round_nodes:
            if total_losers_rounds == 0:
                node.loser_to = (GRAND_FINAL, 1)
            elif round_num == 1:
                node.loser_to = (game_code('L', 1, node.position // 2), node.position % 2)
            else:
                node.loser_to = (game_code('L', 2 * (round_num - 1), node.position), 0)
    winners[-1][0].winner_to = (GRAND_FINAL, 0)

    grand_final = GameNode(GRAND_FINAL, final_round, 0, Branch.FINAL, game_number=offset + 1)
    finals = [grand_final]
    if config.bracket_reset:
        grand_final.winner_to = (BRACKET_RESET, 0)
        grand_final.loser_to = (BRACKET_RESET, 1)
        finals.append(GameNode(BRACKET_RESET, final_round + 1, 0, Branch.FINAL,
                               game_number=offset + 2))

    return _finish(winners + losers + [finals])


def _check_round_robin_slots(slots: Slots) -> None:
    if len(slots) < 2:
        raise InvalidParticipantCountError(f"At least 2 participants are required, got {len(slots)}")
    if any(s is None for s in slots):
        raise InvalidParticipantCountError("Round-robin formats do not take byes")


def build_round_robin(config: BracketConfig, slots: Slots) -> List[GameNode]:
    """Every participant meets every other once per leg; leg 2 swaps sides."""
    _check_round_robin_slots(slots)
    pairs: List[Tuple[Participant, Participant]] = []
    for i in range(len(slots)):
        for j in range(i + 1, len(slots)):
            pairs.append((slots[i], slots[j]))

    nodes = []
    for leg in range(1, config.legs + 1):
        for k, (home, away) in enumerate(pairs):
            if leg % 2 == 0:
                home, away = away, home
            nodes.append(GameNode(
                game_code('RR', leg, k), leg, k, Branch.ROUND_ROBIN,
                participants=[home, away],
                game_number=(leg - 1) * len(pairs) + k + 1,
            ))
    return nodes


def swiss_round_nodes(round_num: int, pairs: Sequence[Tuple[Participant, Participant]],
                      bye: Optional[Participant], field_size: int) -> List[GameNode]:
    """Nodes for one Swiss round; the bye game comes last and is settled at once."""
    games_per_round = (field_size + 1) // 2
    offset = (round_num - 1) * games_per_round
    nodes = {}
    for k, (first, second) in enumerate(pairs):
        node = GameNode(game_code('S', round_num, k), round_num, k, Branch.SWISS,
                        participants=[first, second], game_number=offset + k + 1)
        nodes[node.code] = node
    if bye is not None:
        k = len(pairs)
        node = GameNode(game_code('S', round_num, k), round_num, k, Branch.SWISS,
                        participants=[bye, None], byes=[False, True],
                        game_number=offset + k + 1)
        nodes[node.code] = node
        resolve_initial_byes(nodes, [node.code])
    return list(nodes.values())


def build_swiss(config: BracketConfig, slots: Slots) -> List[GameNode]:
    """Only round 1 is built; later rounds come from ``swiss.pair_next_round``."""
    _check_round_robin_slots(slots)
    paired = len(slots) - len(slots) % 2
    pairs = [(slots[i], slots[i + 1]) for i in range(0, paired, 2)]
    bye = slots[-1] if len(slots) % 2 else None
    return swiss_round_nodes(1, pairs, bye, len(slots))


_BUILDERS = {
    MatchType.SINGLE_ELIMINATION: build_single_elimination,
    MatchType.DOUBLE_ELIMINATION: build_double_elimination,
    MatchType.ROUND_ROBIN: build_round_robin,
    MatchType.LEAGUE: build_round_robin,
    MatchType.SWISS: build_swiss,
}


def build_bracket(config: BracketConfig, slots: Slots) -> List[GameNode]:
    """Build the initial game nodes for ``config`` from seeded ``slots``."""
    match_type = MatchType.parse(config.match_type)
    if len(slots) < 2:
        raise InvalidParticipantCountError(f"At least 2 slots are required, got {len(slots)}")
    return _BUILDERS[match_type](config, slots)
