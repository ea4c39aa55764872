"""
Print a bracket built from a YAML participant file.

The file holds either a list of names or a list of {id, name, seed} entries:

    - Eagles
    - name: Hawks
      seed: 1

Usage:
    python src/generate_bracket.py participants.yaml --type double_elimination --seeding manual
"""
import argparse
import sys

import yaml

from brackets.advancement import Bracket
from brackets.errors import BracketError
from brackets.models import BracketConfig, Branch, MatchType, Participant, SeedingStrategy
from brackets.seeding import get_round_name


def load_participants(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or []
    participants = []
    for entry in data:
        if isinstance(entry, dict):
            participants.append(Participant.from_dict(entry))
        else:
            participants.append(Participant(str(entry), str(entry)))
    return participants


def _slot_label(node, index):
    participant = node.participants[index]
    if participant is not None:
        return participant.name
    return 'BYE' if node.byes[index] else 'TBD'


def round_title(bracket, branch, round_num):
    if branch == Branch.MAIN:
        games = len(bracket.round_nodes(round_num, branch))
        return get_round_name(games * 2)
    if branch == Branch.WINNERS:
        return f"Winners Round {round_num}"
    if branch == Branch.LOSERS:
        return f"Losers Round {round_num}"
    if branch == Branch.FINAL:
        return "Grand Final"
    if branch == Branch.ROUND_ROBIN:
        return f"Leg {round_num}"
    return f"Round {round_num}"


def format_bracket(bracket):
    """Render the bracket as text, grouped by branch and round."""
    lines = []
    seen = []
    for node in bracket.nodes:
        if (node.branch, node.round) not in seen:
            seen.append((node.branch, node.round))

    for branch, round_num in seen:
        if lines:
            lines.append('')
        lines.append(f"# {round_title(bracket, branch, round_num)}")
        for node in bracket.round_nodes(round_num, branch):
            line = f"{node.code}: {_slot_label(node, 0)} vs {_slot_label(node, 1)}"
            if node.is_bye and node.winner is not None:
                line += f" ({node.winner.name} advances)"
            lines.append(line)
    return '\n'.join(lines)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Generate a tournament bracket from a participant list.')
    parser.add_argument('participants', help='YAML file with the participant list')
    parser.add_argument('--type', dest='match_type', default=MatchType.SINGLE_ELIMINATION.value,
                        choices=[t.value for t in MatchType])
    parser.add_argument('--seeding', default=SeedingStrategy.REGISTRATION.value,
                        choices=[s.value for s in SeedingStrategy])
    parser.add_argument('--seed', type=int, default=None, help='Random seed for --seeding random')
    parser.add_argument('--legs', type=int, default=1, help='Round-robin legs')
    parser.add_argument('--bracket-reset', action='store_true',
                        help='Add a bracket reset game to double elimination')
    args = parser.parse_args(argv)

    try:
        participants = load_participants(args.participants)
        config = BracketConfig(args.match_type, len(participants), seeding=args.seeding,
                               legs=args.legs, bracket_reset=args.bracket_reset)
        bracket = Bracket.create(config, participants, rng=args.seed)
    except (OSError, yaml.YAMLError) as e:
        print(f"Error: Cannot read {args.participants}: {e}", file=sys.stderr)
        return 1
    except BracketError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(format_bracket(bracket))
    return 0


if __name__ == '__main__':
    sys.exit(main())
