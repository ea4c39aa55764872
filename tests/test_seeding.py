"""
Unit tests for seeding participants into bracket slots.
"""
import random

import pytest

from conftest import make_participants, numbered_participants
from brackets.errors import ConfigError, InsufficientParticipantsError
from brackets.models import MatchType, SeedingStrategy
from brackets.seeding import (
    calculate_bracket_size,
    calculate_byes,
    generate_bracket_order,
    get_round_name,
    seed_participants,
)


def names(slots):
    return [p.name if p else None for p in slots]


class TestBracketHelpers:
    """Tests for bracket helper functions."""

    def test_get_round_name(self):
        assert get_round_name(2) == "Final"
        assert get_round_name(4) == "Semifinal"
        assert get_round_name(8) == "Quarterfinal"
        assert get_round_name(16) == "Round of 16"

    def test_calculate_bracket_size_exact_power(self):
        assert calculate_bracket_size(8) == 8
        assert calculate_bracket_size(16) == 16
        assert calculate_bracket_size(2) == 2

    def test_calculate_bracket_size_not_power(self):
        assert calculate_bracket_size(3) == 4
        assert calculate_bracket_size(5) == 8
        assert calculate_bracket_size(9) == 16

    def test_calculate_bracket_size_zero(self):
        assert calculate_bracket_size(0) == 0

    def test_calculate_byes(self):
        assert calculate_byes(8) == 0
        assert calculate_byes(5) == 3
        assert calculate_byes(12) == 4


class TestBracketOrder:
    """Tests for standard bracket ordering."""

    def test_bracket_order_2_teams(self):
        assert generate_bracket_order(2) == [1, 2]

    def test_bracket_order_4_teams(self):
        # 1v4, 2v3 and winners meet in final
        assert generate_bracket_order(4) == [1, 4, 2, 3]

    def test_bracket_order_8_teams(self):
        assert generate_bracket_order(8) == [1, 8, 4, 5, 2, 7, 3, 6]

    def test_bracket_order_is_permutation(self):
        order = generate_bracket_order(32)
        assert sorted(order) == list(range(1, 33))


class TestRegistrationSeeding:
    """Registration order keeps input order and gives byes to the trailing pairs."""

    def test_power_of_two_unchanged(self, four_teams):
        slots = seed_participants(four_teams)
        assert names(slots) == ['A', 'B', 'C', 'D']

    def test_five_teams_byes_trail(self):
        slots = seed_participants(make_participants('A', 'B', 'C', 'D', 'E'))
        assert names(slots) == ['A', 'B', 'C', None, 'D', None, 'E', None]

    def test_six_teams(self):
        slots = seed_participants(make_participants('A', 'B', 'C', 'D', 'E', 'F'))
        assert names(slots) == ['A', 'B', 'C', 'D', 'E', None, 'F', None]

    def test_three_teams(self):
        slots = seed_participants(make_participants('A', 'B', 'C'))
        assert names(slots) == ['A', 'B', 'C', None]

    def test_no_pair_is_bye_against_bye(self):
        for count in range(2, 33):
            slots = seed_participants(numbered_participants(count))
            assert len(slots) == calculate_bracket_size(count)
            for i in range(0, len(slots), 2):
                assert slots[i] is not None or slots[i + 1] is not None

    def test_round_robin_has_no_byes(self):
        teams = make_participants('A', 'B', 'C', 'D', 'E')
        slots = seed_participants(teams, match_type=MatchType.ROUND_ROBIN)
        assert names(slots) == ['A', 'B', 'C', 'D', 'E']

    def test_swiss_and_league_length_equals_field(self):
        teams = numbered_participants(7)
        assert len(seed_participants(teams, match_type='swiss')) == 7
        assert len(seed_participants(teams, match_type='league')) == 7


class TestManualSeeding:
    """Manual seeding places seeds in standard order so top seeds get byes."""

    def test_top_seeds_face_byes(self):
        teams = make_participants('A', 'B', 'C', 'D', 'E', seeds=[5, 4, 3, 2, 1])
        slots = seed_participants(teams, SeedingStrategy.MANUAL)
        # Order [1, 8, 4, 5, 2, 7, 3, 6] with seeds 6-8 missing
        assert names(slots) == ['E', None, 'B', 'A', 'D', None, 'C', None]

    def test_unseeded_follow_seeded(self):
        teams = make_participants('A', 'B', 'C', 'D', seeds=[None, 2, None, 1])
        slots = seed_participants(teams, 'manual')
        # Ranking: D(1), B(2), A, C -> order [1, 4, 2, 3]
        assert names(slots) == ['D', 'C', 'B', 'A']

    def test_duplicate_seeds_rejected(self):
        teams = make_participants('A', 'B', 'C', seeds=[1, 1, 2])
        with pytest.raises(ConfigError):
            seed_participants(teams, 'manual')

    def test_manual_round_robin_sorted_by_seed(self):
        teams = make_participants('A', 'B', 'C', seeds=[3, 1, 2])
        slots = seed_participants(teams, 'manual', 'round_robin')
        assert names(slots) == ['B', 'C', 'A']


class TestRandomSeeding:
    """Random seeding is reproducible with an explicit source."""

    def test_same_seed_same_order(self):
        teams = numbered_participants(10)
        first = seed_participants(teams, 'random', rng=42)
        second = seed_participants(teams, 'random', rng=random.Random(42))
        assert names(first) == names(second)

    def test_random_keeps_everyone(self):
        teams = numbered_participants(6)
        slots = seed_participants(teams, 'random', rng=7)
        assert sorted(p.name for p in slots if p) == sorted(p.name for p in teams)
        assert slots.count(None) == 2

    def test_random_does_not_mutate_input(self):
        teams = numbered_participants(8)
        before = list(teams)
        seed_participants(teams, 'random', rng=1)
        assert teams == before


class TestSeedingErrors:

    def test_empty_field(self):
        with pytest.raises(InsufficientParticipantsError):
            seed_participants([])

    def test_single_participant(self):
        with pytest.raises(InsufficientParticipantsError):
            seed_participants(make_participants('A'))

    def test_duplicate_ids(self):
        teams = make_participants('A', 'A')
        with pytest.raises(ConfigError):
            seed_participants(teams)

    def test_unknown_strategy(self):
        with pytest.raises(ConfigError):
            seed_participants(make_participants('A', 'B'), 'alphabetical')
