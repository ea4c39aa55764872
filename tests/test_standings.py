"""
Tests for round-robin / league brackets and standings calculation.
"""
import itertools

import pytest

from conftest import make_participants, numbered_participants
from brackets.advancement import Bracket
from brackets.errors import ConfigError, UnsupportedTypeError
from brackets.models import Branch, BracketConfig, GameStatus
from brackets.standings import compute_standings, head_to_head


def round_robin(participants, match_type='round_robin', **options):
    config = BracketConfig(match_type, len(participants), **options)
    return Bracket.create(config, participants)


def play(bracket, first, second, first_score, second_score):
    """Record a result between two participants regardless of slot order."""
    for node in bracket.nodes:
        if node.involves(first) and node.involves(second) and not node.is_completed:
            if node.participants[0] == first:
                return bracket.record_result(node.code, first_score, second_score)
            return bracket.record_result(node.code, second_score, first_score)
    raise AssertionError(f"No open game between {first.name} and {second.name}")


def table(rows):
    return [(row.participant.name, row.points) for row in rows]


class TestRoundRobinBuild:
    """Tests for round-robin and league schedules."""

    def test_every_pair_once(self):
        teams = numbered_participants(6)
        bracket = round_robin(teams)
        assert len(bracket) == 15
        pairs = {frozenset(p.id for p in n.participants) for n in bracket.nodes}
        assert pairs == {frozenset((a.id, b.id)) for a, b in itertools.combinations(teams, 2)}

    def test_all_in_round_one_without_downstream(self):
        bracket = round_robin(numbered_participants(5))
        for node in bracket.nodes:
            assert node.round == 1
            assert node.branch == Branch.ROUND_ROBIN
            assert node.winner_to is None and node.loser_to is None

    def test_league_matches_round_robin(self):
        teams = numbered_participants(4)
        league = round_robin(teams, 'league')
        assert len(league) == 6
        assert all(n.branch == Branch.ROUND_ROBIN for n in league.nodes)

    def test_second_leg_swaps_sides(self, four_teams):
        bracket = round_robin(four_teams, 'league', legs=2)
        assert len(bracket) == 12
        first = bracket.node('RR1-M1')
        second = bracket.node('RR2-M1')
        assert second.round == 2
        assert second.participants == list(reversed(first.participants))
        assert second.game_number == 7

    def test_result_never_propagates(self, four_teams):
        bracket = round_robin(four_teams)
        update = bracket.record_result('RR1-M1', 2, 0)
        assert update.propagated == []

    def test_draw_allowed(self, four_teams):
        bracket = round_robin(four_teams)
        update = bracket.record_result('RR1-M1', 1, 1)
        assert update.node.is_draw
        assert update.node.winner is None
        assert update.node.status == GameStatus.COMPLETED

    def test_draw_with_declared_winner(self, four_teams):
        bracket = round_robin(four_teams)
        update = bracket.record_result('RR1-M1', 1, 1, winner='B')
        assert not update.node.is_draw
        assert update.node.winner.name == 'B'

    def test_champion_not_available(self, four_teams):
        with pytest.raises(UnsupportedTypeError):
            round_robin(four_teams).champion()


class TestStandings:
    """Tests for points, ordering and tie-breaks."""

    def test_no_games_played(self, four_teams):
        rows = round_robin(four_teams).standings()
        assert [r.participant.name for r in rows] == ['A', 'B', 'C', 'D']
        for row in rows:
            assert (row.played, row.wins, row.draws, row.losses, row.points) == (0, 0, 0, 0, 0)

    def test_unplayed_participant_still_listed(self):
        a, b, c = make_participants('A', 'B', 'C')
        bracket = round_robin([a, b, c])
        play(bracket, a, b, 2, 0)
        rows = bracket.standings()
        assert len(rows) == 3
        row_c = next(r for r in rows if r.participant == c)
        assert row_c.played == 0

    def test_points_and_stats(self, four_teams):
        a, b, c, d = four_teams
        bracket = round_robin(four_teams)
        play(bracket, a, b, 3, 1)
        play(bracket, a, c, 2, 2)
        play(bracket, b, d, 0, 1)
        rows = {r.participant.name: r for r in bracket.standings()}

        assert (rows['A'].wins, rows['A'].draws, rows['A'].points) == (1, 1, 4)
        assert rows['A'].score_for == 5
        assert rows['A'].score_against == 3
        assert rows['A'].score_diff == 2
        assert rows['B'].losses == 2
        assert rows['D'].points == 3
        assert rows['C'].points == 1

    def test_custom_points(self, four_teams):
        a, b, c, d = four_teams
        bracket = round_robin(four_teams, points_for_win=2, points_for_draw=1)
        play(bracket, a, b, 1, 0)
        play(bracket, c, d, 1, 1)
        assert table(bracket.standings())[:3] == [('A', 2), ('C', 1), ('D', 1)]

    def test_complete_round_robin_balances(self):
        teams = numbered_participants(6)
        bracket = round_robin(teams)
        for i, node in enumerate(bracket.nodes):
            # Deterministic mix of home wins, away wins and draws
            scores = [(2, 1), (0, 3), (1, 1)][i % 3]
            bracket.record_result(node.code, *scores)

        rows = bracket.standings()
        assert sum(r.wins for r in rows) == sum(r.losses for r in rows)
        assert sum(r.draws for r in rows) % 2 == 0
        assert all(r.played == 5 for r in rows)
        assert [r.rank for r in rows] == list(range(1, 7))

    def test_points_descending(self):
        teams = numbered_participants(5)
        bracket = round_robin(teams)
        for node in bracket.nodes:
            bracket.record_result(node.code, 1, 0)
        points = [r.points for r in bracket.standings()]
        assert points == sorted(points, reverse=True)


class TestTieBreaks:
    """Tests for the tie-break chain."""

    def _tied_pair(self, winner_name, loser_name):
        """Winner and loser finish level on points and score difference."""
        winner, loser, z, w = make_participants(winner_name, loser_name, 'Z', 'W')
        bracket = round_robin([winner, loser, z, w])
        play(bracket, winner, loser, 1, 0)
        play(bracket, winner, z, 0, 1)
        play(bracket, loser, z, 1, 0)
        play(bracket, winner, w, 2, 0)
        play(bracket, loser, w, 2, 0)
        play(bracket, z, w, 0, 3)
        return bracket

    def test_head_to_head_x_over_y(self):
        rows = self._tied_pair('X', 'Y').standings()
        assert rows[0].points == rows[1].points == 6
        assert rows[0].score_diff == rows[1].score_diff
        assert [r.participant.name for r in rows] == ['X', 'Y', 'W', 'Z']

    def test_head_to_head_beats_alphabetical(self):
        rows = self._tied_pair('Y', 'X').standings()
        assert [r.participant.name for r in rows[:2]] == ['Y', 'X']

    def test_head_to_head_skipped_for_three_way_tie(self):
        x, y, z = make_participants('X', 'Y', 'Z')
        bracket = round_robin([z, y, x])
        play(bracket, x, y, 1, 0)
        play(bracket, y, z, 1, 0)
        play(bracket, z, x, 1, 0)
        assert [r.participant.name for r in bracket.standings()] == ['X', 'Y', 'Z']

    def test_score_diff_before_head_to_head(self):
        a, b, c = make_participants('A', 'B', 'C')
        bracket = round_robin([a, b, c])
        play(bracket, a, b, 1, 0)
        play(bracket, b, c, 5, 0)
        play(bracket, a, c, 0, 1)
        play_rows = bracket.standings()
        # A and B on 3 points; B has the better difference despite losing to A
        assert [r.participant.name for r in play_rows[:2]] == ['B', 'A']

    def test_custom_order(self):
        a, b, c = make_participants('A', 'B', 'C')
        bracket = round_robin([a, b, c], tie_break_order=('score_for',))
        play(bracket, a, c, 1, 0)
        play(bracket, b, c, 4, 3)
        rows = bracket.standings()
        assert [r.participant.name for r in rows[:2]] == ['B', 'A']

    def test_unknown_tie_break(self, four_teams):
        bracket = round_robin(four_teams)
        with pytest.raises(ConfigError):
            compute_standings(bracket.nodes, ('coin_toss',))

    def test_unknown_tie_break_in_config(self):
        with pytest.raises(ConfigError):
            BracketConfig('round_robin', 4, tie_break_order=('coin_toss',))

    def test_head_to_head_helper(self):
        a, b = make_participants('A', 'B')
        bracket = round_robin([a, b], legs=2)
        bracket.record_result('RR1-M1', 2, 0)
        bracket.record_result('RR2-M1', 1, 1)
        assert head_to_head(bracket.nodes, a, b) == 1
        assert head_to_head(bracket.nodes, b, a) == -1
