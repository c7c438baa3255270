"""
Tests for bracket generation: sizing, wiring, naming and seed placeholders.
"""
import random

import pytest

from app.services.bracket_errors import UnsupportedTeamCount
from app.services.bracket_generator import (
    cross_seed_keys,
    expected_playoff_match_count,
    generate,
    is_power_of_two,
    next_power_of_two,
    round_robin_match_count,
    shuffle_teams,
    teams_in_order,
)
from app.services.bracket_types import (
    BracketConfig,
    BracketFormat,
    BracketSide,
    MatchFormat,
    MatchStage,
    SeedPlaceholder,
    Team,
)
from app.services.match_graph import MatchGraph

SINGLE = BracketConfig(format=BracketFormat.single_elimination)
DOUBLE = BracketConfig(format=BracketFormat.double_elimination)


def _teams(n):
    return [Team(id=f"team-{i}", name=f"Team {i}") for i in range(1, n + 1)]


def test_sizing_helpers():
    assert is_power_of_two(1)
    assert is_power_of_two(16)
    assert not is_power_of_two(12)
    assert not is_power_of_two(0)
    assert next_power_of_two(5) == 8
    assert next_power_of_two(8) == 8
    assert expected_playoff_match_count(8, False) == 7
    assert expected_playoff_match_count(8, True) == 14
    assert expected_playoff_match_count(2, True) == 1
    assert expected_playoff_match_count(1, False) == 0
    assert round_robin_match_count(4) == 6
    assert round_robin_match_count(3) == 3


class TestSingleElimination:
    def test_four_teams_two_semis_feed_final(self):
        matches = generate(_teams(4), SINGLE)
        assert len(matches) == 3

        semis = [m for m in matches if m.round == 1]
        final = [m for m in matches if m.round == 2][0]
        assert [m.name for m in semis] == ["Semi-Final 1", "Semi-Final 2"]
        assert final.name == "Grand Final"
        assert all(m.next_match_id == final.id for m in semis)
        assert final.next_match_id is None

        assert (semis[0].team1.id, semis[0].team2.id) == ("team-1", "team-2")
        assert (semis[1].team1.id, semis[1].team2.id) == ("team-3", "team-4")

    def test_formats_follow_config(self):
        matches = generate(_teams(4), SINGLE)
        assert [m.format for m in matches] == [MatchFormat.bo3, MatchFormat.bo3, MatchFormat.bo5]

    def test_eight_team_round_names(self):
        names = [m.name for m in generate(_teams(8), SINGLE)]
        assert names == [
            "Quarter-Final 1",
            "Quarter-Final 2",
            "Quarter-Final 3",
            "Quarter-Final 4",
            "Semi-Final 1",
            "Semi-Final 2",
            "Grand Final",
        ]

    def test_match_ids_in_creation_order(self):
        matches = generate(_teams(8), SINGLE)
        assert [m.id for m in matches] == [f"match-{i}" for i in range(1, 8)]

    def test_round_r_match_m_feeds_round_r_plus_one_match_m_half(self):
        matches = generate(_teams(16), SINGLE)
        by_round = {}
        for m in matches:
            by_round.setdefault(m.round, []).append(m)
        for r in range(1, max(by_round)):
            for i, m in enumerate(by_round[r]):
                assert m.next_match_id == by_round[r + 1][i // 2].id


class TestStructure:
    @pytest.mark.parametrize("slots", [2, 4, 8, 16, 32])
    @pytest.mark.parametrize("config", [SINGLE, DOUBLE], ids=["single", "double"])
    def test_playoff_graph_properties(self, slots, config):
        graph = MatchGraph(generate(_teams(slots), config))

        assert len(graph) == expected_playoff_match_count(slots, config.is_double_elimination)

        terminals = graph.terminal_matches()
        assert len(terminals) == 1
        terminal = terminals[0]

        for match in graph:
            if match.id != terminal.id:
                assert match.next_match_id is not None
                assert match.next_match_id in graph
            if match.loser_match_id is not None:
                assert match.loser_match_id in graph
            # Every match without teams at creation is fed by exactly two others
            if match.team1 is None:
                assert len(graph.feeders(match.id)) == 2
            assert graph.path_to_terminal(match.id)[-1] == terminal.id

    def test_fewer_than_two_teams_yields_no_matches(self):
        assert generate(_teams(1), SINGLE) == []
        assert generate([], DOUBLE) == []

    def test_non_power_of_two_without_groups_is_rejected(self):
        with pytest.raises(UnsupportedTeamCount):
            generate(_teams(6), SINGLE)

    def test_duplicate_team_ids_rejected(self):
        teams = [Team(id="team-1", name="A"), Team(id="team-1", name="B")]
        with pytest.raises(ValueError):
            generate(teams, SINGLE)


class TestDoubleElimination:
    def test_eight_slots_layout(self):
        graph = MatchGraph(generate(_teams(8), DOUBLE))
        by_name = {m.name: m for m in graph}

        assert len(graph) == 14
        upper_r1 = [m for m in graph if m.bracket is BracketSide.upper and m.round == 1]
        assert [m.name for m in upper_r1] == [f"Upper Bracket R1 Match {i}" for i in range(1, 5)]

        lower_r1 = [by_name["Elimination Match 1"], by_name["Elimination Match 2"]]
        assert [m.loser_match_id for m in upper_r1] == [
            lower_r1[0].id,
            lower_r1[0].id,
            lower_r1[1].id,
            lower_r1[1].id,
        ]

        upper_final = by_name["Upper Bracket Final"]
        lower_final = by_name["Lower Bracket Final"]
        grand_final = by_name["Grand Final"]
        assert upper_final.loser_match_id == lower_final.id
        assert upper_final.next_match_id == grand_final.id
        assert lower_final.next_match_id == grand_final.id
        assert grand_final.bracket is BracketSide.grand_final
        assert grand_final.format is MatchFormat.bo5
        assert lower_final.format is MatchFormat.bo1

    def test_four_slots(self):
        names = [m.name for m in generate(_teams(4), DOUBLE)]
        assert names == [
            "Upper Bracket Semi-Final 1",
            "Upper Bracket Semi-Final 2",
            "Upper Bracket Final",
            "Elimination Match",
            "Lower Bracket Final",
            "Grand Final",
        ]

    def test_two_slots_is_a_single_grand_final(self):
        matches = generate(_teams(2), DOUBLE)
        assert len(matches) == 1
        assert matches[0].name == "Grand Final"
        assert matches[0].team1.id == "team-1"
        assert matches[0].team2.id == "team-2"


class TestGroupStage:
    def test_eight_teams_two_groups_cross_seeded(self):
        config = BracketConfig(format=BracketFormat.single_elimination, has_group_stage=True)
        graph = MatchGraph(generate(_teams(8), config))

        group_matches = graph.group_matches()
        assert len(group_matches) == 12
        assert sorted(graph.groups()) == ["A", "B"]
        assert all(len(ms) == 6 for ms in graph.groups().values())
        assert all(m.round == 0 and m.format is MatchFormat.bo1 for m in group_matches)

        playoff = graph.playoff_matches()
        assert len(playoff) == 3
        round_one = [m for m in playoff if m.round == 1]
        labels = [(m.team1.name, m.team2.name) for m in round_one]
        assert labels == [("1st Group A", "2nd Group B"), ("1st Group B", "2nd Group A")]
        assert all(isinstance(m.team1, SeedPlaceholder) for m in round_one)
        assert [m.team1.id for m in round_one] == ["seed-0", "seed-2"]

    def test_group_members_are_consecutive_teams(self):
        config = BracketConfig(has_group_stage=True)
        graph = MatchGraph(generate(_teams(8), config))
        group_a_ids = {t.id for m in graph.groups()["A"] for t in (m.team1, m.team2)}
        assert group_a_ids == {"team-1", "team-2", "team-3", "team-4"}
        assert graph.groups()["A"][0].name == "Group A Match 1"

    @pytest.mark.parametrize(
        "team_count, groups, group_match_count, playoff_slots",
        [
            (4, 1, 6, 2),
            (8, 2, 12, 4),
            (12, 4, 12, 8),
            (16, 4, 24, 8),
            (24, 8, 24, 16),
            (32, 8, 48, 16),
        ],
    )
    def test_supported_team_counts(self, team_count, groups, group_match_count, playoff_slots):
        config = BracketConfig(has_group_stage=True)
        graph = MatchGraph(generate(_teams(team_count), config))
        assert len(graph.groups()) == groups
        assert len(graph.group_matches()) == group_match_count
        assert all(
            len(group) == round_robin_match_count(team_count // groups) for group in graph.groups().values()
        )
        assert len(graph.playoff_matches()) == expected_playoff_match_count(playoff_slots, False)
        assert len(graph.placeholder_slots()) == playoff_slots // 2

    def test_unsupported_group_stage_team_count(self):
        with pytest.raises(UnsupportedTeamCount):
            generate(_teams(10), BracketConfig(has_group_stage=True))

    def test_one_group_is_first_v_second(self):
        graph = MatchGraph(generate(_teams(4), BracketConfig(has_group_stage=True)))
        final = graph.playoff_matches()[0]
        assert (final.team1.name, final.team2.name) == ("1st Group A", "2nd Group A")
        assert final.stage is MatchStage.playoff

    def test_double_elimination_after_groups(self):
        config = BracketConfig(format=BracketFormat.double_elimination, has_group_stage=True)
        graph = MatchGraph(generate(_teams(16), config))
        assert len(graph.playoff_matches()) == expected_playoff_match_count(8, True)
        assert len(graph.placeholder_slots()) == 4


def test_cross_seed_keys():
    assert cross_seed_keys(1) == [(1, "A"), (2, "A")]
    assert cross_seed_keys(2) == [(1, "A"), (2, "B"), (1, "B"), (2, "A")]
    assert cross_seed_keys(4) == [
        (1, "A"),
        (2, "B"),
        (1, "B"),
        (2, "A"),
        (1, "C"),
        (2, "D"),
        (1, "D"),
        (2, "C"),
    ]


class TestTeamPreparation:
    ENTRIES = [{"name": "Alpha"}, {"name": " Bravo ", "logo_url": "https://img/b.png"}, {"name": "Charlie"}]

    def test_shuffle_assigns_sequential_ids(self):
        teams = shuffle_teams(self.ENTRIES, rng=random.Random(7))
        assert [t.id for t in teams] == ["team-1", "team-2", "team-3"]
        assert sorted(t.name for t in teams) == ["Alpha", "Bravo", "Charlie"]

    def test_in_order_keeps_submission_order(self):
        teams = teams_in_order(self.ENTRIES)
        assert [t.name for t in teams] == ["Alpha", "Bravo", "Charlie"]
        assert teams[1].logo_url == "https://img/b.png"
        assert teams[0].logo_url is None

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            teams_in_order([{"name": "  "}])
