"""
Tests for group standings and tiebreakers.
"""

from engine.championship import Group, SetResult
from engine.seeding import generate_group_matches
from engine.standings import calculate_group_standings, head_to_head

from conftest import complete, make_athletes


def _group(count=4, spots=2):
    group = Group(id="g1", name="Group A", qualification_spots=spots, athletes=make_athletes(count))
    group.matches = generate_group_matches(group)
    return group


def _match(group, a, b):
    for match in group.matches:
        if {match.player1_id, match.player2_id} == {a, b}:
            return match
    raise AssertionError(f"no match {a} v {b}")


def _play(group, a, b, sets):
    """Record sets from the perspective of `a` (a's score first)."""
    match = _match(group, a, b)
    if match.player1_id != a:
        sets = [SetResult(s.player2_score, s.player1_score) for s in sets]
    match.sets = sets
    p1, p2 = 0, 0
    for s in sets:
        if s.player1_score > s.player2_score:
            p1 += 1
        else:
            p2 += 1
    match.winner_id = match.player1_id if p1 > p2 else match.player2_id
    match.is_completed = True
    return match


class TestStandingsBasics:
    """Tests for standings aggregation."""

    def test_no_results_all_zero(self):
        """Before any result every athlete is level, ordered by name."""
        standings = calculate_group_standings(_group())

        assert [s.athlete_id for s in standings] == ["a01", "a02", "a03", "a04"]
        assert all(s.points == 0 and s.matches == 0 for s in standings)
        assert [s.position for s in standings] == [1, 2, 3, 4]

    def test_win_awards_three_points(self):
        """A win is worth 3 points, a loss 0."""
        group = _group()
        _play(group, "a03", "a01", [SetResult(11, 5), SetResult(11, 7), SetResult(11, 9)])

        standings = {s.athlete_id: s for s in calculate_group_standings(group)}

        assert standings["a03"].points == 3
        assert standings["a03"].wins == 1
        assert standings["a01"].points == 0
        assert standings["a01"].losses == 1
        assert standings["a03"].sets_won == 3
        assert standings["a03"].points_won == 33
        assert standings["a03"].points_lost == 21
        assert standings["a01"].points_diff == -12

    def test_walkover_counts_without_sets(self):
        """Walkovers give points but no sets or rally points."""
        group = _group()
        match = _match(group, "a01", "a02")
        match.is_walkover = True
        match.walkover_winner_id = "a02"
        match.winner_id = "a02"
        match.is_completed = True

        standings = {s.athlete_id: s for s in calculate_group_standings(group)}

        assert standings["a02"].points == 3
        assert standings["a02"].sets_won == 0
        assert standings["a01"].matches == 1

    def test_incomplete_matches_ignored(self):
        """Partial results do not count."""
        group = _group()
        match = _match(group, "a01", "a02")
        match.sets = [SetResult(11, 2)]

        standings = calculate_group_standings(group)

        assert all(s.matches == 0 for s in standings)

    def test_qualified_flag(self):
        """The top `qualification_spots` are qualified."""
        group = _group(spots=2)
        _play(group, "a04", "a01", [SetResult(11, 1)] * 3)
        _play(group, "a03", "a02", [SetResult(11, 1)] * 3)

        standings = calculate_group_standings(group)

        assert [s.qualified for s in standings] == [True, True, False, False]
        assert {standings[0].athlete_id, standings[1].athlete_id} == {"a03", "a04"}

    def test_recalculation_is_idempotent(self):
        """Recomputing on unchanged input gives identical output."""
        group = _group()
        _play(group, "a01", "a02", [SetResult(11, 9), SetResult(9, 11), SetResult(11, 4), SetResult(11, 8)])
        _play(group, "a03", "a04", [SetResult(11, 9)] * 3)

        first = [s.to_dict() for s in calculate_group_standings(group)]
        second = [s.to_dict() for s in calculate_group_standings(group)]

        assert first == second


class TestTiebreakers:
    """Tests for the tie-break ladder."""

    def test_sets_difference_breaks_points_tie(self):
        """Equal points are separated by sets difference."""
        group = _group(count=3, spots=1)
        # a01 beats a02 3-0, a02 beats a03 3-0, a03 beats a01 3-2
        _play(group, "a01", "a02", [SetResult(11, 5)] * 3)
        _play(group, "a02", "a03", [SetResult(11, 5)] * 3)
        _play(group, "a03", "a01", [SetResult(11, 5)] * 3 + [SetResult(5, 11)] * 2)

        standings = calculate_group_standings(group)

        # All on 3 points; sets diff: a01 +2, a02 0, a03 -2
        assert [s.athlete_id for s in standings] == ["a01", "a02", "a03"]
        assert standings[0].sets_diff == 2

    def test_points_difference_breaks_sets_tie(self):
        """Equal points and sets are separated by rally points."""
        group = _group(count=3, spots=1)
        _play(group, "a01", "a02", [SetResult(11, 0)] * 3)
        _play(group, "a02", "a03", [SetResult(11, 9)] * 3)
        _play(group, "a03", "a01", [SetResult(11, 9)] * 3)

        standings = calculate_group_standings(group)

        # Sets diff 0 for all; points diff a01 +27, a02 -27, a03 0
        assert [s.athlete_id for s in standings] == ["a01", "a03", "a02"]

    def test_head_to_head_breaks_full_tie(self):
        """Athletes level on every overall criterion are ordered by their meeting."""
        group = _group(count=4, spots=2)
        # a01, a02 and a03 all win twice; a01 has the best points difference,
        # a02 and a03 finish identical overall and a03 beat a02 directly
        _play(group, "a03", "a02", [SetResult(11, 9)] * 3)
        _play(group, "a02", "a04", [SetResult(11, 9)] * 3)
        _play(group, "a03", "a01", [SetResult(9, 11)] * 3)
        _play(group, "a02", "a01", [SetResult(11, 9)] * 3)
        _play(group, "a04", "a03", [SetResult(9, 11)] * 3)
        _play(group, "a01", "a04", [SetResult(11, 0)] * 3)

        standings = calculate_group_standings(group)
        by_id = {s.athlete_id: s for s in standings}

        assert by_id["a02"].points == by_id["a03"].points == 6
        assert by_id["a02"].sets_diff == by_id["a03"].sets_diff
        assert by_id["a02"].points_diff == by_id["a03"].points_diff
        assert standings.index(by_id["a03"]) < standings.index(by_id["a02"])

    def test_name_is_last_resort(self):
        """A perfect circular tie falls back to name order."""
        group = _group(count=3, spots=1)
        _play(group, "a01", "a02", [SetResult(11, 9)] * 3)
        _play(group, "a02", "a03", [SetResult(11, 9)] * 3)
        _play(group, "a03", "a01", [SetResult(11, 9)] * 3)

        standings = calculate_group_standings(group)

        assert [s.athlete_id for s in standings] == ["a01", "a02", "a03"]

    def test_head_to_head_record(self):
        """Head-to-head aggregates only results against the given rivals."""
        group = _group(count=3)
        _play(group, "a01", "a02", [SetResult(11, 9)] * 3)
        complete(_match(group, "a01", "a03"), "a03")

        record = head_to_head("a01", {"a02"}, group.matches, 5)

        assert record.wins == 1
        assert record.sets_diff == 3
        assert record.points_diff == 6
