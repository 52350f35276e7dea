"""
Scoring engine tests - grades, ranks, points and leaderboards on plain objects
"""
from types import SimpleNamespace

import pytest

import scoring
from scoring import PointsTable

TABLE = PointsTable(
    normal_grade_points={'A+': 10, 'A': 8, 'B': 6, 'C': 4},
    rank_points={'first': 5, 'second': 3, 'third': 1},
)


def program(id=1, type='individual', category_id=1, mark_type='normal', is_published=True):
    return SimpleNamespace(id=id, type=type, category_id=category_id, mark_type=mark_type,
                           is_published=is_published)


def assignment(id, program_id=1, participant_id=None, team_id=1, code_letter='A', status=None):
    return SimpleNamespace(id=id, program_id=program_id, participant_id=participant_id or id,
                           team_id=team_id, code_letter=code_letter, status=status)


def score(assignment_id, value, program_id=1, judge_id=1):
    return SimpleNamespace(assignment_id=assignment_id, score=value, program_id=program_id,
                           judge_id=judge_id)


def person(id, name, team_id=1):
    return SimpleNamespace(id=id, name=name, team_id=team_id)


class TestGradeFor:
    """Grade bands"""

    @pytest.mark.parametrize('value, grade', [
        (100, 'A+'), (90, 'A+'), (89.99, 'A'), (70, 'A'), (69, 'B'),
        (60, 'B'), (59.5, 'C'), (50, 'C'), (49.9, 'No Grade'), (0, 'No Grade'),
    ])
    def test_band_boundaries(self, value, grade):
        assert scoring.grade_for(value) == grade

    def test_monotonic(self):
        """A higher score never lands in a lower band"""
        order = ['No Grade', 'C', 'B', 'A', 'A+']
        values = [x / 2 for x in range(0, 201)]
        bands = [order.index(scoring.grade_for(v)) for v in values]
        assert bands == sorted(bands)


class TestAssignRanks:
    """Position-based ranking with ties"""

    def test_ties_share_rank_and_next_takes_position(self):
        ranked = scoring.assign_ranks([('A', 95), ('B', 95), ('C', 90), ('D', 80)])
        assert {key: rank for key, _, rank in ranked} == {'A': 1, 'B': 1, 'C': 3, 'D': 4}

    def test_input_order_does_not_matter(self):
        ranked = scoring.assign_ranks([('D', 80), ('B', 95), ('C', 90), ('A', 95)])
        assert {key: rank for key, _, rank in ranked} == {'A': 1, 'B': 1, 'C': 3, 'D': 4}

    def test_ranks_non_decreasing(self):
        ranked = scoring.assign_ranks([(i, v) for i, v in enumerate([3, 7, 7, 1, 9, 3, 3])])
        ranks = [rank for _, _, rank in ranked]
        assert ranks == sorted(ranks)
        assert ranks[0] == 1

    def test_empty(self):
        assert scoring.assign_ranks([]) == []


class TestPointsTable:
    """Missing or malformed entries count as zero"""

    def test_normal_grade_and_rank(self):
        assert scoring.points_for(program(), 95, 1, TABLE) == 15
        assert scoring.points_for(program(), 80, 3, TABLE) == 9

    def test_missing_rank_and_grade(self):
        assert scoring.points_for(program(), 40, 4, TABLE) == 0

    def test_empty_table(self):
        assert scoring.points_for(program(), 99, 1, PointsTable()) == 0

    def test_special_mark_uses_program_table(self):
        table = PointsTable(
            normal_grade_points={'A+': 10},
            special_grade_points={'7': {'A+': 20}},
        )
        assert table.grade_points(program(id=7, mark_type='special-mark'), 'A+') == 20
        # No special table for this program
        assert table.grade_points(program(id=8, mark_type='special-mark'), 'A+') == 0

    def test_non_numeric_entries(self):
        table = PointsTable(normal_grade_points={'A+': 'lots', 'A': '3'}, rank_points={'first': None})
        assert table.grade_points(program(), 'A+') == 0
        assert table.grade_points(program(), 'A') == 3
        assert table.points_for_rank(1) == 0

    def test_from_dict(self):
        table = PointsTable.from_dict({'normalGradePoints': {'B': 2}, 'rankPoints': {'second': 1}})
        assert table.grade_points(program(), 'B') == 2
        assert table.points_for_rank(2) == 1
        assert PointsTable.from_dict(None) == PointsTable()


class TestScoreProgram:
    """Per-program pipeline"""

    def test_worked_example(self):
        assignments = [assignment(1), assignment(2, code_letter='B'), assignment(3, code_letter='C')]
        scores = [score(1, 95), score(2, 95), score(3, 80)]

        results = {r.assignment_id: r for r in scoring.score_program(program(), assignments, scores, TABLE)}

        assert results[1].grade == 'A+' and results[1].rank == 1 and results[1].points == 15
        assert results[2].grade == 'A+' and results[2].rank == 1 and results[2].points == 15
        assert results[3].grade == 'A' and results[3].rank == 3 and results[3].points == 9

    def test_average_over_judges(self):
        assignments = [assignment(1)]
        scores = [score(1, 80, judge_id=1), score(1, 90, judge_id=2)]
        result = scoring.score_program(program(), assignments, scores, TABLE)[0]
        assert result.average_score == 85
        assert len(result.scores) == 2

    def test_cancelled_contributes_nothing(self):
        assignments = [assignment(1), assignment(2, status=scoring.CANCELLED)]
        scores = [score(1, 60), score(2, 99)]
        results = scoring.score_program(program(), assignments, scores, TABLE)
        assert [r.assignment_id for r in results] == [1]
        # The cancelled entry does not take first place away
        assert results[0].rank == 1

    def test_unscored_not_ranked(self):
        assignments = [assignment(1), assignment(2)]
        results = scoring.score_program(program(), assignments, [score(1, 70)], TABLE)
        assert [r.assignment_id for r in results] == [1]

    def test_podium(self):
        assignments = [assignment(i) for i in range(1, 6)]
        scores = [score(1, 90), score(2, 90), score(3, 80), score(4, 70), score(5, 60)]
        winners = scoring.podium(scoring.score_program(program(), assignments, scores, TABLE))
        assert [r.assignment_id for r in winners['1']] == [1, 2]
        assert winners['2'] == []
        assert [r.assignment_id for r in winners['3']] == [3]


class TestFilterPrograms:
    """Program filters"""

    PROGRAMS = [
        program(1, 'individual', category_id=1),
        program(2, 'individual', category_id=2),
        program(3, 'group', category_id=1),
        program(4, 'group', category_id=2, is_published=False),
    ]
    GENERAL = [1]

    def ids(self, name, published_only=False):
        return {p.id for p in scoring.filter_programs(self.PROGRAMS, name, self.GENERAL, published_only)}

    def test_each_filter(self):
        assert self.ids('all') == {1, 2, 3, 4}
        assert self.ids('individual') == {1, 2}
        assert self.ids('group') == {3, 4}
        assert self.ids('specific') == {2, 4}
        assert self.ids('individual-specific') == {2}
        assert self.ids('group-specific') == {4}

    def test_subset_properties(self):
        assert self.ids('individual-specific') <= self.ids('individual') & self.ids('specific')
        assert self.ids('group-specific') <= self.ids('group') & self.ids('specific')
        for name in scoring.PROGRAM_FILTERS:
            assert self.ids(name) <= self.ids('all')

    def test_published_only(self):
        assert self.ids('all', published_only=True) == {1, 2, 3}

    def test_unknown_filter(self):
        with pytest.raises(ValueError):
            scoring.filter_programs(self.PROGRAMS, 'solo')


class TestStandings:
    """Participant and team totals"""

    def setup_method(self):
        self.programs = [program(1), program(2)]
        self.people = [person(1, 'Xavier', team_id=1), person(2, 'Yusuf', team_id=1), person(3, 'Zara', team_id=2)]
        self.assignments = [
            assignment(1, program_id=1, participant_id=1, team_id=1),
            assignment(2, program_id=1, participant_id=3, team_id=2, code_letter='B'),
            assignment(3, program_id=2, participant_id=1, team_id=1),
            assignment(4, program_id=2, participant_id=2, team_id=1, code_letter='B'),
        ]
        self.scores = [
            score(1, 95, program_id=1), score(2, 80, program_id=1),
            score(3, 65, program_id=2), score(4, 75, program_id=2),
        ]

    def test_participant_totals_and_breakdown(self):
        standings = scoring.participant_standings(
            self.people, self.programs, self.assignments, self.scores, TABLE
        )
        by_id = {s.entity_id: s for s in standings}
        # Xavier: 10 + 5 in program 1, 6 + 3 in program 2
        assert by_id[1].total_points == 24
        assert by_id[1].breakdown == {1: 15, 2: 9}
        assert by_id[2].total_points == 13
        assert by_id[3].total_points == 11
        assert [s.name for s in standings] == ['Xavier', 'Yusuf', 'Zara']

    def test_team_total_is_sum_of_members(self):
        participant_totals = {
            s.entity_id: s.total_points
            for s in scoring.participant_standings(
                self.people, self.programs, self.assignments, self.scores, TABLE
            )
        }
        teams = [SimpleNamespace(id=1, name='Red'), SimpleNamespace(id=2, name='Blue')]
        standings = scoring.team_standings(
            teams, self.people, self.programs, self.assignments, self.scores, TABLE
        )
        by_id = {s.entity_id: s.total_points for s in standings}
        assert by_id[1] == participant_totals[1] + participant_totals[2]
        assert by_id[2] == participant_totals[3]

    def test_idempotent(self):
        first = scoring.participant_standings(self.people, self.programs, self.assignments, self.scores, TABLE)
        second = scoring.participant_standings(self.people, self.programs, self.assignments, self.scores, TABLE)
        assert [(s.entity_id, s.total_points) for s in first] == [(s.entity_id, s.total_points) for s in second]

    def test_cancelled_contributes_zero(self):
        self.assignments[0].status = scoring.CANCELLED
        standings = scoring.participant_standings(
            self.people, self.programs, self.assignments, self.scores, TABLE
        )
        by_id = {s.entity_id: s for s in standings}
        assert 1 not in by_id[1].breakdown
        assert by_id[1].total_points == 9

    def test_equal_totals_sorted_by_name(self):
        people = [person(1, 'Mina'), person(2, 'Aron'), person(3, 'Kai')]
        standings = scoring.participant_standings(people, [], [], [], TABLE)
        assert [s.name for s in standings] == ['Aron', 'Kai', 'Mina']
        assert all(s.total_points == 0 for s in standings)


class TestProgramStatus:
    """Judging lifecycle"""

    def status(self, assignments, scores=(), judge_count=1, **program_fields):
        fields = {'is_published': False}
        fields.update(program_fields)
        return scoring.program_status(program(**fields), assignments, list(scores), judge_count)

    def test_published_wins(self):
        assert self.status([], is_published=True).key == 'published'

    def test_no_participants(self):
        result = self.status([assignment(1, status=scoring.CANCELLED)])
        assert result.key == 'not_started'
        assert result.text == 'No Participants'

    def test_not_started(self):
        result = self.status([assignment(1, code_letter=None)])
        assert result.key == 'not_started'
        assert result.progress == 0

    def test_reporting(self):
        result = self.status([assignment(1), assignment(2, code_letter=None)])
        assert result.key == 'reporting'
        assert result.progress == 50

    def test_ready_without_judges(self):
        result = self.status([assignment(1)], judge_count=0)
        assert result.key == 'ready'
        assert result.text == 'No Judges'

    def test_ready_for_judging(self):
        result = self.status([assignment(1)])
        assert result.key == 'ready'
        assert result.progress == 50

    def test_in_progress(self):
        result = self.status([assignment(1), assignment(2, code_letter='B')], [score(1, 70)])
        assert result.key == 'in_progress'
        assert result.progress == 75

    def test_completed(self):
        result = self.status([assignment(1), assignment(2, code_letter='B')], [score(1, 70), score(2, 60)])
        assert result.key == 'completed'
        assert result.to_dict()['progress'] == 100
