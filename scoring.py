# scoring.py
# Grades, ranks and points for judged programs, and the participant / team
# totals built from them. Everything here works on plain objects that carry
# the model attribute names, so the same code serves live views, published
# views and tests without touching the database.

import math
from collections import defaultdict
from dataclasses import dataclass, field

# Checked top-down, first match wins
GRADE_BANDS = (
    ('A+', 90),
    ('A', 70),
    ('B', 60),
    ('C', 50),
)
NO_GRADE = 'No Grade'

RANK_KEYS = {1: 'first', 2: 'second', 3: 'third'}

PROGRAM_FILTERS = (
    'all',
    'individual',
    'group',
    'specific',
    'individual-specific',
    'group-specific',
)

CANCELLED = 'cancelled'


def grade_for(score):
    """Maps an average score to its grade band."""
    for grade, lower_bound in GRADE_BANDS:
        if score >= lower_bound:
            return grade
    return NO_GRADE


def assign_ranks(pairs):
    """
    Ranks (key, score) pairs, highest score first.

    Tied scores share the rank of the first entry of the tie group, and the
    next distinct score takes its own 1-based position:
    [95, 95, 90, 80] -> [1, 1, 3, 4].

    Returns a list of (key, score, rank) in rank order. Equal scores keep
    their input order.
    """
    ordered = sorted(pairs, key=lambda pair: pair[1], reverse=True)
    ranked = []
    current_rank = 0
    last_score = None
    for position, (key, score) in enumerate(ordered, start=1):
        if score != last_score:
            current_rank = position
            last_score = score
        ranked.append((key, score, current_rank))
    return ranked


def _as_points(value):
    if value is None or isinstance(value, bool):
        return 0
    if not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            return 0
    if isinstance(value, float) and math.isnan(value):
        return 0
    return value


def _lookup(mapping, key):
    if not isinstance(mapping, dict):
        return None
    if key in mapping:
        return mapping[key]
    # JSON columns hand back string keys
    return mapping.get(str(key))


@dataclass(frozen=True)
class PointsTable:
    """The grade and rank point tables, passed explicitly to every calculation."""
    normal_grade_points: dict = field(default_factory=dict)
    special_grade_points: dict = field(default_factory=dict)
    rank_points: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            normal_grade_points=data.get('normalGradePoints') or {},
            special_grade_points=data.get('specialGradePoints') or {},
            rank_points=data.get('rankPoints') or {},
        )

    def grade_points(self, program, grade):
        if program.mark_type == 'special-mark':
            table = _lookup(self.special_grade_points, program.id)
        else:
            table = self.normal_grade_points
        return _as_points(_lookup(table, grade))

    def points_for_rank(self, rank):
        key = RANK_KEYS.get(rank)
        if key is None:
            return 0
        return _as_points(_lookup(self.rank_points, key))


def points_for(program, average_score, rank, table):
    """Grade points plus rank points for one participation. Never raises."""
    return table.grade_points(program, grade_for(average_score)) + table.points_for_rank(rank)


@dataclass
class ProgramResult:
    assignment: object
    average_score: float
    grade: str
    rank: int
    points: float
    scores: list = field(default_factory=list)

    @property
    def assignment_id(self):
        return self.assignment.id

    @property
    def participant_id(self):
        return self.assignment.participant_id

    @property
    def team_id(self):
        return self.assignment.team_id


def is_active(assignment):
    return assignment.status != CANCELLED


def average_scores(assignments, scores):
    """
    Mean score per active assignment. Assignments without any score are left
    out entirely: they are not graded and not ranked.
    """
    values = defaultdict(list)
    for score in scores:
        values[score.assignment_id].append(score.score)

    averages = {}
    for assignment in assignments:
        if not is_active(assignment):
            continue
        assignment_scores = values.get(assignment.id)
        if assignment_scores:
            averages[assignment.id] = sum(assignment_scores) / len(assignment_scores)
    return averages


def score_program(program, assignments, scores, table):
    """Grades, ranks and awards points to every scored assignment of one program."""
    program_assignments = {a.id: a for a in assignments if a.program_id == program.id}
    program_scores = [s for s in scores if s.assignment_id in program_assignments]
    averages = average_scores(program_assignments.values(), program_scores)

    scores_by_assignment = defaultdict(list)
    for score in program_scores:
        scores_by_assignment[score.assignment_id].append(score)

    results = []
    for assignment_id, average, rank in assign_ranks(averages.items()):
        results.append(ProgramResult(
            assignment=program_assignments[assignment_id],
            average_score=average,
            grade=grade_for(average),
            rank=rank,
            points=points_for(program, average, rank, table),
            scores=scores_by_assignment[assignment_id],
        ))
    return results


def podium(results):
    """Results holding ranks 1-3, keyed by rank string."""
    winners = {'1': [], '2': [], '3': []}
    for result in results:
        if result.rank <= 3:
            winners[str(result.rank)].append(result)
    return winners


def _matches_filter(program, program_filter, general_category_ids):
    is_specific = program.category_id not in general_category_ids
    if program_filter == 'individual':
        return program.type == 'individual'
    if program_filter == 'group':
        return program.type == 'group'
    if program_filter == 'specific':
        return is_specific
    if program_filter == 'individual-specific':
        return program.type == 'individual' and is_specific
    if program_filter == 'group-specific':
        return program.type == 'group' and is_specific
    return True


def filter_programs(programs, program_filter='all', general_category_ids=(), published_only=False):
    """
    Selects the programs a leaderboard is computed over.

    `specific` means the program's category is not flagged general. Published
    views pass published_only=True; live views use every program.
    """
    if program_filter not in PROGRAM_FILTERS:
        raise ValueError(f'Unknown program filter: {program_filter}')

    general_category_ids = set(general_category_ids)
    return [
        program for program in programs
        if (not published_only or program.is_published)
        and _matches_filter(program, program_filter, general_category_ids)
    ]


class Scoreboard:
    """Scores each program once and shares the results across every total."""

    def __init__(self, programs, assignments, scores, table):
        self.table = table
        self.programs = {program.id: program for program in programs}
        self._assignments = defaultdict(list)
        for assignment in assignments:
            if assignment.program_id in self.programs:
                self._assignments[assignment.program_id].append(assignment)
        self._scores = defaultdict(list)
        for score in scores:
            if score.program_id in self.programs:
                self._scores[score.program_id].append(score)
        self._results = {}

    def results_for(self, program_id):
        if program_id not in self._results:
            program = self.programs.get(program_id)
            if program is None:
                return []
            self._results[program_id] = score_program(
                program, self._assignments[program_id], self._scores[program_id], self.table
            )
        return self._results[program_id]

    def points_by_participant(self):
        """participant id -> {program id: points}"""
        breakdown = defaultdict(dict)
        for program_id in self.programs:
            for result in self.results_for(program_id):
                program_points = breakdown[result.participant_id]
                program_points[program_id] = program_points.get(program_id, 0) + result.points
        return breakdown


@dataclass
class Standing:
    entity: object
    entity_id: object
    name: str
    total_points: float
    breakdown: dict = field(default_factory=dict)


def sort_standings(standings):
    # Name breaks ties so equal totals always come out in the same order
    return sorted(standings, key=lambda s: (-s.total_points, s.name or ''))


def participant_standings(participants, programs, assignments, scores, table):
    board = Scoreboard(programs, assignments, scores, table)
    breakdown = board.points_by_participant()

    standings = []
    for participant in participants:
        program_points = breakdown.get(participant.id, {})
        standings.append(Standing(
            entity=participant,
            entity_id=participant.id,
            name=participant.name,
            total_points=sum(program_points.values()),
            breakdown=dict(program_points),
        ))
    return sort_standings(standings)


def team_standings(teams, participants, programs, assignments, scores, table):
    """Team total is the sum of its participants' totals."""
    board = Scoreboard(programs, assignments, scores, table)
    breakdown = board.points_by_participant()

    members = defaultdict(list)
    for participant in participants:
        members[participant.team_id].append(participant)

    standings = []
    for team in teams:
        member_points = {
            participant.id: sum(breakdown.get(participant.id, {}).values())
            for participant in members.get(team.id, [])
        }
        standings.append(Standing(
            entity=team,
            entity_id=team.id,
            name=team.name,
            total_points=sum(member_points.values()),
            breakdown=member_points,
        ))
    return sort_standings(standings)


@dataclass
class ProgramStatus:
    key: str
    text: str
    progress: int
    detail: str

    def to_dict(self):
        return {'key': self.key, 'text': self.text, 'progress': self.progress, 'detail': self.detail}


def program_status(program, assignments, scores, judge_count):
    """
    Derives where a program stands in its judging lifecycle:
    not_started -> reporting -> ready -> in_progress -> completed, with
    published overriding everything until the program is unpublished.
    """
    if program.is_published:
        return ProgramStatus('published', 'Published', 100, 'Results are live on the homepage.')

    active = [a for a in assignments if a.program_id == program.id and is_active(a)]
    if not active:
        return ProgramStatus('not_started', 'No Participants', 0, 'No one is assigned to this program.')

    reported_ids = {a.id for a in active if a.code_letter}
    reported_count = len(reported_ids)
    if reported_count == 0:
        return ProgramStatus('not_started', 'Not Started', 0, 'No participants reported.')

    if reported_count < len(active):
        progress = min(100, reported_count * 100 // len(active))
        return ProgramStatus('reporting', 'Reporting', progress,
                             f'{reported_count}/{len(active)} participants reported.')

    if judge_count == 0:
        return ProgramStatus('ready', 'No Judges', 50, 'All participants reported. No judges assigned.')

    actual = sum(1 for s in scores if s.assignment_id in reported_ids)
    expected = reported_count * judge_count
    if actual == 0:
        return ProgramStatus('ready', 'Ready for Judging', 50, 'All participants reported.')

    if actual < expected:
        progress = 50 + min(50, actual * 50 // expected)
        return ProgramStatus('in_progress', 'Judging In Progress', progress,
                             f'{actual}/{expected} scores submitted.')

    return ProgramStatus('completed', 'Completed', 100, 'All scores submitted.')
