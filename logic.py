# logic.py
# Database-backed festival operations: reporting, judging, publishing and
# team rosters. Scoring itself lives in scoring.py; this module loads the rows,
# calls it, and writes the outcome back in one commit per operation.

import logging
import math
import random
import string
from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

import scoring
from extensions import db
from models import (
    Assignment, FestSettings, Participant, PointsSettings, Program, ProgramCategory,
    ProgramJudge, PublishedResult, Score, Team, TeamStandings,
)

logger = logging.getLogger(__name__)

CODE_LETTERS = string.ascii_uppercase
# Redraws allowed when a concurrent report claims the same letter first
CODE_LETTER_ATTEMPTS = 3


class FestError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AssignmentError(FestError):
    pass


class CodeLetterError(FestError):
    status_code = 409


class JudgingClosedError(FestError):
    status_code = 403


class ScoreValidationError(FestError):
    pass


class PublishError(FestError):
    status_code = 409


def _commit(message, error_class=FestError):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error('%s (%s)', message, e)
        raise error_class(message) from e


def _as_id(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# --- Settings ---

def load_points_table():
    settings = PointsSettings.get()
    if settings is None:
        return scoring.PointsTable()
    return scoring.PointsTable(
        normal_grade_points=settings.normal_grade_points or {},
        special_grade_points=settings.special_grade_points or {},
        rank_points=settings.rank_points or {},
    )


def get_fest_settings():
    """The saved settings row, or unsaved defaults when none exists yet."""
    settings = FestSettings.get()
    if settings is None:
        settings = FestSettings(
            fest_name=current_app.config.get('FEST_NAME', 'Fest Central'),
            allow_team_assignment=True,
        )
    return settings


def general_category_ids():
    return [c.id for c in ProgramCategory.query.filter_by(is_general=True).all()]


# --- Program status ---

def program_statuses(programs):
    """{program id: ProgramStatus} computed from one load of assignments and scores."""
    program_ids = [p.id for p in programs]
    if not program_ids:
        return {}
    assignments = Assignment.query.filter(Assignment.program_id.in_(program_ids)).all()
    scores = Score.query.filter(Score.program_id.in_(program_ids)).all()
    judge_counts = dict(
        db.session.query(ProgramJudge.program_id, func.count(ProgramJudge.id))
        .filter(ProgramJudge.program_id.in_(program_ids))
        .group_by(ProgramJudge.program_id)
        .all()
    )
    return {
        program.id: scoring.program_status(program, assignments, scores, judge_counts.get(program.id, 0))
        for program in programs
    }


# --- Reporting ---

def code_letter_pool(program):
    total = Assignment.query.filter_by(program_id=program.id).count()
    return list(CODE_LETTERS[:total])


def _used_code_letters(program_id, exclude_id=None):
    query = Assignment.query.filter(
        Assignment.program_id == program_id,
        Assignment.code_letter.isnot(None),
    )
    if exclude_id is not None:
        query = query.filter(Assignment.id != exclude_id)
    return {a.code_letter for a in query.all()}


def report_participant(assignment, rng=random):
    """
    Draws an unused code letter for a participant reporting to the stage.

    The letter is drawn uniformly from A.. up to the program's assignment
    count, skipping letters already held in the program. The unique
    (program, letter) constraint rejects a letter claimed concurrently, in
    which case the draw is repeated.
    """
    if assignment.is_cancelled:
        raise AssignmentError(f'{assignment.participant_name} is cancelled and cannot report.')
    if assignment.code_letter:
        raise CodeLetterError(f'{assignment.participant_name} has already been assigned a code.')

    pool = code_letter_pool(assignment.program)
    for _ in range(CODE_LETTER_ATTEMPTS):
        used = _used_code_letters(assignment.program_id)
        available = [letter for letter in pool if letter not in used]
        if not available:
            logger.warning('Code letter pool exhausted for program %s', assignment.program_id)
            raise CodeLetterError('No available code letters left for this program.')

        letter = rng.choice(available)
        assignment.code_letter = letter
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.warning('Code letter %s for program %s was taken concurrently, drawing again',
                           letter, assignment.program_id)
            continue

        logger.info('Assignment %s reported with code letter %s', assignment.id, letter)
        return letter

    raise CodeLetterError('Could not claim a code letter, please try again.')


def set_code_letter(assignment, letter):
    if assignment.is_cancelled:
        raise AssignmentError(f'{assignment.participant_name} is cancelled and cannot hold a code letter.')
    letter = (letter or '').strip().upper()
    if not letter:
        raise CodeLetterError('Code letter cannot be empty.')

    pool = code_letter_pool(assignment.program)
    if letter not in pool:
        raise CodeLetterError(f'Please enter a single letter from A to {pool[-1]}.')
    if letter in _used_code_letters(assignment.program_id, exclude_id=assignment.id):
        raise CodeLetterError(f'The letter {letter} is already in use for this program.')

    assignment.code_letter = letter
    _commit('Failed to update code letter.', CodeLetterError)
    logger.info('Assignment %s code letter set to %s', assignment.id, letter)
    return letter


def delete_code_letter(assignment):
    assignment.code_letter = None
    _commit('Failed to delete code letter.')
    logger.info('Code letter removed from assignment %s', assignment.id)


def cancel_assignment(assignment):
    # Cancelling also frees the letter; re-enabling does not give it back
    assignment.status = scoring.CANCELLED
    assignment.code_letter = None
    _commit('Failed to cancel participant.')
    logger.info('Assignment %s cancelled', assignment.id)


def reenable_assignment(assignment):
    assignment.status = None
    _commit('Failed to re-enable participant.')
    logger.info('Assignment %s re-enabled', assignment.id)


# --- Judging ---

def save_scores(program, judge, entries):
    """
    Upserts the judge's scores for a program in one commit, one Score per
    (assignment, judge). Entries without a score are skipped; a score for a
    cancelled or unreported assignment rejects the whole batch. Returns the
    number of scores saved.
    """
    if program.judging_status == 'closed':
        logger.warning('Judge %s tried to score closed program %s', judge.id, program.id)
        raise JudgingClosedError('This program has been closed by an admin. Scores can no longer be edited.')
    if judge.id not in program.judge_ids:
        raise AssignmentError('You are not assigned to judge this program.', status_code=403)

    assignments = {a.id: a for a in program.assignments}
    # Keyed by assignment so a repeated entry in one batch keeps only the last value
    to_save = {}
    for entry in entries:
        raw_score = entry.get('score')
        if raw_score is None or raw_score == '':
            continue

        assignment = assignments.get(_as_id(entry.get('assignmentId')))
        if assignment is None:
            raise AssignmentError('Assignment does not belong to this program.')
        if assignment.is_cancelled:
            raise AssignmentError(f'{assignment.participant_name} has been cancelled.')
        if not assignment.code_letter:
            raise AssignmentError(f'{assignment.participant_name} has not reported yet.')

        try:
            value = float(raw_score)
        except (TypeError, ValueError):
            raise ScoreValidationError('Score must be a number.')
        if math.isnan(value) or value < 0 or value > 100:
            raise ScoreValidationError('Score must be between 0 and 100.')

        to_save[assignment.id] = (assignment, value, entry.get('review') or '')

    if not to_save:
        raise ScoreValidationError('Please enter at least one score before saving.')

    existing = {
        s.assignment_id: s
        for s in Score.query.filter_by(program_id=program.id, judge_id=judge.id).all()
    }
    for assignment, value, review in to_save.values():
        score = existing.get(assignment.id)
        if score:
            score.score = value
            score.review = review
        else:
            db.session.add(Score(
                program_id=program.id,
                assignment_id=assignment.id,
                judge_id=judge.id,
                score=value,
                review=review,
            ))

    _commit('Failed to save scores.')
    logger.info('Judge %s saved %d score(s) for program %s', judge.id, len(to_save), program.id)
    return len(to_save)


# --- Results and leaderboards ---

def program_results(program, table=None):
    scores = Score.query.filter_by(program_id=program.id).all()
    return scoring.score_program(program, program.assignments, scores, table or load_points_table())


def _leaderboard_rows(program_filter, published_only):
    programs = scoring.filter_programs(
        Program.query.all(), program_filter, general_category_ids(), published_only
    )
    program_ids = [p.id for p in programs]
    if not program_ids:
        return programs, [], []
    assignments = Assignment.query.filter(Assignment.program_id.in_(program_ids)).all()
    scores = Score.query.filter(Score.program_id.in_(program_ids)).all()
    return programs, assignments, scores


def participant_leaderboard(program_filter='all', published_only=True, participants=None):
    programs, assignments, scores = _leaderboard_rows(program_filter, published_only)
    if participants is None:
        participants = Participant.query.all()
    return scoring.participant_standings(participants, programs, assignments, scores, load_points_table())


def team_leaderboard(published_only=True):
    programs, assignments, scores = _leaderboard_rows('all', published_only)
    return scoring.team_standings(
        Team.query.all(), Participant.query.all(), programs, assignments, scores, load_points_table()
    )


def team_standing_rows(standings):
    return [
        {
            'teamId': s.entity_id,
            'teamName': s.name,
            'leaderName': s.entity.leader_name,
            'totalPoints': s.total_points,
        }
        for s in standings
    ]


# --- Publishing ---

def _winner_entry(result):
    participant = result.assignment.participant
    return {
        'name': participant.name,
        'teamName': participant.team.name if participant.team else 'Unknown Team',
    }


def publish_program_result(program):
    """
    Freezes the program's podium into a numbered published result, marks the
    program published and closes judging. All three writes share one commit.
    """
    if program.is_published:
        raise PublishError('Results for this program are already published.')

    results = program_results(program)
    winners = {
        rank: [_winner_entry(result) for result in group]
        for rank, group in scoring.podium(results).items()
    }

    try:
        last_number = db.session.query(func.max(PublishedResult.result_number)).scalar()
        snapshot = PublishedResult(
            program_id=program.id,
            program_name=program.name,
            category_name=program.category_name,
            result_number=(last_number or 0) + 1,
            winners=winners,
        )
        db.session.add(snapshot)
        program.is_published = True
        program.judging_status = 'closed'
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error('Publishing program %s failed: %s', program.id, e)
        raise PublishError('Failed to publish results.') from e

    logger.info('Program %s published as result #%d', program.id, snapshot.result_number)
    return snapshot


def unpublish_program_result(program):
    """Removes the snapshot and hides the program's results; judging stays closed."""
    snapshot = PublishedResult.query.filter_by(program_id=program.id).first()
    if snapshot is None:
        raise PublishError('Published result not found.', status_code=404)

    try:
        db.session.delete(snapshot)
        program.is_published = False
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error('Unpublishing program %s failed: %s', program.id, e)
        raise PublishError('Failed to unpublish results.') from e

    logger.info('Program %s unpublished', program.id)


def publish_team_standings():
    """Replaces the public team standings with the current published-only totals."""
    rows = team_standing_rows(team_leaderboard(published_only=True))
    # Counted before the new row joins the session, autoflush would insert it early
    result_count = PublishedResult.query.count()
    published_at = datetime.now()

    standings = TeamStandings.get()
    if standings is None:
        standings = TeamStandings(published_at=published_at)
        db.session.add(standings)
    standings.results = rows
    standings.published_at_result_count = result_count
    standings.published_at = published_at
    _commit('Failed to publish team standings.', PublishError)
    logger.info('Team standings published at result count %d', standings.published_at_result_count)
    return standings


# --- Team rosters ---

def add_participant(team, name, member_category_id=None):
    name = (name or '').strip()
    if not name:
        raise AssignmentError('Participant name is required.')

    chest_number = team.starting_chest_number + Participant.query.filter_by(team_id=team.id).count()
    participant = Participant(
        name=name,
        chest_number=chest_number,
        team_id=team.id,
        member_category_id=member_category_id,
    )
    db.session.add(participant)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise AssignmentError(f'Chest number {chest_number} is already taken.', status_code=409) from e
    logger.info('Participant %s added to team %s with chest number %d', participant.id, team.id, chest_number)
    return participant


def edit_participant(participant, name=None, member_category_id=None):
    """Renames or recategorises a participant; the chest number never changes."""
    if name is not None:
        name = name.strip()
        if not name:
            raise AssignmentError('Participant name is required.')
        participant.name = name
    if member_category_id is not None:
        participant.member_category_id = member_category_id
    _commit('Failed to update participant.', AssignmentError)
    logger.info('Participant %s updated', participant.id)
    return participant


def delete_participant(participant):
    participant_id = participant.id
    scored = (
        Score.query.join(Assignment, Score.assignment_id == Assignment.id)
        .filter(Assignment.participant_id == participant_id)
        .first()
    )
    if scored:
        raise AssignmentError(
            f'{participant.name} already has scores and cannot be deleted; cancel the entries instead.',
            status_code=409,
        )
    for assignment in Assignment.query.filter_by(participant_id=participant_id).all():
        db.session.delete(assignment)
    db.session.delete(participant)
    _commit('Failed to delete participant.', AssignmentError)
    logger.info('Participant %s deleted', participant_id)


def _check_team_assignment_open():
    if not get_fest_settings().allow_team_assignment:
        raise AssignmentError('Program assignment is currently closed by the admin.', status_code=403)


def assign_participants(team, program, participant_ids):
    _check_team_assignment_open()

    members = {p.id: p for p in Participant.query.filter_by(team_id=team.id).all()}
    already = {
        a.participant_id
        for a in Assignment.query.filter_by(program_id=program.id, team_id=team.id).all()
    }
    new_ids = []
    for raw_id in participant_ids:
        participant_id = _as_id(raw_id)
        if participant_id not in members:
            raise AssignmentError('Participant does not belong to your team.', status_code=403)
        if participant_id not in already and participant_id not in new_ids:
            new_ids.append(participant_id)

    if len(already) + len(new_ids) > program.participants_count:
        raise AssignmentError(
            f'You can only assign up to {program.participants_count} participant(s) for this program.'
        )

    created = []
    for participant_id in new_ids:
        assignment = Assignment(program_id=program.id, participant_id=participant_id, team_id=team.id)
        db.session.add(assignment)
        created.append(assignment)
    _commit('Failed to assign participants.', AssignmentError)
    logger.info('Team %s assigned %d participant(s) to program %s', team.id, len(created), program.id)
    return created


def remove_assignment(assignment):
    _check_team_assignment_open()
    if Score.query.filter_by(assignment_id=assignment.id).first():
        raise AssignmentError('This participant already has scores; cancel the entry instead.', status_code=409)
    db.session.delete(assignment)
    _commit('Failed to remove assignment.', AssignmentError)
    logger.info('Assignment %s removed', assignment.id)
