# routes/admin.py
# Admin screens: access control, teams, categories, programs, points tables,
# results with publishing, team marks and top candidates.

from flask import Blueprint, request, jsonify, g
from sqlalchemy.exc import IntegrityError

import logic
import scoring
from extensions import db
from models import (
    User, Team, ProgramCategory, MemberCategory, Participant, Program, ProgramJudge,
    Assignment, Score, PointsSettings, FestSettings, PublishedResult, TeamStandings,
)
from models.user import ROLES
from models.program import PROGRAM_TYPES, PROGRAM_MODES, MARK_TYPES, JUDGING_STATUSES
from routes.auth import roles_required

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

CATEGORY_MODELS = {
    'program': ProgramCategory,
    'member': MemberCategory,
}


def _payload():
    return request.get_json(silent=True) or request.form


def _error(message, code=400):
    return jsonify({'status': 'error', 'message': message}), code


def _as_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def _as_int(value, field_name):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f'{field_name} must be a whole number.')


# --- Access central (users) ---

@admin_bp.route('/users', methods=['GET', 'POST'])
@roles_required('admin')
def manage_users():
    if request.method == 'POST':
        data = _payload()
        login_name = (data.get('login') or '').strip()
        name = (data.get('name') or '').strip()
        role = data.get('role')
        password = data.get('password') or ''

        if not login_name or not name or role not in ROLES:
            return _error('Login, name and a valid role are required.')
        if len(password) < 6:
            return _error('Password must be at least 6 characters.')

        user = User(login=login_name, name=name, role=role)
        user.set_password(password)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return _error(f'A user with login {login_name} already exists.', 409)
        return jsonify({'status': 'success', 'user': user.to_dict()}), 201

    users = User.query.order_by(User.created_at.desc()).all()
    return jsonify({'status': 'success', 'users': [u.to_dict() for u in users]})


@admin_bp.route('/user/<int:user_id>/edit', methods=['POST'])
@roles_required('admin')
def edit_user(user_id):
    user = db.get_or_404(User, user_id)
    data = _payload()

    role = data.get('role', user.role)
    if role not in ROLES:
        return _error('Unknown role.')
    user.name = (data.get('name') or user.name).strip()
    user.role = role
    if data.get('password'):
        if len(data['password']) < 6:
            return _error('Password must be at least 6 characters.')
        user.set_password(data['password'])

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return _error('Failed to update user.', 409)
    return jsonify({'status': 'success', 'user': user.to_dict()})


@admin_bp.route('/user/<int:user_id>/delete', methods=['POST'])
@roles_required('admin')
def delete_user(user_id):
    if user_id == g.user.id:
        return _error('You cannot delete your own account.')

    user = db.get_or_404(User, user_id)
    if Score.query.filter_by(judge_id=user.id).first():
        return _error(f'{user.name} has already submitted scores and cannot be deleted.', 409)
    if Team.query.filter_by(leader_id=user.id).first():
        return _error(f'{user.name} leads a team. Assign a new leader before deleting.', 409)

    ProgramJudge.query.filter_by(judge_id=user.id).delete()
    try:
        db.session.delete(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return _error('This user is linked to other data and cannot be deleted.', 409)
    return jsonify({'status': 'success'})


# --- Teams ---

@admin_bp.route('/teams', methods=['GET', 'POST'])
@roles_required('admin')
def manage_teams():
    if request.method == 'POST':
        data = _payload()
        name = (data.get('name') or '').strip()
        try:
            leader_id = _as_int(data.get('leaderId'), 'Team leader')
            starting_chest_number = _as_int(data.get('startingChestNumber'), 'Starting chest number')
        except ValueError as e:
            return _error(str(e))

        leader = db.session.get(User, leader_id)
        if not name or leader is None or leader.role != 'team':
            return _error('Team name and a team leader account are required.')
        if starting_chest_number < 1:
            return _error('Starting chest number must be at least 1.')

        team = Team(name=name, leader_id=leader_id, starting_chest_number=starting_chest_number)
        db.session.add(team)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return _error(f'Team "{name}" already exists.', 409)
        return jsonify({'status': 'success', 'team': team.to_dict()}), 201

    teams = Team.query.order_by(Team.name).all()
    return jsonify({'status': 'success', 'teams': [t.to_dict() for t in teams]})


@admin_bp.route('/team/<int:team_id>/edit', methods=['POST'])
@roles_required('admin')
def edit_team(team_id):
    team = db.get_or_404(Team, team_id)
    data = _payload()
    try:
        if data.get('name'):
            team.name = data['name'].strip()
        if data.get('leaderId') is not None:
            team.leader_id = _as_int(data['leaderId'], 'Team leader')
        if data.get('startingChestNumber') is not None:
            team.starting_chest_number = _as_int(data['startingChestNumber'], 'Starting chest number')
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        return _error(str(e))
    except IntegrityError:
        db.session.rollback()
        return _error('A team with that name already exists.', 409)
    return jsonify({'status': 'success', 'team': team.to_dict()})


@admin_bp.route('/team/<int:team_id>/delete', methods=['POST'])
@roles_required('admin')
def delete_team(team_id):
    team = db.get_or_404(Team, team_id)
    if Participant.query.filter_by(team_id=team.id).first():
        return _error('Remove the team\'s participants before deleting it.', 409)
    db.session.delete(team)
    db.session.commit()
    return jsonify({'status': 'success'})


# --- Categories ---

@admin_bp.route('/categories/<kind>', methods=['GET', 'POST'])
@roles_required('admin')
def manage_categories(kind):
    model = CATEGORY_MODELS.get(kind)
    if model is None:
        return _error('Unknown category type.', 404)

    if request.method == 'POST':
        data = _payload()
        name = (data.get('name') or '').strip()
        if not name:
            return _error('Category name is required.')
        category = model(name=name)
        if model is ProgramCategory:
            category.is_general = _as_bool(data.get('isGeneral', False))
        db.session.add(category)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return _error(f'Category "{name}" already exists.', 409)
        return jsonify({'status': 'success', 'category': category.to_dict()}), 201

    categories = model.query.order_by(model.name).all()
    return jsonify({'status': 'success', 'categories': [c.to_dict() for c in categories]})


@admin_bp.route('/category/<kind>/<int:category_id>/edit', methods=['POST'])
@roles_required('admin')
def edit_category(kind, category_id):
    model = CATEGORY_MODELS.get(kind)
    if model is None:
        return _error('Unknown category type.', 404)
    category = db.get_or_404(model, category_id)
    data = _payload()
    if data.get('name'):
        category.name = data['name'].strip()
    if model is ProgramCategory and 'isGeneral' in data:
        category.is_general = _as_bool(data['isGeneral'])
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return _error('A category with that name already exists.', 409)
    return jsonify({'status': 'success', 'category': category.to_dict()})


@admin_bp.route('/category/<kind>/<int:category_id>/delete', methods=['POST'])
@roles_required('admin')
def delete_category(kind, category_id):
    model = CATEGORY_MODELS.get(kind)
    if model is None:
        return _error('Unknown category type.', 404)
    category = db.get_or_404(model, category_id)
    in_use = category.programs if model is ProgramCategory else category.participants
    if in_use:
        return _error(f'Category "{category.name}" is still in use.', 409)
    db.session.delete(category)
    db.session.commit()
    return jsonify({'status': 'success'})


# --- Programs ---

def _apply_program_fields(program, data):
    """Copies validated form fields onto the program. Raises ValueError on bad input."""
    name = (data.get('name', program.name) or '').strip()
    if not name:
        raise ValueError('Program name is required.')
    category_id = _as_int(data.get('categoryId', program.category_id), 'Category')
    if db.session.get(ProgramCategory, category_id) is None:
        raise ValueError('Category is required.')

    program_type = data.get('type', program.type or 'individual')
    mode = data.get('mode', program.mode or 'on-stage')
    mark_type = data.get('markType', program.mark_type or 'normal')
    judging_status = data.get('judgingStatus', program.judging_status or 'open')
    if program_type not in PROGRAM_TYPES:
        raise ValueError('Program type must be individual or group.')
    if mode not in PROGRAM_MODES:
        raise ValueError('Mode must be on-stage or off-stage.')
    if mark_type not in MARK_TYPES:
        raise ValueError('Mark type must be normal or special-mark.')
    if judging_status not in JUDGING_STATUSES:
        raise ValueError('Judging status must be open or closed.')

    participants_count = _as_int(data.get('participantsCount', program.participants_count or 1), 'Number of participants')
    if participants_count < 1:
        raise ValueError('Number of participants is required.')

    group_members = data.get('groupMembers', program.group_members)
    if program_type == 'group':
        if group_members in (None, ''):
            raise ValueError('Number of group members is required for group programs.')
        group_members = _as_int(group_members, 'Number of group members')
        if group_members < 1:
            raise ValueError('Number of group members is required for group programs.')
    else:
        group_members = None

    program.name = name
    program.category_id = category_id
    program.type = program_type
    program.mode = mode
    program.mark_type = mark_type
    program.judging_status = judging_status
    program.participants_count = participants_count
    program.group_members = group_members


def _set_program_judges(program, judge_ids):
    judges = []
    for judge_id in judge_ids:
        judge = db.session.get(User, _as_int(judge_id, 'Judge'))
        if judge is None or judge.role != 'judge':
            raise ValueError(f'User {judge_id} is not a judge.')
        judges.append(judge)

    wanted = {j.id for j in judges}
    for link in list(program.judge_assignments):
        if link.judge_id not in wanted:
            program.judge_assignments.remove(link)
    current = set(program.judge_ids)
    for judge in judges:
        if judge.id not in current:
            program.judge_assignments.append(ProgramJudge(judge_id=judge.id))
            current.add(judge.id)


@admin_bp.route('/programs', methods=['GET', 'POST'])
@roles_required('admin')
def manage_programs():
    if request.method == 'POST':
        data = _payload()
        program = Program()
        try:
            _apply_program_fields(program, data)
            db.session.add(program)
            _set_program_judges(program, data.get('judges') or [])
            db.session.commit()
        except ValueError as e:
            db.session.rollback()
            return _error(str(e))
        except IntegrityError:
            db.session.rollback()
            return _error('Could not save the program.', 409)
        return jsonify({'status': 'success', 'program': program.to_dict()}), 201

    programs = Program.query.order_by(Program.name).all()
    return jsonify({'status': 'success', 'programs': [p.to_dict() for p in programs]})


@admin_bp.route('/program/<int:program_id>/edit', methods=['POST'])
@roles_required('admin')
def edit_program(program_id):
    program = db.get_or_404(Program, program_id)
    data = _payload()
    try:
        _apply_program_fields(program, data)
        if 'judges' in data:
            _set_program_judges(program, data.get('judges') or [])
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        return _error(str(e))
    except IntegrityError:
        db.session.rollback()
        return _error('Could not save the program.', 409)
    return jsonify({'status': 'success', 'program': program.to_dict()})


@admin_bp.route('/program/<int:program_id>/delete', methods=['POST'])
@roles_required('admin')
def delete_program(program_id):
    program = db.get_or_404(Program, program_id)
    if Score.query.filter_by(program_id=program.id).first():
        return _error('This program already has scores and cannot be deleted.', 409)
    PublishedResult.query.filter_by(program_id=program.id).delete()
    db.session.delete(program)
    db.session.commit()
    return jsonify({'status': 'success'})


@admin_bp.route('/program/<int:program_id>/judging', methods=['POST'])
@roles_required('admin')
def set_judging_status(program_id):
    program = db.get_or_404(Program, program_id)
    status = _payload().get('judgingStatus')
    if status not in JUDGING_STATUSES:
        return _error('Judging status must be open or closed.')
    program.judging_status = status
    db.session.commit()
    return jsonify({'status': 'success', 'program': program.to_dict()})


# --- Points and settings ---

def _clean_points_table(table, keys=None):
    if not isinstance(table, dict):
        raise ValueError('Points tables must be objects.')
    cleaned = {}
    for key, value in table.items():
        if keys is not None and key not in keys:
            continue
        try:
            cleaned[key] = float(value)
        except (TypeError, ValueError):
            raise ValueError(f'Points for "{key}" must be a number.')
        if cleaned[key] < 0:
            raise ValueError(f'Points for "{key}" cannot be negative.')
    return cleaned


@admin_bp.route('/points', methods=['GET', 'POST'])
@roles_required('admin')
def manage_points():
    settings = PointsSettings.get()
    if request.method == 'POST':
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _error('Points tables must be sent as a JSON object.')
        grades = [grade for grade, _ in scoring.GRADE_BANDS]
        try:
            normal = _clean_points_table(data.get('normalGradePoints') or {}, grades)
            ranks = _clean_points_table(data.get('rankPoints') or {}, scoring.RANK_KEYS.values())
            special = {}
            for program_id, table in (data.get('specialGradePoints') or {}).items():
                program = db.session.get(Program, _as_int(program_id, 'Program'))
                if program is None:
                    raise ValueError(f'Program {program_id} does not exist.')
                special[str(program.id)] = _clean_points_table(table, grades)
        except ValueError as e:
            return _error(str(e))

        if settings is None:
            settings = PointsSettings()
            db.session.add(settings)
        settings.normal_grade_points = normal
        settings.rank_points = ranks
        settings.special_grade_points = special
        db.session.commit()

    if settings is None:
        empty = {'normalGradePoints': {}, 'specialGradePoints': {}, 'rankPoints': {}}
        return jsonify({'status': 'success', 'points': empty})
    return jsonify({'status': 'success', 'points': settings.to_dict()})


@admin_bp.route('/settings', methods=['GET', 'POST'])
@roles_required('admin')
def manage_settings():
    settings = logic.get_fest_settings()
    if request.method == 'POST':
        data = _payload()
        if FestSettings.get() is None:
            db.session.add(settings)
        if data.get('festName'):
            settings.fest_name = data['festName'].strip()
        if 'allowTeamAssignment' in data:
            settings.allow_team_assignment = _as_bool(data['allowTeamAssignment'])
        db.session.commit()
    return jsonify({'status': 'success', 'settings': settings.to_dict()})


# --- Results ---

@admin_bp.route('/results')
@roles_required('admin')
def admin_results_view():
    programs = Program.query.order_by(Program.name).all()
    statuses = logic.program_statuses(programs)
    board = []
    for program in programs:
        entry = program.to_dict()
        entry['status'] = statuses[program.id].to_dict()
        board.append(entry)

    counts = {}
    for entry in board:
        key = entry['status']['key']
        counts[key] = counts.get(key, 0) + 1
    return jsonify({'status': 'success', 'programs': board, 'counts': counts})


def _program_result_rows(program):
    judge_names = {pj.judge_id: pj.judge.name for pj in program.judge_assignments}
    rows = []
    for result in logic.program_results(program):
        participant = result.assignment.participant
        rows.append({
            'assignmentId': result.assignment_id,
            'participantId': participant.id,
            'name': participant.name,
            'chestNumber': participant.chest_number,
            'codeLetter': result.assignment.code_letter or 'N/A',
            'teamName': participant.team.name if participant.team else 'Unknown Team',
            'averageScore': result.average_score,
            'grade': result.grade,
            'rank': result.rank,
            'points': result.points,
            'judgeScores': [
                {
                    'judgeName': judge_names.get(s.judge_id) or (s.judge.name if s.judge else 'Unknown Judge'),
                    'score': s.score,
                    'review': s.review or '',
                }
                for s in result.scores
            ],
        })
    return rows


@admin_bp.route('/results/<int:program_id>')
@roles_required('admin')
def program_result(program_id):
    program = db.get_or_404(Program, program_id)
    status = logic.program_statuses([program])[program.id]
    return jsonify({
        'status': 'success',
        'program': program.to_dict(),
        'programStatus': status.to_dict(),
        'results': _program_result_rows(program),
    })


@admin_bp.route('/results/<int:program_id>/publish', methods=['POST'])
@roles_required('admin')
def publish_result(program_id):
    program = db.get_or_404(Program, program_id)
    snapshot = logic.publish_program_result(program)
    return jsonify({'status': 'success', 'result': snapshot.to_dict()})


@admin_bp.route('/results/<int:program_id>/unpublish', methods=['POST'])
@roles_required('admin')
def unpublish_result(program_id):
    program = db.get_or_404(Program, program_id)
    logic.unpublish_program_result(program)
    return jsonify({'status': 'success', 'program': program.to_dict()})


# --- Team marks ---

@admin_bp.route('/team-marks')
@roles_required('admin')
def team_marks():
    view = request.args.get('view', 'published')
    if view not in ('live', 'published'):
        return _error('View must be live or published.')

    standings = logic.team_leaderboard(published_only=(view == 'published'))
    last_published = TeamStandings.get()
    return jsonify({
        'status': 'success',
        'view': view,
        'results': logic.team_standing_rows(standings),
        'publishedResultsCount': PublishedResult.query.count(),
        'lastPublished': last_published.to_dict() if last_published else None,
    })


@admin_bp.route('/team-marks/publish', methods=['POST'])
@roles_required('admin')
def publish_team_marks():
    standings = logic.publish_team_standings()
    return jsonify({'status': 'success', 'standings': standings.to_dict()})


@admin_bp.route('/team-marks/<int:team_id>')
@roles_required('admin')
def team_marks_detail(team_id):
    team = db.get_or_404(Team, team_id)
    view = request.args.get('view', 'published')
    standings = logic.participant_leaderboard(
        published_only=(view != 'live'),
        participants=Participant.query.filter_by(team_id=team.id).all(),
    )
    return jsonify({
        'status': 'success',
        'team': team.to_dict(),
        'totalPoints': sum(s.total_points for s in standings),
        'participants': [
            {
                'participantId': s.entity_id,
                'name': s.name,
                'chestNumber': s.entity.chest_number,
                'totalPoints': s.total_points,
            }
            for s in standings
        ],
    })


# --- Top candidates ---

@admin_bp.route('/top-candidates')
@roles_required('admin')
def top_candidates():
    program_filter = request.args.get('filter', 'all')
    view = request.args.get('view', 'published')
    try:
        standings = logic.participant_leaderboard(program_filter, published_only=(view != 'live'))
    except ValueError as e:
        return _error(str(e))

    team_filter = request.args.get('team', 'all')
    category_filter = request.args.get('category', 'all')
    search = (request.args.get('search') or '').strip().lower()

    rows = []
    for standing in standings:
        row = standing.entity.to_dict()
        row['participantId'] = row.pop('id')
        row['totalPoints'] = standing.total_points
        if team_filter != 'all' and row['teamName'] != team_filter:
            continue
        if category_filter != 'all' and str(row['categoryId']) != category_filter:
            continue
        if search and search not in row['name'].lower() and search not in str(row['chestNumber']):
            continue
        rows.append(row)
    return jsonify({'status': 'success', 'filter': program_filter, 'results': rows})


@admin_bp.route('/top-candidates/<int:participant_id>')
@roles_required('admin')
def top_candidate_detail(participant_id):
    participant = db.get_or_404(Participant, participant_id)
    view = request.args.get('view', 'published')
    standing = logic.participant_leaderboard(published_only=(view != 'live'), participants=[participant])[0]

    programs = {
        a.program_id: a.program
        for a in Assignment.query.filter_by(participant_id=participant.id).all()
    }
    breakdown = [
        {
            'programId': program_id,
            'programName': programs[program_id].name if program_id in programs else 'Unknown',
            'points': points,
        }
        for program_id, points in sorted(standing.breakdown.items(), key=lambda item: -item[1])
    ]
    return jsonify({
        'status': 'success',
        'participant': participant.to_dict(),
        'totalPoints': standing.total_points,
        'programs': breakdown,
    })
