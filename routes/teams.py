# routes/teams.py
# Team leader screens: roster, program assignment and the team's own report

from flask import Blueprint, request, jsonify, g

import logic
from extensions import db
from models import Team, Participant, Program, Assignment, MemberCategory
from routes.auth import roles_required

teams_bp = Blueprint('teams', __name__, url_prefix='/teams')


def _own_team():
    team = Team.query.filter_by(leader_id=g.user.id).first()
    if team is None:
        raise logic.AssignmentError('Could not find your team.', status_code=404)
    return team


@teams_bp.route('/dashboard')
@roles_required('team')
def dashboard():
    team = _own_team()
    participants = Participant.query.filter_by(team_id=team.id).count()
    assignments = Assignment.query.filter_by(team_id=team.id).count()
    return jsonify({
        'status': 'success',
        'team': team.to_dict(),
        'participantCount': participants,
        'assignmentCount': assignments,
        'settings': logic.get_fest_settings().to_dict(),
    })


@teams_bp.route('/participants', methods=['GET', 'POST'])
@roles_required('team')
def manage_participants():
    team = _own_team()
    if request.method == 'POST':
        data = request.get_json(silent=True) or request.form
        try:
            category_id = int(data.get('categoryId'))
        except (TypeError, ValueError):
            category_id = None
        if category_id is None or db.session.get(MemberCategory, category_id) is None:
            return jsonify({'status': 'error', 'message': 'Category is required.'}), 400
        participant = logic.add_participant(team, data.get('name'), category_id)
        return jsonify({'status': 'success', 'participant': participant.to_dict()}), 201

    participants = Participant.query.filter_by(team_id=team.id).order_by(Participant.chest_number).all()
    return jsonify({'status': 'success', 'participants': [p.to_dict() for p in participants]})


def _own_participant(team, participant_id):
    participant = db.get_or_404(Participant, participant_id)
    if participant.team_id != team.id:
        raise logic.AssignmentError('This participant belongs to another team.', status_code=403)
    return participant


@teams_bp.route('/participant/<int:participant_id>/edit', methods=['POST'])
@roles_required('team')
def edit_participant(participant_id):
    team = _own_team()
    participant = _own_participant(team, participant_id)
    data = request.get_json(silent=True) or request.form

    category_id = None
    if data.get('categoryId') not in (None, ''):
        try:
            category_id = int(data.get('categoryId'))
        except (TypeError, ValueError):
            category_id = None
        if category_id is None or db.session.get(MemberCategory, category_id) is None:
            return jsonify({'status': 'error', 'message': 'Unknown category.'}), 400

    logic.edit_participant(participant, data.get('name'), category_id)
    return jsonify({'status': 'success', 'participant': participant.to_dict()})


@teams_bp.route('/participant/<int:participant_id>/delete', methods=['POST'])
@roles_required('team')
def delete_participant(participant_id):
    team = _own_team()
    participant = _own_participant(team, participant_id)
    logic.delete_participant(participant)
    return jsonify({'status': 'success'})


@teams_bp.route('/programs')
@roles_required('team')
def programs():
    team = _own_team()
    by_program = {}
    for assignment in Assignment.query.filter_by(team_id=team.id).all():
        by_program.setdefault(assignment.program_id, []).append(assignment.to_dict())

    rows = []
    for program in Program.query.order_by(Program.name).all():
        row = program.to_dict()
        row['assignments'] = by_program.get(program.id, [])
        row['assignedCount'] = len(row['assignments'])
        rows.append(row)
    return jsonify({'status': 'success', 'programs': rows})


@teams_bp.route('/programs/<int:program_id>/assign', methods=['POST'])
@roles_required('team')
def assign(program_id):
    team = _own_team()
    program = db.get_or_404(Program, program_id)
    data = request.get_json(silent=True) or {}
    created = logic.assign_participants(team, program, data.get('participantIds') or [])
    return jsonify({'status': 'success', 'assignments': [a.to_dict() for a in created]})


@teams_bp.route('/assignment/<int:assignment_id>/delete', methods=['POST'])
@roles_required('team')
def unassign(assignment_id):
    team = _own_team()
    assignment = db.get_or_404(Assignment, assignment_id)
    if assignment.team_id != team.id:
        return jsonify({'status': 'error', 'message': 'This entry belongs to another team.'}), 403
    logic.remove_assignment(assignment)
    return jsonify({'status': 'success'})


@teams_bp.route('/reports')
@roles_required('team')
def reports():
    team = _own_team()
    standings = logic.participant_leaderboard(
        published_only=True,
        participants=Participant.query.filter_by(team_id=team.id).all(),
    )
    return jsonify({
        'status': 'success',
        'team': team.to_dict(),
        'totalPoints': sum(s.total_points for s in standings),
        'participants': [
            {'participantId': s.entity_id, 'name': s.name, 'totalPoints': s.total_points}
            for s in standings
        ],
    })
