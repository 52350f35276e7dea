# routes/stage.py
# Stage control: reporting, code letters and cancellations

from flask import Blueprint, request, jsonify

import logic
import scoring
from extensions import db
from models import Program, Assignment
from routes.auth import roles_required

stage_bp = Blueprint('stage', __name__, url_prefix='/stage')


def _reporting_summary(program):
    active = [a for a in program.assignments if not a.is_cancelled]
    reported = [a for a in active if a.code_letter]
    progress = len(reported) * 100 // len(active) if active else 0
    return {'activeCount': len(active), 'reportedCount': len(reported), 'progress': progress}


def _sorted_participants(program):
    # Reported entries first by letter, then the rest by chest number
    def key(a):
        return (a.code_letter is None, a.code_letter or '', a.participant.chest_number if a.participant else 0)
    return [a.to_dict() for a in sorted(program.assignments, key=key)]


@stage_bp.route('/programs')
@roles_required('stagecontroller', 'admin')
def programs():
    all_programs = Program.query.order_by(Program.name).all()
    statuses = logic.program_statuses(all_programs)
    rows = []
    for program in all_programs:
        row = program.to_dict()
        row.update(_reporting_summary(program))
        row['status'] = statuses[program.id].to_dict()
        rows.append(row)
    return jsonify({'status': 'success', 'programs': rows})


@stage_bp.route('/programs/<int:program_id>')
@roles_required('stagecontroller', 'admin')
def program_detail(program_id):
    program = db.get_or_404(Program, program_id)
    return jsonify({
        'status': 'success',
        'program': program.to_dict(),
        'summary': _reporting_summary(program),
        'codeLetterPool': logic.code_letter_pool(program),
        'participants': _sorted_participants(program),
    })


@stage_bp.route('/assignment/<int:assignment_id>/report', methods=['POST'])
@roles_required('stagecontroller', 'admin')
def report(assignment_id):
    assignment = db.get_or_404(Assignment, assignment_id)
    letter = logic.report_participant(assignment)
    return jsonify({
        'status': 'success',
        'codeLetter': letter,
        'message': f'{assignment.participant_name} has been assigned code letter {letter}.',
    })


@stage_bp.route('/assignment/<int:assignment_id>/code', methods=['POST'])
@roles_required('stagecontroller', 'admin')
def edit_code(assignment_id):
    assignment = db.get_or_404(Assignment, assignment_id)
    data = request.get_json(silent=True) or request.form
    letter = logic.set_code_letter(assignment, data.get('codeLetter'))
    return jsonify({'status': 'success', 'codeLetter': letter})


@stage_bp.route('/assignment/<int:assignment_id>/code/delete', methods=['POST'])
@roles_required('stagecontroller', 'admin')
def delete_code(assignment_id):
    assignment = db.get_or_404(Assignment, assignment_id)
    logic.delete_code_letter(assignment)
    return jsonify({'status': 'success', 'message': f'Code letter for {assignment.participant_name} has been removed.'})


@stage_bp.route('/assignment/<int:assignment_id>/cancel', methods=['POST'])
@roles_required('stagecontroller', 'admin')
def cancel(assignment_id):
    assignment = db.get_or_404(Assignment, assignment_id)
    if assignment.status == scoring.CANCELLED:
        return jsonify({'status': 'error', 'message': 'This participant is already cancelled.'}), 409
    logic.cancel_assignment(assignment)
    return jsonify({'status': 'success', 'message': f'{assignment.participant_name} has been marked as cancelled.'})


@stage_bp.route('/assignment/<int:assignment_id>/reenable', methods=['POST'])
@roles_required('stagecontroller', 'admin')
def reenable(assignment_id):
    assignment = db.get_or_404(Assignment, assignment_id)
    logic.reenable_assignment(assignment)
    return jsonify({'status': 'success', 'message': f'{assignment.participant_name} has been re-enabled.'})
