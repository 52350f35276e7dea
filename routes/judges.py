# routes/judges.py
# Judging point: a judge's assigned programs and the scoring sheet

from flask import Blueprint, request, jsonify, g

import logic
from extensions import db
from models import Program, ProgramJudge, Score
from routes.auth import roles_required

judges_bp = Blueprint('judges', __name__, url_prefix='/judges')


def _assigned_program(program_id):
    program = db.get_or_404(Program, program_id)
    if g.user.id not in program.judge_ids:
        raise logic.AssignmentError('You are not assigned to judge this program.', status_code=403)
    return program


@judges_bp.route('/dashboard')
@roles_required('judge')
def dashboard():
    links = ProgramJudge.query.filter_by(judge_id=g.user.id).all()
    own_scores = {}
    for score in Score.query.filter_by(judge_id=g.user.id).all():
        own_scores[score.program_id] = own_scores.get(score.program_id, 0) + 1

    pending, judged = [], []
    for link in links:
        program = link.program
        reported = [a for a in program.assignments if a.code_letter and not a.is_cancelled]
        row = program.to_dict()
        row['reportedCount'] = len(reported)
        row['scoredCount'] = own_scores.get(program.id, 0)
        if reported and row['scoredCount'] >= len(reported):
            judged.append(row)
        else:
            pending.append(row)
    return jsonify({'status': 'success', 'pending': pending, 'judged': judged})


@judges_bp.route('/judging/<int:program_id>', methods=['GET', 'POST'])
@roles_required('judge')
def judging_page(program_id):
    program = _assigned_program(program_id)

    if request.method == 'POST':
        data = request.get_json(silent=True) or {}
        saved = logic.save_scores(program, g.user, data.get('scores') or [])
        return jsonify({'status': 'success', 'saved': saved})

    # Judges only see code letters, never names
    existing = {
        s.assignment_id: s
        for s in Score.query.filter_by(program_id=program.id, judge_id=g.user.id).all()
    }
    sheet = []
    for assignment in sorted((a for a in program.assignments if a.code_letter), key=lambda a: a.code_letter):
        score = existing.get(assignment.id)
        sheet.append({
            'assignmentId': assignment.id,
            'codeLetter': assignment.code_letter,
            'status': assignment.status,
            'score': score.score if score else None,
            'review': score.review if score and score.review else '',
        })
    return jsonify({
        'status': 'success',
        'program': {
            'id': program.id,
            'name': program.name,
            'categoryName': program.category_name,
            'judgingStatus': program.judging_status,
        },
        'isJudgingClosed': program.judging_status == 'closed',
        'scores': sheet,
    })
