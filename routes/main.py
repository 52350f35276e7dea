# routes/main.py
# Public pages: published results and the published team standings

from flask import Blueprint, jsonify

import logic
from models import PublishedResult, TeamStandings

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def home():
    results = PublishedResult.query.order_by(PublishedResult.result_number.desc()).all()
    standings = TeamStandings.get()
    return jsonify({
        'status': 'success',
        'festName': logic.get_fest_settings().fest_name,
        'results': [r.to_dict() for r in results],
        'standings': standings.to_dict() if standings else None,
    })


@main_bp.route('/results/<int:result_number>')
def published_result(result_number):
    result = PublishedResult.query.filter_by(result_number=result_number).first_or_404(
        description='Result not found.'
    )
    return jsonify({'status': 'success', 'result': result.to_dict()})
