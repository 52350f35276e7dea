# models/score.py

from sqlalchemy import CheckConstraint, UniqueConstraint
from extensions import db


class Score(db.Model):
    __tablename__ = 'scores'
    id = db.Column(db.Integer, primary_key=True)
    program_id = db.Column(db.Integer, db.ForeignKey('programs.id', ondelete='CASCADE'), nullable=False)
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignments.id', ondelete='CASCADE'), nullable=False)
    judge_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    score = db.Column(db.Float, nullable=False)
    review = db.Column(db.Text, nullable=True)
    scored_at = db.Column(db.DateTime, server_default=db.func.current_timestamp(),
                          onupdate=db.func.current_timestamp())

    judge = db.relationship('User')

    __table_args__ = (
        UniqueConstraint('assignment_id', 'judge_id', name='unique_assignment_judge'),
        CheckConstraint("score >= 0 AND score <= 100", name="check_score_range"),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'programId': self.program_id,
            'assignmentId': self.assignment_id,
            'judgeId': self.judge_id,
            'score': self.score,
            'review': self.review or '',
        }
