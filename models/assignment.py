# models/assignment.py

from sqlalchemy import CheckConstraint, UniqueConstraint
from extensions import db


class Assignment(db.Model):
    __tablename__ = 'assignments'
    id = db.Column(db.Integer, primary_key=True)
    program_id = db.Column(db.Integer, db.ForeignKey('programs.id', ondelete='CASCADE'), nullable=False)
    participant_id = db.Column(db.Integer, db.ForeignKey('participants.id', ondelete='CASCADE'), nullable=False)
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    # Set when the participant reports to the stage
    code_letter = db.Column(db.String(1), nullable=True)
    status = db.Column(db.String(20), nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    scores = db.relationship('Score', backref='assignment', lazy=True)

    __table_args__ = (
        UniqueConstraint('program_id', 'participant_id', name='unique_program_participant'),
        # NULLs do not collide, so only drawn letters are checked
        UniqueConstraint('program_id', 'code_letter', name='unique_program_code_letter'),
        CheckConstraint("status IN ('cancelled') OR status IS NULL", name="check_assignment_status"),
    )

    @property
    def is_cancelled(self):
        return self.status == 'cancelled'

    @property
    def participant_name(self):
        return self.participant.name if self.participant else 'Unknown'

    def to_dict(self):
        return {
            'id': self.id,
            'programId': self.program_id,
            'participantId': self.participant_id,
            'participantName': self.participant_name,
            'chestNumber': self.participant.chest_number if self.participant else None,
            'teamId': self.team_id,
            'codeLetter': self.code_letter,
            'status': self.status,
        }
