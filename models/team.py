# models/team.py

from sqlalchemy import CheckConstraint
from extensions import db


class Team(db.Model):
    __tablename__ = 'teams'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    leader_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    starting_chest_number = db.Column(db.Integer, nullable=False, default=1)

    leader = db.relationship('User')
    participants = db.relationship('Participant', backref='team', lazy=True)

    __table_args__ = (
        CheckConstraint("starting_chest_number >= 1", name="check_starting_chest_number"),
    )

    @property
    def leader_name(self):
        return self.leader.name if self.leader else 'N/A'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'leaderId': self.leader_id,
            'leaderName': self.leader_name,
            'startingChestNumber': self.starting_chest_number,
        }
