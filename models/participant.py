# models/participant.py

from extensions import db


class Participant(db.Model):
    __tablename__ = 'participants'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    chest_number = db.Column(db.Integer, unique=True, nullable=False)
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    member_category_id = db.Column(db.Integer, db.ForeignKey('member_categories.id'), nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    assignments = db.relationship('Assignment', backref='participant', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'chestNumber': self.chest_number,
            'teamId': self.team_id,
            'teamName': self.team.name if self.team else 'Unknown Team',
            'categoryId': self.member_category_id,
            'categoryName': self.member_category.name if self.member_category else 'Unknown',
        }
