# models/category.py
# Program categories group programs; member categories group participants.

from extensions import db


class ProgramCategory(db.Model):
    __tablename__ = 'program_categories'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    # General categories are left out of the "specific" program filters
    is_general = db.Column(db.Boolean, nullable=False, default=False)

    programs = db.relationship('Program', backref='category', lazy=True)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'isGeneral': self.is_general}


class MemberCategory(db.Model):
    __tablename__ = 'member_categories'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)

    participants = db.relationship('Participant', backref='member_category', lazy=True)

    def to_dict(self):
        return {'id': self.id, 'name': self.name}
