# models/program.py

from sqlalchemy import CheckConstraint, UniqueConstraint
from extensions import db

PROGRAM_TYPES = ('individual', 'group')
PROGRAM_MODES = ('on-stage', 'off-stage')
MARK_TYPES = ('normal', 'special-mark')
JUDGING_STATUSES = ('open', 'closed')


class Program(db.Model):
    __tablename__ = 'programs'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('program_categories.id'), nullable=False)
    type = db.Column(db.String(20), nullable=False, default='individual')
    mode = db.Column(db.String(20), nullable=False, default='on-stage')
    mark_type = db.Column(db.String(20), nullable=False, default='normal')
    # Maximum number of assignments each team may make to this program
    participants_count = db.Column(db.Integer, nullable=False, default=1)
    group_members = db.Column(db.Integer, nullable=True)
    judging_status = db.Column(db.String(10), nullable=False, default='open')
    is_published = db.Column(db.Boolean, nullable=False, default=False)

    assignments = db.relationship('Assignment', backref='program', lazy=True, cascade="all, delete-orphan")
    judge_assignments = db.relationship('ProgramJudge', backref='program', lazy=True, cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("type IN ('individual', 'group')", name="check_program_type"),
        CheckConstraint("mode IN ('on-stage', 'off-stage')", name="check_program_mode"),
        CheckConstraint("mark_type IN ('normal', 'special-mark')", name="check_mark_type"),
        CheckConstraint("judging_status IN ('open', 'closed')", name="check_judging_status"),
        CheckConstraint("participants_count >= 1", name="check_participants_count"),
    )

    @property
    def category_name(self):
        return self.category.name if self.category else 'Unknown'

    @property
    def judge_ids(self):
        return [a.judge_id for a in self.judge_assignments]

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'categoryId': self.category_id,
            'categoryName': self.category_name,
            'type': self.type,
            'mode': self.mode,
            'markType': self.mark_type,
            'participantsCount': self.participants_count,
            'groupMembers': self.group_members,
            'judgingStatus': self.judging_status,
            'isPublished': self.is_published,
            'judges': self.judge_ids,
        }


class ProgramJudge(db.Model):
    __tablename__ = 'program_judges'
    id = db.Column(db.Integer, primary_key=True)
    judge_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    program_id = db.Column(db.Integer, db.ForeignKey('programs.id', ondelete='CASCADE'), nullable=False)

    judge = db.relationship('User')

    __table_args__ = (
        UniqueConstraint('judge_id', 'program_id', name='unique_judge_program'),
    )
