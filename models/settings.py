# models/settings.py
# Singleton configuration rows, each stored under a fixed key.

from extensions import db

POINTS_SETTINGS_KEY = 'gradeAndRankPoints'
FEST_SETTINGS_KEY = 'global'


class PointsSettings(db.Model):
    __tablename__ = 'points_settings'
    key = db.Column(db.String(40), primary_key=True, default=POINTS_SETTINGS_KEY)
    normal_grade_points = db.Column(db.JSON, nullable=False, default=dict)
    # program id (as string) -> grade -> points
    special_grade_points = db.Column(db.JSON, nullable=False, default=dict)
    rank_points = db.Column(db.JSON, nullable=False, default=dict)

    @classmethod
    def get(cls):
        return db.session.get(cls, POINTS_SETTINGS_KEY)

    def to_dict(self):
        return {
            'normalGradePoints': self.normal_grade_points or {},
            'specialGradePoints': self.special_grade_points or {},
            'rankPoints': self.rank_points or {},
        }


class FestSettings(db.Model):
    __tablename__ = 'fest_settings'
    key = db.Column(db.String(40), primary_key=True, default=FEST_SETTINGS_KEY)
    fest_name = db.Column(db.String(120), nullable=False, default='Fest Central')
    allow_team_assignment = db.Column(db.Boolean, nullable=False, default=True)

    @classmethod
    def get(cls):
        return db.session.get(cls, FEST_SETTINGS_KEY)

    def to_dict(self):
        return {'festName': self.fest_name, 'allowTeamAssignment': self.allow_team_assignment}
