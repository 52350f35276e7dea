# models/published.py
# Frozen snapshots written by the publish actions.

from extensions import db

TEAM_STANDINGS_KEY = 'team_marks'


class PublishedResult(db.Model):
    __tablename__ = 'published_results'
    id = db.Column(db.Integer, primary_key=True)
    program_id = db.Column(db.Integer, db.ForeignKey('programs.id', ondelete='CASCADE'), unique=True, nullable=False)
    program_name = db.Column(db.String(160), nullable=False)
    category_name = db.Column(db.String(120), nullable=False)
    result_number = db.Column(db.Integer, unique=True, nullable=False)
    # {"1": [{"name": ..., "teamName": ...}], "2": [...], "3": [...]}
    winners = db.Column(db.JSON, nullable=False, default=dict)
    published_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    def to_dict(self):
        return {
            'id': self.id,
            'programId': self.program_id,
            'programName': self.program_name,
            'categoryName': self.category_name,
            'resultNumber': self.result_number,
            'winners': self.winners,
            'publishedAt': self.published_at.isoformat() if self.published_at else None,
        }


class TeamStandings(db.Model):
    __tablename__ = 'team_standings'
    key = db.Column(db.String(40), primary_key=True, default=TEAM_STANDINGS_KEY)
    # [{"teamId", "teamName", "leaderName", "totalPoints"}, ...] in standing order
    results = db.Column(db.JSON, nullable=False, default=list)
    published_at_result_count = db.Column(db.Integer, nullable=False, default=0)
    published_at = db.Column(db.DateTime, nullable=False)

    @classmethod
    def get(cls):
        return db.session.get(cls, TEAM_STANDINGS_KEY)

    def to_dict(self):
        return {
            'results': self.results,
            'publishedAtResultCount': self.published_at_result_count,
            'publishedAt': self.published_at.isoformat() if self.published_at else None,
        }
