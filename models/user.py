# models/user.py

from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy import CheckConstraint
from extensions import db

ROLES = ('admin', 'judge', 'team', 'stagecontroller')


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    login = db.Column(db.String(64), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'judge', 'team', 'stagecontroller')", name="check_role"),
    )

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {'id': self.id, 'login': self.login, 'name': self.name, 'role': self.role}
