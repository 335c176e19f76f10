from extensions import db
from sqlalchemy import CheckConstraint

class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), unique=True, nullable=False)
    username = db.Column(db.String(100), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), nullable=True, index=True)
    role = db.Column(db.String, nullable=False, default='user')
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    projects = db.relationship('Project', backref='owner', cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="check_role"),
    )

    @property
    def is_admin(self):
        return self.role == 'admin'
