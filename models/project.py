# models/project.py

from extensions import db
from sqlalchemy import CheckConstraint

class Project(db.Model):
    __tablename__ = 'projects'
    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(220), unique=True, nullable=False)

    # Engagement counters, maintained by the feed and likes features
    likes_count = db.Column(db.Integer, nullable=False, default=0)
    views = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    __table_args__ = (
        CheckConstraint("likes_count >= 0", name="check_likes_count"),
        CheckConstraint("views >= 0", name="check_views"),
    )
