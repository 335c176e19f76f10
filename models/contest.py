# models/contest.py

from datetime import datetime

from extensions import db
from sqlalchemy import CheckConstraint

UPCOMING = 'upcoming'
ACTIVE = 'active'
JUDGING = 'judging'
COMPLETED = 'completed'


class Contest(db.Model):
    __tablename__ = 'contests'
    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(220), unique=True, nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)

    start_date = db.Column(db.DateTime, nullable=False)
    submission_deadline = db.Column(db.DateTime, nullable=False)
    winner_announce_date = db.Column(db.DateTime, nullable=False)
    max_participants = db.Column(db.Integer, nullable=True)

    # [{"name": ..., "type": "manual" | "likes" | "views", "weight": 40}, ...]
    metrics_config = db.Column(db.JSON, nullable=False, default=list)
    winners_revealed = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    creator = db.relationship('User')
    submissions = db.relationship('ContestSubmission', backref='contest', cascade="all, delete-orphan")
    judges = db.relationship('ContestJudge', backref='contest', cascade="all, delete-orphan")
    scores = db.relationship('ContestScore', backref='contest', cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("max_participants IS NULL OR max_participants > 0", name="check_max_participants"),
    )

    def status_at(self, now):
        if self.winners_revealed:
            return COMPLETED
        if now < self.start_date:
            return UPCOMING
        if now < self.submission_deadline:
            return ACTIVE
        if now < self.winner_announce_date:
            return JUDGING
        return COMPLETED

    @property
    def status(self):
        return self.status_at(datetime.now())

    def can_manage(self, user):
        return user is not None and (user.id == self.creator_id or user.is_admin)
