# models/judge.py

from extensions import db
from datetime import datetime

class ContestJudge(db.Model):
    __tablename__ = 'contest_judges'
    id = db.Column(db.Integer, primary_key=True)
    contest_id = db.Column(db.Integer, db.ForeignKey('contests.id', ondelete='CASCADE'), nullable=False)

    # Empty until the invited e-mail belongs to a registered user
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    email = db.Column(db.String(255), nullable=False)
    access_code = db.Column(db.String(6), nullable=False)
    invited_at = db.Column(db.DateTime, default=datetime.now)

    user = db.relationship('User')
    # SQLite does not enforce ON DELETE, so the sheets go with the judge at the ORM level
    scores = db.relationship('ContestScore', backref='judge', cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint('contest_id', 'email', name='unique_contest_judge_email'),
        db.UniqueConstraint('contest_id', 'access_code', name='unique_contest_access_code'),
    )

    @property
    def display_name(self):
        if self.user is not None:
            return self.user.username
        return self.email.split('@')[0]
