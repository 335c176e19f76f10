# models/submission.py

from extensions import db
from datetime import datetime
from sqlalchemy import CheckConstraint, UniqueConstraint

class ContestSubmission(db.Model):
    __tablename__ = 'contest_submissions'

    id = db.Column(db.Integer, primary_key=True)
    contest_id = db.Column(db.Integer, db.ForeignKey('contests.id', ondelete='CASCADE'), nullable=False)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
    submitted_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    # Written only by results finalization
    final_score = db.Column(db.Float, nullable=True)
    rank = db.Column(db.Integer, nullable=True)
    is_winner = db.Column(db.Boolean, nullable=False, default=False)

    project = db.relationship('Project')

    __table_args__ = (
        UniqueConstraint('contest_id', 'project_id', name='unique_contest_project'),
        CheckConstraint("rank IS NULL OR rank >= 1", name="check_submission_rank"),
    )
