# models/score.py

from extensions import db

class ContestScore(db.Model):
    __tablename__ = 'contest_scores'
    id = db.Column(db.Integer, primary_key=True)
    contest_id = db.Column(db.Integer, db.ForeignKey('contests.id', ondelete='CASCADE'), nullable=False)
    judge_id = db.Column(db.Integer, db.ForeignKey('contest_judges.id', ondelete='CASCADE'), nullable=False)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)

    # {"<manual criterion name>": <number>}; a missing key means "not scored yet"
    scores = db.Column(db.JSON, nullable=False, default=dict)
    scored_at = db.Column(db.DateTime, server_default=db.func.current_timestamp(),
                          onupdate=db.func.current_timestamp())

    __table_args__ = (
        db.UniqueConstraint('contest_id', 'judge_id', 'project_id', name='unique_score'),
    )
