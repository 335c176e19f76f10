"""Shared fixtures: an app on in-memory SQLite and a small data factory."""

from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestConfig
from extensions import db
from models import User, Project, Contest, ContestSubmission, ContestJudge, ContestScore

SCENARIO_METRICS = [
    {'name': 'Design', 'type': 'manual', 'weight': 40},
    {'name': 'Likes', 'type': 'likes', 'weight': 30},
    {'name': 'Views', 'type': 'views', 'weight': 30},
]


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


class Factory:
    def __init__(self):
        self.counter = 0
        self.now = datetime.now()

    def _next(self):
        self.counter += 1
        return self.counter

    def user(self, role='user', email=None):
        n = self._next()
        user = User(code=f'code{n}', username=f'user{n}', email=email or f'user{n}@example.com', role=role)
        db.session.add(user)
        db.session.commit()
        return user

    def project(self, owner=None, likes=0, views=0):
        owner = owner or self.user()
        n = self._next()
        project = Project(owner_id=owner.id, title=f'Project {n}', slug=f'project-{n}',
                          likes_count=likes, views=views)
        db.session.add(project)
        db.session.commit()
        return project

    def contest(self, creator=None, metrics=None, phase='judging', slug=None):
        creator = creator or self.user()
        n = self._next()
        # Dates are placed so that "now" falls inside the requested phase
        offsets = {
            'upcoming': (1, 2, 3),
            'active': (-1, 1, 2),
            'judging': (-2, -1, 1),
            'completed': (-3, -2, -1),
        }[phase]
        start, deadline, announce = (self.now + timedelta(days=d) for d in offsets)
        contest = Contest(
            slug=slug or f'contest-{n}', title=f'Contest {n}', creator_id=creator.id,
            start_date=start, submission_deadline=deadline, winner_announce_date=announce,
            metrics_config=SCENARIO_METRICS if metrics is None else metrics,
        )
        db.session.add(contest)
        db.session.commit()
        return contest

    def submit(self, contest, project, minutes_ago=0):
        submission = ContestSubmission(
            contest_id=contest.id, project_id=project.id,
            submitted_at=self.now - timedelta(days=5) - timedelta(minutes=minutes_ago)
        )
        db.session.add(submission)
        db.session.commit()
        return submission

    def judge(self, contest, email=None, user=None, code=None):
        n = self._next()
        judge = ContestJudge(contest_id=contest.id, user_id=user.id if user else None,
                             email=email or f'judge{n}@example.com', access_code=code or f'J{n:05d}')
        db.session.add(judge)
        db.session.commit()
        return judge

    def score(self, contest, judge, project, scores):
        sheet = ContestScore(contest_id=contest.id, judge_id=judge.id, project_id=project.id, scores=scores)
        db.session.add(sheet)
        db.session.commit()
        return sheet

    def scenario(self):
        """
        Three entries with likes [10, 5, 0], views [100, 100, 50] and one
        judge giving Design [9, 7, 5]: composites 9.6, 7.3 and 3.5.
        """
        contest = self.contest()
        judge = self.judge(contest)
        submissions = []
        for position, (likes, views, design) in enumerate([(10, 100, 9), (5, 100, 7), (0, 50, 5)]):
            project = self.project(likes=likes, views=views)
            # Later positions were submitted later
            submissions.append(self.submit(contest, project, minutes_ago=10 - position))
            self.score(contest, judge, project, {'Design': design})
        return contest, judge, submissions


@pytest.fixture
def factory(app):
    return Factory()


@pytest.fixture
def login_as(client):
    def login(user):
        with client.session_transaction() as sess:
            sess['user_id'] = user.id
            sess['user_role'] = user.role
    return login
