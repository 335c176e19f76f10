from datetime import datetime, timedelta
from app import create_app
from extensions import db
from models import User, Project, Contest, ContestSubmission, ContestJudge, ContestScore

# Build an app instance to get an application context
app = create_app()

with app.app_context():
    db.create_all()

    # --- 1. CLEAN UP ---
    print("Removing old data...")
    # Reverse dependency order
    db.session.query(ContestScore).delete()
    db.session.query(ContestJudge).delete()
    db.session.query(ContestSubmission).delete()
    db.session.query(Contest).delete()
    db.session.query(Project).delete()
    db.session.query(User).delete()
    db.session.commit()
    print("Clean up done.")

    # --- 2. DEMO DATA ---
    print("Adding demo data...")

    try:
        now = datetime.now()

        admin = User(code='000001', username='admin', email='admin@example.com', role='admin')
        creator = User(code='100001', username='organizer', email='organizer@example.com')
        makers = [
            User(code=f'20000{i}', username=f'maker{i}', email=f'maker{i}@example.com')
            for i in range(1, 4)
        ]
        judge_user = User(code='300001', username='juror', email='juror@example.com')
        db.session.add_all([admin, creator, judge_user] + makers)
        db.session.commit()

        # Likes [10, 5, 0], views [100, 100, 50]
        counters = [(10, 100), (5, 100), (0, 50)]
        projects = []
        for maker, (likes, views) in zip(makers, counters):
            projects.append(Project(
                owner_id=maker.id, title=f'{maker.username} portfolio',
                slug=f'{maker.username}-portfolio', likes_count=likes, views=views
            ))
        db.session.add_all(projects)
        db.session.commit()

        # The contest is in its judging phase: submissions closed, winners not announced
        contest = Contest(
            slug='design-sprint-1',
            title='Design Sprint',
            creator_id=creator.id,
            start_date=now - timedelta(days=14),
            submission_deadline=now - timedelta(days=1),
            winner_announce_date=now + timedelta(days=7),
            metrics_config=[
                {'name': 'Design', 'type': 'manual', 'weight': 40},
                {'name': 'Community Likes', 'type': 'likes', 'weight': 30},
                {'name': 'Total Views', 'type': 'views', 'weight': 30},
            ],
        )
        db.session.add(contest)
        db.session.commit()

        for offset, project in enumerate(projects):
            db.session.add(ContestSubmission(
                contest_id=contest.id, project_id=project.id,
                submitted_at=now - timedelta(days=10 - offset)
            ))

        judge = ContestJudge(contest_id=contest.id, user_id=judge_user.id, email=judge_user.email, access_code='JURY01')
        pending = ContestJudge(contest_id=contest.id, email='guest.judge@example.com', access_code='JURY02')
        db.session.add_all([judge, pending])
        db.session.commit()

        for project, design in zip(projects, [9, 7, 5]):
            db.session.add(ContestScore(
                contest_id=contest.id, judge_id=judge.id, project_id=project.id, scores={'Design': design}
            ))
        db.session.commit()

        print("Demo data added. Expected composites: 9.6, 7.3, 3.5")
    except Exception as e:
        db.session.rollback()
        print(f"Failed to add demo data: {e}")
