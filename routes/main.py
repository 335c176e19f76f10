from functools import wraps
from datetime import datetime
from flask import Blueprint, session, request, jsonify, abort
from sqlalchemy.orm import joinedload
from models import User, Contest, ContestJudge, ContestSubmission
from extensions import db
import logic


main_bp = Blueprint('main', __name__)

def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({'error': 'You need to log in to access this page.', 'kind': 'access_denied'}), 401
        return f(*args, **kwargs)
    return decorated_function


def current_user():
    user_id = session.get('user_id')
    return db.session.get(User, user_id) if user_id else None


def get_contest_or_404(slug):
    contest = Contest.query.filter_by(slug=slug).first()
    if contest is None:
        abort(404)
    return contest


def contest_summary(contest, now=None):
    now = now or datetime.now()
    return {
        'id': contest.id,
        'slug': contest.slug,
        'title': contest.title,
        'description': contest.description,
        'creator': contest.creator.username if contest.creator else None,
        'status': contest.status_at(now),
        'start_date': contest.start_date.isoformat(),
        'submission_deadline': contest.submission_deadline.isoformat(),
        'winner_announce_date': contest.winner_announce_date.isoformat(),
        'max_participants': contest.max_participants,
        'metrics_config': contest.metrics_config or [],
        'winners_revealed': contest.winners_revealed,
        'submissions_count': len(contest.submissions),
    }


@main_bp.route('/contests')
def contest_list():
    contests = Contest.query.options(
        joinedload(Contest.creator),
        joinedload(Contest.submissions)
    ).order_by(Contest.submission_deadline).all()
    now = datetime.now()

    status = request.args.get('status')
    items = [contest_summary(c, now) for c in contests]
    if status:
        items = [c for c in items if c['status'] == status]
    return jsonify(items)


@main_bp.route('/contests/<slug>')
def contest_detail(slug):
    contest = get_contest_or_404(slug)
    return jsonify(contest_summary(contest))


@main_bp.route('/contests/<slug>/submissions', methods=['POST'])
@login_required
def submit_to_contest(slug):
    contest = get_contest_or_404(slug)
    data = request.get_json(silent=True) or {}
    submission = logic.submit_project(contest, current_user(), data.get('project_id'))
    return jsonify({
        'id': submission.id,
        'project_id': submission.project_id,
        'submitted_at': submission.submitted_at.isoformat(),
    }), 201


# --- Judge portal ---

def _judge_sessions():
    return session.get('judge_sessions', {})


def current_judge(contest):
    judge_id = _judge_sessions().get(str(contest.id))
    if judge_id is None:
        return None
    return ContestJudge.query.filter_by(id=judge_id, contest_id=contest.id).first()


def judge_required(f):
    @wraps(f)
    def decorated_function(slug, *args, **kwargs):
        contest = get_contest_or_404(slug)
        judge = current_judge(contest)
        if judge is None:
            return jsonify({'error': 'Enter your judge access code first.', 'kind': 'access_denied'}), 401
        return f(contest, judge, *args, **kwargs)
    return decorated_function


@main_bp.route('/contests/<slug>/judge/verify', methods=['POST'])
def judge_verify(slug):
    contest = get_contest_or_404(slug)
    data = request.get_json(silent=True) or {}
    judge = logic.verify_judge_access(contest, data.get('access_code'))

    judge_sessions = dict(_judge_sessions())
    judge_sessions[str(contest.id)] = judge.id
    session['judge_sessions'] = judge_sessions
    return jsonify({'judge_id': judge.id, 'name': judge.display_name})


@main_bp.route('/contests/<slug>/judge/entries')
@judge_required
def judge_entries(contest, judge):
    return jsonify(logic.judge_entries(contest, judge))


@main_bp.route('/contests/<slug>/judge/scores', methods=['POST'])
@judge_required
def judge_scores(contest, judge):
    data = request.get_json(silent=True) or {}
    sheet = logic.save_judge_scores(contest, judge, data.get('project_id'), data.get('scores'))
    return jsonify({'project_id': sheet.project_id, 'scores': sheet.scores})


# --- Winners ---

@main_bp.route('/contests/<slug>/winners')
def contest_winners(slug):
    contest = get_contest_or_404(slug)
    return jsonify(logic.winners_view(contest, current_user()))


@main_bp.route('/my-submissions')
@login_required
def my_submissions():
    user = current_user()
    submissions = ContestSubmission.query.join(ContestSubmission.project).options(
        joinedload(ContestSubmission.contest),
        joinedload(ContestSubmission.project)
    ).filter_by(owner_id=user.id).all()

    results = []
    for s in submissions:
        # Rank and score stay private until the contest reveals its winners
        revealed = s.contest.winners_revealed
        results.append({
            'contest': s.contest.slug,
            'project': s.project.slug,
            'submitted_at': s.submitted_at.isoformat(),
            'rank': s.rank if revealed else None,
            'final_score': s.final_score if revealed else None,
            'is_winner': s.is_winner if revealed else False,
        })
    results.sort(key=lambda r: r['submitted_at'], reverse=True)
    return jsonify(results)
