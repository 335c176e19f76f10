# routes/dashboard.py
# Contest creator dashboard: settings, judges, live results and publication

from functools import wraps
from flask import Blueprint, request, jsonify, current_app
from routes.main import login_required, current_user, get_contest_or_404, contest_summary
from errors import AccessDenied
import logic


dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')

def contest_manager_required(f):
    @wraps(f)
    @login_required
    def decorated_function(slug, *args, **kwargs):
        contest = get_contest_or_404(slug)
        user = current_user()
        if not contest.can_manage(user):
            raise AccessDenied('Only the contest creator can open its dashboard.')
        return f(contest, user, *args, **kwargs)
    return decorated_function


@dashboard_bp.route('/contests', methods=['POST'])
@login_required
def create_contest():
    data = request.get_json(silent=True) or {}
    contest = logic.create_contest(current_user(), data)
    return jsonify(contest_summary(contest)), 201


@dashboard_bp.route('/contests/<slug>/settings', methods=['POST'])
@contest_manager_required
def contest_settings(contest, user):
    data = request.get_json(silent=True) or {}
    logic.update_contest_settings(contest, user, data)
    return jsonify(contest_summary(contest))


@dashboard_bp.route('/contests/<slug>', methods=['DELETE'])
@contest_manager_required
def delete_contest(contest, user):
    slug = contest.slug
    logic.delete_contest(contest, user)
    return jsonify({'contest': slug, 'status': 'deleted'})


# --- Judges ---

@dashboard_bp.route('/contests/<slug>/judges', methods=['GET', 'POST'])
@contest_manager_required
def contest_judges(contest, user):
    if request.method == 'POST':
        data = request.get_json(silent=True) or {}
        judge = logic.invite_judge(contest, user, data.get('email'))
        # Delivering the code by e-mail is up to the caller
        return jsonify({
            'id': judge.id,
            'email': judge.email,
            'access_code': judge.access_code,
            'registered': judge.user_id is not None,
        }), 201

    return jsonify([
        {
            'id': j.id,
            'email': j.email,
            'name': j.display_name,
            'access_code': j.access_code,
            'registered': j.user_id is not None,
        }
        for j in sorted(contest.judges, key=lambda j: j.id)
    ])


@dashboard_bp.route('/contests/<slug>/judges/<int:judge_id>', methods=['DELETE'])
@contest_manager_required
def delete_judge(contest, user, judge_id):
    logic.remove_judge(contest, user, judge_id)
    return jsonify({'status': 'removed'})


# --- Results ---

@dashboard_bp.route('/contests/<slug>/results')
@contest_manager_required
def results_matrix(contest, user):
    return jsonify(logic.build_results_matrix(contest))


@dashboard_bp.route('/contests/<slug>/publish', methods=['POST'])
@contest_manager_required
def publish_results(contest, user):
    data = request.get_json(silent=True) or {}
    report = logic.finalize_contest(contest.id, republish=bool(data.get('republish')))
    current_app.logger.info("User %s published contest '%s'.", user.id, contest.slug)
    return jsonify({
        'contest': contest.slug,
        'revealed': report.revealed,
        'results': len(report.results),
        'winners': [r.entry.submission_id for r in report.results if r.is_winner],
    })


@dashboard_bp.route('/contests/<slug>/hide', methods=['POST'])
@contest_manager_required
def hide_results(contest, user):
    logic.hide_results(contest, user)
    return jsonify({'contest': contest.slug, 'revealed': False})
