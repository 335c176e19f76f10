import re
import secrets
import string
from collections import namedtuple
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload

from extensions import db
from errors import (AccessDenied, ConfigurationError, PersistenceError,
                    ResultsAlreadyPublished, ValidationError)
from models import Contest, ContestJudge, ContestScore, ContestSubmission, Project, User
from models.contest import ACTIVE
import scoring

FinalizationReport = namedtuple('FinalizationReport', 'contest_id results revealed')

ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits
ACCESS_CODE_LENGTH = 6
EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


# --- Loading scoring inputs ---

def load_scoring_inputs(contest):
    """
    Reads every submission (with its project counters) and every score sheet
    of the contest. Returns ``(submissions, entries, records)``.
    """
    submissions = ContestSubmission.query.filter_by(contest_id=contest.id).options(
        joinedload(ContestSubmission.project).joinedload(Project.owner)
    ).order_by(ContestSubmission.id).all()

    entries = [
        scoring.Entry(
            submission_id=s.id,
            project_id=s.project_id,
            likes=s.project.likes_count,
            views=s.project.views,
            submitted_at=s.submitted_at,
        )
        for s in submissions
    ]

    records = [
        scoring.ScoreRecord(project_id=sc.project_id, judge_id=sc.judge_id, scores=sc.scores or {})
        for sc in ContestScore.query.filter_by(contest_id=contest.id).all()
    ]
    return submissions, entries, records


def _precision():
    return current_app.config.get('SCORE_PRECISION', 2)


def _winner_count():
    return current_app.config.get('WINNER_COUNT', 3)


# --- Live results matrix ---

def build_results_matrix(contest):
    """
    Recomputes the ranking without writing anything.

    The same scoring functions as ``finalize_contest`` are used, so a preview
    taken with unchanged inputs matches what publication would store. A broken
    metrics_config does not fail the view: the matrix comes back with zeros
    and ``final`` set to False.
    """
    warning = None
    try:
        criteria = scoring.parse_metrics_config(contest.metrics_config)
    except ConfigurationError as e:
        criteria = []
        warning = str(e)

    if warning is None and not scoring.weights_are_valid(criteria):
        warning = f'Scoring weights total {scoring.total_weight(criteria)}% instead of 100%. Results are not final.'

    submissions, entries, records = load_scoring_inputs(contest)
    results = scoring.compute_results(criteria, entries, records, winner_count=_winner_count())

    judges = ContestJudge.query.filter_by(contest_id=contest.id).options(
        joinedload(ContestJudge.user)
    ).order_by(ContestJudge.id).all()
    manual_names = [c.name for c in scoring.manual_criteria(criteria)]
    sheets = {(r.project_id, r.judge_id): r.scores for r in records}
    submissions_by_id = {s.id: s for s in submissions}

    rows = []
    for result in results:
        submission = submissions_by_id[result.entry.submission_id]
        judge_scores = []
        for judge in judges:
            sheet = sheets.get((submission.project_id, judge.id))
            judge_scores.append({
                'judge_id': judge.id,
                'judge': judge.display_name,
                'status': 'synced' if sheet is not None else 'pending',
                'scores': {name: (sheet or {}).get(name) for name in manual_names},
            })

        rows.append({
            'rank': result.rank,
            'submission_id': submission.id,
            'project': _project_summary(submission.project),
            'values': result.values,
            'composite': result.composite,
            'final_score': scoring.round_score(result.composite, _precision()),
            'is_winner': result.is_winner,
            'judge_scores': judge_scores,
        })

    return {
        'contest': contest.slug,
        'final': warning is None,
        'warning': warning,
        'total_weight': scoring.total_weight(criteria),
        'criteria': scoring.dump_metrics_config(criteria),
        'judges': [{'id': j.id, 'name': j.display_name, 'email': j.email} for j in judges],
        'rows': rows,
    }


def _project_summary(project):
    return {
        'id': project.id,
        'title': project.title,
        'slug': project.slug,
        'owner': project.owner.username if project.owner else None,
        'likes_count': project.likes_count,
        'views': project.views,
    }


# --- Publication ---

def finalize_contest(contest_id, republish=False):
    """
    Computes the final ranking, stores final_score/rank/is_winner on every
    submission and reveals the winners.

    All rows and the winners_revealed flag go out in one transaction: if any
    write is rejected everything is rolled back and the contest stays hidden.
    A contest with no submissions is left untouched.
    """
    logger = current_app.logger

    contest = Contest.query.filter_by(id=contest_id).with_for_update().first()
    if contest is None:
        raise ValidationError('Contest not found.')

    if contest.winners_revealed and not republish:
        message = f'Results for "{contest.title}" are already published.'
        db.session.rollback()
        raise ResultsAlreadyPublished(message)

    try:
        criteria = scoring.parse_metrics_config(contest.metrics_config)
        scoring.validate_weights(criteria)
    except ConfigurationError:
        # Release the row lock before reporting
        db.session.rollback()
        raise

    submissions, entries, records = load_scoring_inputs(contest)
    if not entries:
        logger.info("Contest '%s' has no submissions; nothing to publish.", contest.slug)
        db.session.rollback()
        return FinalizationReport(contest_id=contest.id, results=[], revealed=contest.winners_revealed)

    results = scoring.compute_results(criteria, entries, records, winner_count=_winner_count())
    submissions_by_id = {s.id: s for s in submissions}
    precision = _precision()

    logger.info("Publishing results for contest '%s' (%d submissions).", contest.slug, len(results))
    try:
        for result in results:
            submission = submissions_by_id[result.entry.submission_id]
            submission.final_score = scoring.round_score(result.composite, precision)
            submission.rank = result.rank
            submission.is_winner = result.is_winner

        # Rejected row writes surface here, before the reveal flag is touched
        db.session.flush()
        contest.winners_revealed = True
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Publishing results for contest '%s' failed: %s", contest_id, e)
        raise PersistenceError(
            'Could not save the results: a write was rejected. '
            'Check the database access policy. Winners were not revealed.'
        ) from e

    logger.info("Results for contest '%s' published.", contest.slug)
    return FinalizationReport(contest_id=contest.id, results=results, revealed=True)


def hide_results(contest, user):
    _require_manager(contest, user)
    contest.winners_revealed = False
    db.session.commit()


def winners_view(contest, viewer):
    """Persisted ranking; only the creator and admins see it before the reveal."""
    if not contest.winners_revealed and not contest.can_manage(viewer):
        raise AccessDenied('Winners have not been announced yet.')

    submissions = ContestSubmission.query.filter_by(contest_id=contest.id).options(
        joinedload(ContestSubmission.project).joinedload(Project.owner)
    ).all()
    submissions.sort(key=lambda s: (s.rank is None, s.rank or 0, s.id))

    return {
        'contest': contest.slug,
        'revealed': contest.winners_revealed,
        'criteria': contest.metrics_config or [],
        'rankings': [
            {
                'rank': s.rank,
                'final_score': s.final_score,
                'is_winner': s.is_winner,
                'project': _project_summary(s.project),
            }
            for s in submissions
        ],
    }


# --- Contest settings ---

def slugify(title):
    base = re.sub(r'[^a-z0-9]+', '-', title.lower()).strip('-') or 'contest'
    return f'{base}-{secrets.randbelow(1000)}'


def _parse_datetime(value, field):
    if not value:
        raise ValidationError(f'{field} is required.')
    if not isinstance(value, datetime):
        try:
            value = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError(f'{field} must be an ISO date/time.')
    # Columns hold naive datetimes; offsets are converted to UTC
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _require_manager(contest, user):
    if not contest.can_manage(user):
        raise AccessDenied('Only the contest creator can do this.')


def _apply_settings(contest, data):
    if 'title' in data:
        title = (data.get('title') or '').strip()
        if not title:
            raise ValidationError('Contest title is required.')
        contest.title = title

    if 'description' in data:
        contest.description = data.get('description')

    for field in ('start_date', 'submission_deadline', 'winner_announce_date'):
        if field in data:
            setattr(contest, field, _parse_datetime(data.get(field), field))

    if contest.submission_deadline <= contest.start_date:
        raise ValidationError('Deadline must be after the start date.')
    if contest.winner_announce_date <= contest.submission_deadline:
        raise ValidationError('Winner reveal must be after the deadline.')

    if 'max_participants' in data:
        max_participants = data.get('max_participants')
        if max_participants in (None, ''):
            contest.max_participants = None
        else:
            try:
                contest.max_participants = int(max_participants)
            except (TypeError, ValueError):
                raise ValidationError('max_participants must be a number.')
            if contest.max_participants < 1:
                raise ValidationError('max_participants must be positive.')

    if 'metrics_config' in data:
        criteria = scoring.parse_metrics_config(data.get('metrics_config'))
        scoring.validate_weights(criteria)
        metrics_config = scoring.dump_metrics_config(criteria)
        if metrics_config != contest.metrics_config and has_scores(contest):
            raise ValidationError('Metrics are locked: judging is in progress.')
        contest.metrics_config = metrics_config


def has_scores(contest):
    if contest.id is None:
        return False
    return ContestScore.query.filter_by(contest_id=contest.id).count() > 0


def create_contest(creator, data):
    for field in ('title', 'start_date', 'submission_deadline', 'winner_announce_date', 'metrics_config'):
        if not data.get(field):
            raise ValidationError(f'{field} is required.')

    contest = Contest(
        creator_id=creator.id,
        title=data['title'].strip(),
        start_date=_parse_datetime(data['start_date'], 'start_date'),
        submission_deadline=_parse_datetime(data['submission_deadline'], 'submission_deadline'),
        winner_announce_date=_parse_datetime(data['winner_announce_date'], 'winner_announce_date'),
    )
    _apply_settings(contest, data)
    contest.slug = slugify(contest.title)

    db.session.add(contest)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError('Could not create the contest, please retry.')
    current_app.logger.info("Contest '%s' created by user %s.", contest.slug, creator.id)
    return contest


def update_contest_settings(contest, user, data):
    _require_manager(contest, user)
    try:
        _apply_settings(contest, data)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return contest


def delete_contest(contest, user):
    """Deletes a contest with its judges; refused while it still has entries."""
    _require_manager(contest, user)
    if ContestSubmission.query.filter_by(contest_id=contest.id).count():
        raise ValidationError('Cannot delete a contest with submissions. Remove the submissions first.')

    slug = contest.slug
    try:
        db.session.delete(contest)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error("Deleting contest '%s' failed: %s", slug, e)
        raise PersistenceError('The contest could not be deleted.') from e
    current_app.logger.info("Contest '%s' deleted by user %s.", slug, user.id)


# --- Judges ---

def generate_access_code():
    return ''.join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH))


def invite_judge(contest, user, email):
    _require_manager(contest, user)

    email = (email or '').strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError('A valid e-mail is required to invite a judge.')

    if ContestJudge.query.filter_by(contest_id=contest.id, email=email).first():
        raise ValidationError(f'{email} is already a judge of this contest.')

    taken = {j.access_code for j in ContestJudge.query.filter_by(contest_id=contest.id)}
    code = generate_access_code()
    while code in taken:
        code = generate_access_code()

    existing_user = User.query.filter_by(email=email).first()
    judge = ContestJudge(
        contest_id=contest.id,
        user_id=existing_user.id if existing_user else None,
        email=email,
        access_code=code,
    )
    db.session.add(judge)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError(f'{email} is already a judge of this contest.')
    return judge


def remove_judge(contest, user, judge_id):
    _require_manager(contest, user)
    judge = ContestJudge.query.filter_by(id=judge_id, contest_id=contest.id).first()
    if judge is None:
        raise ValidationError('Judge not found.')
    db.session.delete(judge)
    db.session.commit()


def verify_judge_access(contest, code):
    code = (code or '').strip().upper()
    judge = ContestJudge.query.filter_by(contest_id=contest.id, access_code=code).first() if code else None
    if judge is None:
        raise AccessDenied('Invalid access code.')
    return judge


def _clean_scores(contest, scores):
    if not isinstance(scores, dict) or not scores:
        raise ValidationError('Scores must be an object of criterion name to value.')

    criteria = scoring.parse_metrics_config(contest.metrics_config)
    allowed = {c.name for c in scoring.manual_criteria(criteria)}
    top = current_app.config.get('MANUAL_SCORE_MAX', 10)

    cleaned = {}
    for name, value in scores.items():
        if name not in allowed:
            raise ValidationError(f'"{name}" is not a judged criterion of this contest.')
        if not scoring.is_score_value(value):
            raise ValidationError(f'Score for "{name}" must be a number.')
        if value < 0 or value > top:
            raise ValidationError(f'Score for "{name}" must be between 0 and {top}.')
        cleaned[name] = value
    return cleaned


def save_judge_scores(contest, judge, project_id, scores):
    """Creates or replaces the judge's score sheet for one project."""
    if judge.contest_id != contest.id:
        raise AccessDenied('This judge is not assigned to the contest.')

    entered = ContestSubmission.query.filter_by(contest_id=contest.id, project_id=project_id).first()
    if entered is None:
        raise ValidationError('This project is not entered in the contest.')

    cleaned = _clean_scores(contest, scores)

    sheet = ContestScore.query.filter_by(contest_id=contest.id, judge_id=judge.id, project_id=project_id).first()
    try:
        if sheet:
            # New dict so the JSON column registers the change
            sheet.scores = dict(sheet.scores or {}, **cleaned)
        else:
            sheet = ContestScore(contest_id=contest.id, judge_id=judge.id, project_id=project_id, scores=cleaned)
            db.session.add(sheet)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error("Saving scores of judge %s failed: %s", judge.id, e)
        raise PersistenceError('Scores could not be saved.') from e
    return sheet


def judge_entries(contest, judge):
    """Entries of the contest with the judge's own scores and overall progress."""
    criteria = scoring.parse_metrics_config(contest.metrics_config)
    manual_names = [c.name for c in scoring.manual_criteria(criteria)]

    submissions = ContestSubmission.query.filter_by(contest_id=contest.id).options(
        joinedload(ContestSubmission.project).joinedload(Project.owner)
    ).order_by(ContestSubmission.submitted_at, ContestSubmission.id).all()
    sheets = {
        s.project_id: s.scores or {}
        for s in ContestScore.query.filter_by(contest_id=contest.id, judge_id=judge.id)
    }

    entries = []
    done = 0
    for submission in submissions:
        existing = sheets.get(submission.project_id, {})
        complete = all(name in existing for name in manual_names)
        if complete:
            done += 1
        entries.append({
            'submission_id': submission.id,
            'project': _project_summary(submission.project),
            'scores': existing,
            'complete': complete,
        })

    return {
        'judge': judge.display_name,
        'criteria': [c for c in scoring.dump_metrics_config(criteria) if c['type'] == scoring.MANUAL],
        'entries': entries,
        'progress': judge_progress(done, len(entries)),
    }


def judge_progress(done, total):
    percent = (done / total) * 100 if total else 0
    return {'done': done, 'total': total, 'percent': round(percent, 1)}


# --- Entering a contest ---

def submit_project(contest, user, project_id, now=None):
    now = now or datetime.now()
    if contest.status_at(now) != ACTIVE:
        raise ValidationError('The contest is not accepting submissions.')

    project = db.session.get(Project, project_id) if project_id else None
    if project is None or project.owner_id != user.id:
        raise AccessDenied('You can only submit your own projects.')

    if ContestSubmission.query.filter_by(contest_id=contest.id, project_id=project.id).first():
        raise ValidationError('This project is already entered.')

    if contest.max_participants:
        entered = ContestSubmission.query.filter_by(contest_id=contest.id).count()
        if entered >= contest.max_participants:
            raise ValidationError('The contest is full.')

    submission = ContestSubmission(contest_id=contest.id, project_id=project.id, submitted_at=now)
    db.session.add(submission)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError('This project is already entered.')
    return submission
