# app.py
# Main Flask application module, built with the Application Factory pattern

import json

import click
from flask import Flask, jsonify
from config import Config
from extensions import db, migrate
from errors import ContestError

# Models have to be imported here so that Alembic (Migrate) can see them
from models import User, Project, Contest, ContestSubmission, ContestJudge, ContestScore

def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # --- Bind extensions to this app instance ---
    db.init_app(app)
    migrate.init_app(app, db)

    # --- Blueprints ---
    from routes.auth import auth_bp
    from routes.main import main_bp
    from routes.dashboard import dashboard_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(dashboard_bp)

    @app.errorhandler(ContestError)
    def handle_contest_error(error):
        if error.status_code >= 500:
            app.logger.error("Request failed: %s", error)
        return jsonify(error.to_dict()), error.status_code

    register_commands(app)
    return app


def register_commands(app):
    import logic
    import scoring

    @app.cli.command('finalize-contest')
    @click.argument('slug')
    @click.option('--republish', is_flag=True, help='Recompute results that are already published.')
    def finalize_contest_command(slug, republish):
        """Compute, store and reveal the final ranking of a contest."""
        contest = Contest.query.filter_by(slug=slug).first()
        if contest is None:
            raise click.ClickException(f'No contest with slug "{slug}".')
        try:
            report = logic.finalize_contest(contest.id, republish=republish)
        except ContestError as e:
            raise click.ClickException(str(e))

        if not report.results:
            click.echo('No submissions, nothing published.')
            return
        precision = app.config.get('SCORE_PRECISION', 2)
        for row in report.results:
            marker = '*' if row.is_winner else ' '
            final_score = scoring.round_score(row.composite, precision)
            click.echo(f'{marker} #{row.rank:<3} submission {row.entry.submission_id:<6} {final_score}')

    @app.cli.command('results-matrix')
    @click.argument('slug')
    def results_matrix_command(slug):
        """Print the live results matrix of a contest as JSON."""
        contest = Contest.query.filter_by(slug=slug).first()
        if contest is None:
            raise click.ClickException(f'No contest with slug "{slug}".')
        click.echo(json.dumps(logic.build_results_matrix(contest), indent=2, default=str))

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables without running migrations."""
        db.create_all()
        click.echo('Database tables created.')
