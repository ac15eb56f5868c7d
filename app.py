import logging

import click
from flask import Flask, jsonify
from pydantic import ValidationError

from config.config import Config
from extensions import db, login_manager, migrate

# Route Imports
from routes.auth_routes import auth_bp
from routes.class_routes import class_bp
from routes.assignment_routes import assignment_bp
from routes.coding_test_routes import coding_test_bp
from routes.session_routes import test_session_bp

# Model Imports
from models.user import User
from services.judge_service import RateLimitExceeded, judge0_service
from utils.validation import validation_error_response

logger = logging.getLogger(__name__)


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )
    app.logger.setLevel(level)


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return validation_error_response(error)

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(error):
        response = jsonify({"error": str(error), "retryAfter": error.retry_after})
        response.status_code = 429
        response.headers["Retry-After"] = str(error.retry_after)
        return response

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405


def register_commands(app):
    @app.cli.command("seed")
    def seed_command():
        """Create the TEACHER and STUDENT roles."""
        from utils.seed_data import run_seed
        run_seed()
        click.echo("Roles seeded")

    @app.cli.command("sync-hackerrank")
    def sync_hackerrank_command():
        """Sync every user with a linked HackerRank session."""
        from services.hackerrank_service import sync_all_linked_hackerrank_users
        synced = sync_all_linked_hackerrank_users()
        click.echo(f"HackerRank: {synced} users synced")

    @app.cli.command("sync-leetcode")
    def sync_leetcode_command():
        """Sync every user with a LeetCode username."""
        from services.leetcode_service import sync_all_leetcode_users
        synced = sync_all_leetcode_users()
        click.echo(f"LeetCode: {synced} users synced")

    @app.cli.command("poll-submissions")
    @click.option("--interval", type=int, default=None, help="Seconds between polling passes.")
    @click.option("--iterations", type=int, default=None, help="Stop after this many passes.")
    def poll_submissions_command(interval, iterations):
        """Poll external platforms in a loop."""
        from services.polling import run_polling
        run_polling(interval or app.config["POLL_INTERVAL_SECONDS"], iterations)

    @app.cli.command("process-batch")
    @click.option("--test-id", type=int, default=None, help="Only judge submissions of this test.")
    def process_batch_command(test_id):
        """Judge queued test submissions."""
        processed = judge0_service.process_batch(test_id)
        click.echo(f"Processed {processed} queued submissions")


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)

    # Initialize Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required"}), 401

    # Register Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(class_bp)
    app.register_blueprint(assignment_bp)
    app.register_blueprint(coding_test_bp)
    app.register_blueprint(test_session_bp)

    register_error_handlers(app)
    register_commands(app)

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=True)
