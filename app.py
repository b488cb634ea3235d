import os
import logging
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy import text
from models import db
from dotenv import load_dotenv
from services.errors import PortalError
from services.identity import LocalIdentityProvider
from version import APP_NAME, __version__

# ---------------------------------------------------------------------------
# Load environment variables from .env
# ---------------------------------------------------------------------------
load_dotenv()

logger = logging.getLogger(__name__)

migrate = Migrate()


def configure_logging(level=None):
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def register_blueprints(app):
    from routes.user_routes import user_bp
    from routes.admin_routes import admin_bp
    from routes.teacher_routes import teacher_bp
    from routes.parent_routes import parent_bp
    from routes.report_routes import reports_bp

    for blueprint in (user_bp, admin_bp, teacher_bp, parent_bp, reports_bp):
        app.register_blueprint(blueprint)


def register_error_handlers(app):
    @app.errorhandler(PortalError)
    def handle_portal_error(error):
        if error.status_code >= 500:
            logger.error("%s: %s", error.kind, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'success': False, 'error': 'not_found', 'message': 'Resource not found'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({'success': False, 'error': 'method_not_allowed', 'message': 'Method not allowed'}), 405


def create_app(overrides=None):
    """Build the Flask app.

    ``overrides`` is applied on top of the environment configuration; tests
    pass ``SQLALCHEMY_DATABASE_URI`` here.
    """
    overrides = dict(overrides or {})
    configure_logging(overrides.pop("LOG_LEVEL", None))
    identity_provider = overrides.pop("IDENTITY_PROVIDER", None)

    app = Flask(__name__)

    # -----------------------------------------------------------------------
    # Environment configuration
    # -----------------------------------------------------------------------
    database_url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URI")
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "change-me")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    if database_url:
        app.config["SQLALCHEMY_DATABASE_URI"] = database_url
        # Serverless-safe SQLAlchemy options (NO fixed pool sizes)
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {"pool_pre_ping": True}
    app.config.update(overrides)

    app.config["SYSTEM_CONFIGURED"] = bool(app.config.get("SQLALCHEMY_DATABASE_URI"))
    app.extensions["identity_provider"] = identity_provider or LocalIdentityProvider()

    register_error_handlers(app)

    if app.config["SYSTEM_CONFIGURED"]:
        # Initialize database & migrations
        db.init_app(app)
        migrate.init_app(app, db)
        register_blueprints(app)
    else:
        print("⚠️  System not configured - set DATABASE_URL to enable the portal")

    @app.route("/")
    def index():
        return jsonify({
            "name": APP_NAME,
            "version": __version__,
            "configured": app.config["SYSTEM_CONFIGURED"],
        })

    @app.route("/db-test")
    def db_test():
        """Simple DB connectivity test"""
        if not app.config["SYSTEM_CONFIGURED"]:
            return jsonify({"db": "not_configured", "message": "Database not configured yet"}), 503

        try:
            with db.engine.connect() as conn:
                result = conn.execute(text("SELECT 1")).scalar()
            return jsonify({"db": "connected", "test_result": int(result)})
        except Exception as e:
            logger.error("Database connectivity test failed: %s", e)
            return jsonify({"db": "error", "error": str(e)}), 500

    return app


app = create_app()

# ---------------------------------------------------------------------------
# Local development only
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    host = "127.0.0.1"
    port = 5000
    print(f"Running on http://{host}:{port}/")
    app.run(host=host, port=port, debug=True)
