from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from workshop.api import api_bp
from workshop.logging_config import configure_logging, get_logger
from workshop.models import db

logger = get_logger(__name__)


def create_app(test_config=None):
    # Import config after dotenv is loaded
    from workshop.config import get_config
    from workshop.db_config import configure_database

    # Get the appropriate config class based on environment
    config_class = get_config()

    app = Flask(__name__)
    app.config.from_object(config_class)
    if test_config:
        app.config.update(test_config)

    configure_logging(
        log_level=app.config.get("LOG_LEVEL", "INFO"),
        log_file=app.config.get("LOG_FILE"),
    )

    # Configure database separately
    configure_database(app)

    logger.info(f"Starting application in {app.config.get('ENV')} environment")
    logger.info(f"Database URI: {app.config.get('SQLALCHEMY_DATABASE_URI', 'Not set')[:50]}...")

    # Get allowed origins from environment variable
    allowed_origins = app.config.get("CORS_ORIGINS", "*")
    if allowed_origins != "*":
        # Parse comma-separated list if provided
        allowed_origins = [origin.strip() for origin in allowed_origins.split(",")]

    CORS(app,
         resources={r"/*": {"origins": allowed_origins}},
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"])

    db.init_app(app)

    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            # Only create tables if they don't exist
            db.create_all()

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "environment": app.config.get("ENV")}), 200

    app.register_blueprint(api_bp, url_prefix="/api")

    # Global error handler so every failure comes back as JSON
    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.name, "message": e.description}), e.code

        logger.error("Unhandled exception", error=str(e), exc_info=True)
        db.session.rollback()
        return jsonify({
            "error": str(e),
            "message": "An error occurred processing your request"
        }), 500

    return app
