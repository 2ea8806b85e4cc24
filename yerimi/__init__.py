from flask import Flask

from yerimi.api import api_bp
from yerimi.auth import auth_bp
from yerimi.config import Config
from yerimi.extensions import db, login_manager, migrate
from yerimi.remote import init_remote
from yerimi.web import web_bp


def create_app(config_object=Config):
    app = Flask(__name__, template_folder="../templates")
    app.config.from_object(config_object)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    init_remote(app)

    # Registers the Flask-Login user loader.
    from yerimi.services import sessions  # noqa: F401

    app.register_blueprint(auth_bp)
    app.register_blueprint(web_bp)
    app.register_blueprint(api_bp)

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        print("Initialized Yerimi database.")

    @app.context_processor
    def inject_globals():
        return {"app_name": "Yerimi"}

    if app.config["STORE_BACKEND"] == "local":
        with app.app_context():
            db.create_all()

    return app
