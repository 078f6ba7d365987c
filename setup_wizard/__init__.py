import logging

from flask import Flask
from .config import Config
from .extensions import db, login_manager, migrate, csrf
from .extensions import setup as setup_manager
from .auth.forms import CSRFOnlyForm

def create_app(config_class=Config, configurations=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.getLogger(__name__).setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    setup_manager.init_app(app)

    for config in configurations or []:
        setup_manager.register(config)

    @app.context_processor
    def inject_global_forms():
        return {
            "logout_form": CSRFOnlyForm(),
        }

    from .auth import auth_bp
    from .setup import setup_bp
    from .cli import setup_cli

    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(setup_bp, url_prefix="/setup")
    app.cli.add_command(setup_cli)

    return app
