from flask import Flask, jsonify
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect
from dotenv import load_dotenv
import os
import logging

load_dotenv()

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()

def create_app():
    # Validate required environment variables
    required_vars = ['DATABASE_URL', 'SECRET_KEY']
    for var in required_vars:
        if not os.getenv(var):
            raise ValueError(f"Required environment variable {var} is not set")

    app = Flask(__name__)
    app.config.from_object('config')

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    login_manager.init_app(app)

    # Register blueprints
    from app.core.auth import auth_bp
    from app.routes.users import users_bp
    from app.projects.tracking.routes import tracking_bp
    from app.projects.groups.routes import groups_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(users_bp)  # Has its own url_prefix defined
    app.register_blueprint(tracking_bp)
    app.register_blueprint(groups_bp)

    # JSON API: clients authenticate by pubkey, not by form tokens
    csrf.exempt(auth_bp)
    csrf.exempt(users_bp)
    csrf.exempt(tracking_bp)
    csrf.exempt(groups_bp)

    # CLI commands
    from app.projects.groups import commands as groups_commands
    from app.core import commands as nostr_commands
    groups_commands.init_app(app)
    nostr_commands.init_app(app)

    # Import models to ensure they're known to Flask-SQLAlchemy
    from app.models import User, LogEntry
    from app.projects.tracking.models import FoodEntry, WaterEntry
    from app.projects.groups.models import Group, GroupMember, GroupInvite, GroupEvent

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    return app
