# app.py
# Flask application factory for Fest Central

import logging

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import Config
from extensions import db, migrate
from logic import FestError

# Imported so that Flask-Migrate sees every table
import models  # noqa: F401


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    app.logger.setLevel(level)


def register_error_handlers(app):
    @app.errorhandler(FestError)
    def handle_fest_error(error):
        db.session.rollback()
        app.logger.warning('Rejected: %s', error.message)
        return jsonify({'status': 'error', 'message': error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code


def register_commands(app):
    @app.cli.command('init-db')
    def init_db_command():
        """Creates all tables without running migrations."""
        db.create_all()
        click.echo('Database tables created.')

    @app.cli.command('seed')
    def seed_command():
        """Wipes the database and loads a small demo festival."""
        from seed_data import seed_demo_fest
        seed_demo_fest()
        click.echo('Demo data loaded.')


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)

    from routes.auth import auth_bp
    from routes.main import main_bp
    from routes.admin import admin_bp
    from routes.teams import teams_bp
    from routes.judges import judges_bp
    from routes.stage import stage_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(teams_bp)
    app.register_blueprint(judges_bp)
    app.register_blueprint(stage_bp)

    register_error_handlers(app)
    register_commands(app)

    app.logger.info('Fest Central started with database %s', app.config['SQLALCHEMY_DATABASE_URI'])
    return app
