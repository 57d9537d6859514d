import logging

from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    logging.basicConfig(level=flask_app.config.get('LOG_LEVEL', 'INFO'))
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS', '*')

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from gofish.main import main
    flask_app.register_blueprint(main)

    from gofish.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from gofish.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    service = build_game_service(flask_app)
    flask_app.extensions['gofish'] = service
    restored = service.restore()
    flask_app.logger.info(f"[boot] restored_sessions={restored}")

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the snapshot table, forgetting every session."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app


def build_game_service(flask_app):
    """Wire the game core to this app's deck provider, scheduler, snapshot table and Socket.IO."""
    import random
    from gofish.services.games import (
        AIAgent, GameService, SessionStore, TaskScheduler, TurnEngine, provider_from_config,
    )
    from gofish.notifications import SocketIODispatcher
    from gofish.persistence import SnapshotRepository

    cfg = flask_app.config
    engine = TurnEngine(provider_from_config(cfg))
    inline = bool(cfg.get('TESTING')) and not cfg.get('ENABLE_SCHEDULER_IN_TESTS')
    scheduler = TaskScheduler(
        start_task=socketio.start_background_task,
        sleep=socketio.sleep,
        inline=inline,
    )
    seed = cfg.get('AI_SEED')
    agent = AIAgent(
        engine,
        scheduler,
        think_delay=float(cfg.get('AI_THINK_DELAY_SEC', 1.5)),
        rng=random.Random(seed) if seed is not None else None,
    )
    snapshots = None
    if cfg.get('SNAPSHOT_ENABLED', True):
        snapshots = SnapshotRepository(flask_app, start_task=socketio.start_background_task, inline=inline)
    return GameService(
        store=SessionStore(engine),
        engine=engine,
        agent=agent,
        dispatcher=SocketIODispatcher(socketio),
        snapshots=snapshots,
    )


def get_game_service():
    return current_app.extensions['gofish']
