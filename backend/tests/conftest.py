import os
import random
import sys
import pytest

# Ensure the backend root (containing the `gofish` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from gofish import create_app, db, socketio
from gofish.services.games import AIAgent, LocalDeckProvider, SessionStore, TaskScheduler, TurnEngine
from factories import ManualStarter, RecordingDispatcher
from gofish.services.games.service import GameService


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = '*'
    DECK_PROVIDER = 'local'
    DECK_SEED = 1234
    AI_SEED = 99
    AI_THINK_DELAY_SEC = 0
    SNAPSHOT_ENABLED = True


@pytest.fixture()
def provider():
    return LocalDeckProvider(random.Random(42))


@pytest.fixture()
def engine(provider):
    return TurnEngine(provider)


@pytest.fixture()
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture()
def starter():
    return ManualStarter()


@pytest.fixture()
def game_service(engine, dispatcher):
    scheduler = TaskScheduler(inline=True)
    agent = AIAgent(engine, scheduler, think_delay=0, rng=random.Random(5))
    return GameService(SessionStore(engine), engine, agent, dispatcher=dispatcher)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import gofish.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
