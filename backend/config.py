import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///gofish.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PORT = int(os.environ.get('PORT', '4000'))
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    # Deck source: 'http' uses deckofcardsapi.com, 'local' shuffles in-process
    DECK_PROVIDER = os.environ.get('DECK_PROVIDER', 'http')
    DECK_API_URL = os.environ.get('DECK_API_URL', 'https://deckofcardsapi.com/api/deck')
    DECK_API_TIMEOUT_SEC = float(os.environ.get('DECK_API_TIMEOUT_SEC', '5'))
    # Computer opponent "thinking" pause before each move (seconds)
    AI_THINK_DELAY_SEC = float(os.environ.get('AI_THINK_DELAY_SEC', '1.5'))
    # Write every committed session change to the session_snapshot table
    SNAPSHOT_ENABLED = os.environ.get('SNAPSHOT_ENABLED', '1') == '1'
