from flask import Blueprint, jsonify

from gofish import get_game_service

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Go Fish game server!'})


@main.route('/health')
def health():
    return jsonify({'status': 'ok', 'sessions': len(get_game_service().store)})
