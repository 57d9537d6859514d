from flask import Blueprint, jsonify, request, current_app

from gofish import get_game_service
from gofish.services.games import GameError, InvalidAction, SessionNotFound, PlayerNotFound

sessions = Blueprint('sessions', __name__)


@sessions.errorhandler(GameError)
def handle_game_error(exc):
    if isinstance(exc, (SessionNotFound, PlayerNotFound)):
        status = 404
    elif isinstance(exc, InvalidAction):
        status = 409
    else:
        status = 400
    current_app.logger.info(f"[api-error] path={request.path} code={exc.code} message={exc.message}")
    return jsonify({'error': exc.message, 'code': exc.code}), status


@sessions.route('', methods=['POST'])
def create_session():
    """Create a game; with ``vs_ai`` the computer joins and the game starts at once."""
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    if not player_id:
        return jsonify({'error': 'player_id is required'}), 400
    snapshot = get_game_service().create_session(
        player_id, data.get('name') or 'Anonymous', bool(data.get('vs_ai'))
    )
    return jsonify(snapshot), 201


@sessions.route('/<string:session_id>', methods=['GET'])
def get_session(session_id):
    return jsonify(get_game_service().get_session(session_id))


@sessions.route('/<string:session_id>/join', methods=['POST'])
def join_session(session_id):
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    if not player_id:
        return jsonify({'error': 'player_id is required'}), 400
    snapshot = get_game_service().join_session(session_id, player_id, data.get('name') or 'Anonymous')
    return jsonify(snapshot)


@sessions.route('/<string:session_id>/leave', methods=['POST'])
def leave_session(session_id):
    data = request.get_json(silent=True) or {}
    result = get_game_service().leave_session(session_id, data.get('player_id'))
    return jsonify({'removed': result.removed, 'deleted': result.deleted, 'session': result.session})


@sessions.route('/<string:session_id>/ask', methods=['POST'])
def ask(session_id):
    data = request.get_json(silent=True) or {}
    if not all([data.get('from'), data.get('to'), data.get('rank')]):
        return jsonify({'error': 'from, to and rank are required'}), 400
    snapshot = get_game_service().ask(session_id, data['from'], data['to'], data['rank'])
    return jsonify(snapshot)


@sessions.route('/players/<string:player_id>/name', methods=['POST'])
def rename_player(player_id):
    data = request.get_json(silent=True) or {}
    name = data.get('name')
    if not name:
        return jsonify({'error': 'name is required'}), 400
    result = get_game_service().rename_player(player_id, name)
    if not result.found:
        return jsonify({'error': f"Player {player_id} is not in any game", 'code': 'player_not_found'}), 404
    return jsonify({'session_id': result.session_id, 'old_name': result.old_name, 'session': result.session})
