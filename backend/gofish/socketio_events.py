from functools import wraps

from flask import current_app, request
from flask_socketio import join_room, leave_room, emit

from gofish import socketio, get_game_service
from gofish.notifications import NAMESPACE, room_for
from gofish.services.games import GameError


def _reports_errors(handler):
    """Answer the requesting socket with an ``error`` event instead of raising."""
    @wraps(handler)
    def wrapper(data=None):
        try:
            return handler(data or {})
        except GameError as exc:
            current_app.logger.info(f"[{handler.__name__}] sid={request.sid} rejected: {exc.message}")
            emit('error', exc.to_dict())
    return wrapper


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    current_app.logger.debug(f"[disconnect] sid={request.sid}")


@_reports_errors
def handle_create_game(data):
    # Older clients send just the player id
    if isinstance(data, dict):
        player_id = data.get('playerId')
        name = data.get('name') or 'Anonymous'
        vs_ai = bool(data.get('vsAI'))
    else:
        player_id, name, vs_ai = data, 'Anonymous', False
    if not player_id:
        emit('error', {'message': 'playerId is required', 'code': 'bad_request'})
        return
    snapshot = get_game_service().create_session(
        player_id, name, vs_ai, subscribe=lambda session_id: join_room(room_for(session_id))
    )
    current_app.logger.info(f"[createGame] session={snapshot['id']} vs_ai={vs_ai}")


@_reports_errors
def handle_join_game(data):
    session_id = data.get('gameId')
    player_id = data.get('playerId')
    if not session_id or not player_id:
        emit('error', {'message': 'gameId and playerId are required', 'code': 'bad_request'})
        return
    # Join the room first so this socket also receives the resulting state
    join_room(room_for(session_id))
    try:
        get_game_service().join_session(session_id, player_id, data.get('name') or 'Anonymous')
    except GameError:
        leave_room(room_for(session_id))
        raise


@_reports_errors
def handle_leave_game(data):
    session_id = data.get('gameId')
    player_id = data.get('playerId')
    if not session_id or not player_id:
        emit('error', {'message': 'gameId and playerId are required', 'code': 'bad_request'})
        return
    result = get_game_service().leave_session(session_id, player_id)
    leave_room(room_for(session_id))
    emit('left', {'gameId': session_id, 'deleted': result.deleted})


@_reports_errors
def handle_ask(data):
    session_id = data.get('gameId')
    if not session_id:
        emit('error', {'message': 'gameId is required', 'code': 'bad_request'})
        return
    get_game_service().ask(session_id, data.get('from'), data.get('to'), data.get('rank') or '')


@_reports_errors
def handle_get_state(data):
    session_id = data.get('gameId')
    snapshot = get_game_service().get_session(session_id)
    join_room(room_for(session_id))
    emit('stateUpdate', snapshot)
    current_app.logger.info(
        f"[getState] session={session_id} player={data.get('playerId')} players={list(snapshot['players'])}"
    )


@_reports_errors
def handle_update_name(data):
    player_id = data.get('playerId')
    name = data.get('name')
    if not player_id or not name:
        emit('error', {'message': 'playerId and name are required', 'code': 'bad_request'})
        return
    result = get_game_service().rename_player(player_id, name)
    if not result.found:
        emit('error', {'message': f"Player {player_id} is not in any game", 'code': 'player_not_found'})


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register Socket.IO event handlers under the original client event names."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('createGame', handle_create_game, namespace=namespace)
    socketio.on_event('joinGame', handle_join_game, namespace=namespace)
    socketio.on_event('leaveGame', handle_leave_game, namespace=namespace)
    socketio.on_event('ask', handle_ask, namespace=namespace)
    socketio.on_event('getState', handle_get_state, namespace=namespace)
    socketio.on_event('updateName', handle_update_name, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
