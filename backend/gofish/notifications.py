import logging

logger = logging.getLogger(__name__)

NAMESPACE = '/ws'


def room_for(session_id: str) -> str:
    return f"game:{session_id}"


class SocketIODispatcher:
    """Forwards domain events to the Socket.IO room of their session."""

    def __init__(self, socketio, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def dispatch(self, events) -> None:
        for event in events:
            if not event.session_id:
                continue
            logger.debug(f"[emit] session={event.session_id} event={event.name}")
            # Use socketio.emit since this may be called from a background task
            self.socketio.emit(event.name, event.payload, to=room_for(event.session_id), namespace=self.namespace)
