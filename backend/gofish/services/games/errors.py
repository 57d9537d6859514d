class GameError(Exception):
    """Base class for failures reported back to the caller of an action."""

    code = 'game_error'

    def __init__(self, message: str = ''):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {'message': self.message, 'code': self.code}


class SessionNotFound(GameError):
    code = 'session_not_found'

    def __init__(self, session_id: str):
        super().__init__(f"Game {session_id} not found")
        self.session_id = session_id


class PlayerNotFound(GameError):
    code = 'player_not_found'

    def __init__(self, player_id: str, session_id: str = None):
        super().__init__(f"Player {player_id} is not in this game")
        self.player_id = player_id
        self.session_id = session_id


class InvalidAction(GameError):
    code = 'invalid_action'


class SessionFull(InvalidAction):
    code = 'session_full'


class DeckProviderFailure(GameError):
    """The deck service could not be reached or returned garbage."""

    code = 'deck_provider_failure'


class StartFailed(GameError):
    code = 'start_failed'
