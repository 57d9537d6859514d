import threading
import time

import pytest

from gofish.services.games import (
    AUTO_DRAW, DeckProviderFailure, InvalidAction, SessionFull, SessionNotFound, SessionStore,
)
from gofish.services.games.cards import full_deck
from gofish.services.games.events import EventLog, GAME_CREATED, SESSION_DELETED, STATE_UPDATE
from gofish.services.games.state import AI_PLAYER_ID, IN_PROGRESS, WAITING


@pytest.fixture()
def store(engine):
    return SessionStore(engine)


def test_create_puts_creator_in_seat_zero(store):
    session = store.create('alice', 'Alice')
    assert session.seats == ['alice']
    assert session.status == WAITING
    assert not session.vs_ai
    assert session.id in store


def test_create_vs_ai_adds_computer_but_does_not_start(store):
    session = store.create('alice', 'Alice', vs_ai=True)
    assert session.seats == ['alice', AI_PLAYER_ID]
    ai = session.players[AI_PLAYER_ID]
    assert ai.is_ai and ai.name == 'Computer'
    assert not session.started


def test_second_join_starts_the_game(store):
    sid = store.create('alice', 'Alice').id
    session = store.join(sid, 'bob', 'Bob', EventLog(sid))
    assert session.status == IN_PROGRESS
    assert session.turn == 'alice'
    assert len(session.players['alice'].hand) == 7
    assert len(session.players['bob'].hand) == 7
    assert session.remaining == 38


def test_join_is_idempotent(store):
    sid = store.create('alice', 'Alice').id
    store.join(sid, 'bob', 'Bob', EventLog(sid))
    before = store.get(sid).to_dict()
    store.join(sid, 'bob', 'Bobby', EventLog(sid))
    assert store.get(sid).to_dict() == before


def test_join_unknown_session(store):
    with pytest.raises(SessionNotFound):
        store.join('nope', 'bob', 'Bob', EventLog('nope'))


def test_third_player_is_turned_away(store):
    sid = store.create('alice', 'Alice').id
    store.join(sid, 'bob', 'Bob', EventLog(sid))
    with pytest.raises(SessionFull):
        store.join(sid, 'carol', 'Carol', EventLog(sid))


def test_failed_start_is_retried_on_next_join(provider, store):
    provider.queue_deck(full_deck()[:5])
    sid = store.create('alice', 'Alice').id
    log = EventLog(sid)

    session = store.join(sid, 'bob', 'Bob', log)
    assert session.status == WAITING
    assert any('Could not start' in t for t in log.texts())

    session = store.join(sid, 'bob', 'Bob', EventLog(sid))
    assert session.status == IN_PROGRESS


def test_leave_last_player_deletes_session(store):
    sid = store.create('alice', 'Alice').id
    log = EventLog(sid)
    result = store.leave(sid, 'alice', log)
    assert result.removed and result.deleted
    assert sid not in store
    assert SESSION_DELETED in log.names()
    with pytest.raises(SessionNotFound):
        store.get(sid)


def test_leave_vs_ai_deletes_when_only_computer_remains(store):
    sid = store.create('alice', 'Alice', vs_ai=True).id
    store.join(sid, AI_PLAYER_ID, 'Computer', EventLog(sid))
    result = store.leave(sid, 'alice', EventLog(sid))
    assert result.deleted
    assert sid not in store


def test_leave_passes_turn_to_remaining_player(store):
    sid = store.create('alice', 'Alice').id
    store.join(sid, 'bob', 'Bob', EventLog(sid))
    result = store.leave(sid, 'alice', EventLog(sid))
    assert result.removed and not result.deleted
    assert result.session['turn'] == 'bob'
    assert list(result.session['players']) == ['bob']


def test_leave_for_non_member_changes_nothing(store):
    sid = store.create('alice', 'Alice').id
    result = store.leave(sid, 'ghost', EventLog(sid))
    assert not result.removed and not result.deleted
    assert sid in store


def test_get_returns_detached_copy(store):
    sid = store.create('alice', 'Alice').id
    copy = store.get(sid)
    copy.players['alice'].name = 'Mallory'
    assert store.get(sid).players['alice'].name == 'Alice'


def test_rename_finds_player_in_any_session(store):
    store.create('alice', 'Alice')
    sid = store.create('bob', 'Bob').id
    log = EventLog()

    result = store.rename_player('bob', 'Robert', log)

    assert result.found
    assert result.session_id == sid
    assert result.old_name == 'Bob'
    assert store.get(sid).players['bob'].name == 'Robert'
    assert log.events[0].session_id == sid


def test_rename_unknown_player(store):
    store.create('alice', 'Alice')
    assert not store.rename_player('nobody', 'X', EventLog()).found


def test_restore_round_trips_committed_state(engine, store):
    sid = store.create('alice', 'Alice').id
    store.join(sid, 'bob', 'Bob', EventLog(sid))
    document = store.snapshot_document()

    fresh = SessionStore(engine)
    assert fresh.restore(document) == 1
    assert fresh.get(sid).to_dict() == store.get(sid).to_dict()


def test_restore_skips_broken_entries(engine):
    fresh = SessionStore(engine)
    assert fresh.restore({'bad': {'players': {}}}) == 0


def test_concurrent_creates_and_renames_do_not_interfere(store):
    errors = []

    def worker(n):
        try:
            sid = store.create(f"p{n}", f"P{n}").id
            store.join(sid, f"q{n}", f"Q{n}", EventLog(sid))
            store.rename_player(f"p{n}", f"Renamed{n}", EventLog())
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(store) == 20
    for session in store.snapshot_document().values():
        assert session['status'] == IN_PROGRESS
        assert any(p['name'].startswith('Renamed') for p in session['players'].values())


# ---- service level events ----

def test_service_create_emits_game_created_first(game_service, dispatcher):
    state = game_service.create_session('alice', 'Alice')
    assert dispatcher.names()[0] == GAME_CREATED
    assert dispatcher.events[0].payload['id'] == state['id']


def test_service_create_vs_ai_starts_with_human_to_move(game_service, dispatcher):
    state = game_service.create_session('alice', 'Alice', vs_ai=True)
    assert state['status'] == IN_PROGRESS
    assert state['turn'] == 'alice'
    assert state['seats'] == ['alice', AI_PLAYER_ID]
    assert dispatcher.names()[-1] == STATE_UPDATE


def test_service_subscribe_called_before_events(game_service, dispatcher):
    seen = []
    game_service.create_session('alice', 'Alice', subscribe=lambda sid: seen.append((sid, len(dispatcher.events))))
    assert seen[0][1] == 0


def test_service_join_broadcasts_join_message_and_state(game_service, dispatcher):
    sid = game_service.create_session('alice', 'Alice')['id']
    game_service.join_session(sid, 'bob', 'Bob')
    texts = [e.payload['text'] for e in dispatcher.of('gameMessage')]
    assert 'Bob joined' in texts
    assert dispatcher.names()[-1] == STATE_UPDATE
    assert dispatcher.events[-1].payload['status'] == IN_PROGRESS


def test_service_rename_broadcasts_to_the_right_session(game_service, dispatcher):
    sid = game_service.create_session('alice', 'Alice')['id']
    result = game_service.rename_player('alice', 'Ally')
    assert result.found
    state_events = dispatcher.of(STATE_UPDATE)
    assert state_events[-1].session_id == sid
    assert state_events[-1].payload['players']['alice']['name'] == 'Ally'


def test_deleting_a_session_discards_its_deck(provider, store):
    sid = store.create('alice', 'Alice').id
    store.join(sid, 'bob', 'Bob', EventLog(sid))
    deck_id = store.get(sid).deck_id

    store.leave(sid, 'alice', EventLog(sid))
    store.leave(sid, 'bob', EventLog(sid))

    with pytest.raises(DeckProviderFailure):
        provider.draw(deck_id, 1)


# ---- same-session races ----

def _cards_accounted(state):
    players = state['players'].values()
    return sum(len(p['hand']) for p in players) + 4 * sum(len(p['sets']) for p in players) + state['remaining']


class CommitOrderDispatcher:
    """Checks every broadcast state against what the store has committed at that moment."""

    def __init__(self, store):
        self.store = store
        self.states = []
        self.stale = []

    def dispatch(self, events):
        for event in events:
            if event.name != STATE_UPDATE:
                continue
            self.states.append(event.payload)
            committed = self.store.snapshot_document().get(event.session_id)
            if committed != event.payload:
                self.stale.append(event.payload)


def _race(workers):
    errors = []
    barrier = threading.Barrier(len(workers))

    def run(fn):
        barrier.wait()
        try:
            fn()
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=run, args=(fn,)) for fn in workers]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)
    return errors


def test_racing_joins_fill_exactly_one_seat(game_service):
    checker = CommitOrderDispatcher(game_service.store)
    game_service.dispatcher = checker
    sid = game_service.create_session('alice', 'Alice')['id']
    seated, turned_away = [], []

    def joiner(n):
        def join():
            try:
                game_service.join_session(sid, f"p{n}", f"P{n}")
                seated.append(n)
            except SessionFull:
                turned_away.append(n)
        return join

    errors = _race([joiner(n) for n in range(12)])

    assert errors == []
    assert len(seated) == 1
    assert len(turned_away) == 11
    state = game_service.get_session(sid)
    assert state['seats'] == ['alice', f"p{seated[0]}"]
    assert state['status'] == IN_PROGRESS
    assert checker.stale == []
    assert all(_cards_accounted(s) == 52 for s in checker.states)


def test_racing_asks_and_renames_on_one_session(game_service):
    checker = CommitOrderDispatcher(game_service.store)
    game_service.dispatcher = checker
    sid = game_service.create_session('alice', 'Alice')['id']
    game_service.join_session(sid, 'bob', 'Bob')

    def asker(pid, other):
        def play():
            for _ in range(40):
                state = game_service.get_session(sid)
                if state['winner']:
                    return
                hand = state['players'][pid]['hand']
                try:
                    game_service.ask(sid, pid, other, hand[0]['value'] if hand else AUTO_DRAW)
                except InvalidAction:
                    pass
        return play

    def renamer(pid):
        def rename():
            for i in range(40):
                game_service.rename_player(pid, f"{pid}-{i}")
        return rename

    errors = _race([asker('alice', 'bob'), asker('bob', 'alice'), renamer('alice'), renamer('bob')])

    assert errors == []
    assert checker.stale == []
    assert all(_cards_accounted(s) == 52 for s in checker.states)
    final = game_service.get_session(sid)
    assert final['players']['alice']['name'] == 'alice-39'
    assert final['players']['bob']['name'] == 'bob-39'


def test_ask_queued_behind_deleting_leave_finds_no_session(game_service, dispatcher):
    sid = game_service.create_session('alice', 'Alice')['id']
    state = game_service.join_session(sid, 'bob', 'Bob')
    rank = state['players']['alice']['hand'][0]['value']
    outcome = []

    def late_ask():
        try:
            game_service.ask(sid, 'alice', 'bob', rank)
            outcome.append('applied')
        except SessionNotFound:
            outcome.append('not_found')

    with game_service.store.locked(sid):
        asker = threading.Thread(target=late_ask)
        asker.start()
        time.sleep(0.05)
        game_service.leave_session(sid, 'alice')
        result = game_service.leave_session(sid, 'bob')
    asker.join(5)

    assert result.deleted
    assert outcome == ['not_found']
    assert sid not in game_service.store
    assert SESSION_DELETED in dispatcher.names()
    assert not any('asked Bob' in e.payload.get('text', '') for e in dispatcher.of('gameMessage'))
