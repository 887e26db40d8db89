import pytest

from tictactoe.models import ACTIVE, FINISHED, WAITING
from tictactoe.services.games.errors import RoomFull, RoomNotFound, SymbolTaken


def info(name, symbol, avatar='a.png'):
    return {'name': name, 'avatar': avatar, 'symbol': symbol}


def test_join_creates_room_lazily(registry):
    assert 'R1' not in registry
    result = registry.join_or_create('R1', 'c1', info('Alice', 'X'))
    assert 'R1' in registry
    assert result.started is False
    assert result.departure is None
    assert result.player.name == 'Alice'
    assert registry.room_of('c1') == 'R1'
    assert result.snapshot['gameState']['status'] == WAITING


def test_second_join_starts_game(registry):
    registry.join_or_create('R1', 'c1', info('Alice', 'X'))
    result = registry.join_or_create('R1', 'c2', info('Bob', 'O'))
    assert result.started is True
    assert result.room.state.status == ACTIVE
    assert result.room.state.current_turn == 'X'


def test_refused_join_changes_nothing(registry):
    registry.join_or_create('R1', 'c1', info('Alice', 'X'))
    registry.join_or_create('R2', 'c3', info('Cara', 'X'))
    with pytest.raises(SymbolTaken):
        registry.join_or_create('R1', 'c3', info('Cara', 'X'))
    # c3 kept its seat in R2
    assert registry.room_of('c3') == 'R2'
    registry.join_or_create('R1', 'c2', info('Bob', 'O'))
    with pytest.raises(RoomFull):
        registry.join_or_create('R1', 'c3', info('Cara', 'O'))
    assert registry.room_of('c3') == 'R2'
    assert len(registry.get('R1')) == 2


def test_switching_rooms_leaves_previous(registry):
    registry.join_or_create('R1', 'c1', info('Alice', 'X'))
    registry.join_or_create('R1', 'c2', info('Bob', 'O'))
    result = registry.join_or_create('R2', 'c2', info('Bob', 'O'))
    assert registry.room_of('c2') == 'R2'
    assert result.departure is not None
    assert result.departure.room.id == 'R1'
    assert result.departure.abandoned is True
    assert result.departure.deleted is False
    assert registry.get('R1').state.status == FINISHED
    assert [p.id for p in registry.get('R1').players] == ['c1']


def test_first_joiner_sets_privacy(registry):
    registry.join_or_create('R1', 'c1', info('Alice', 'X'), is_private=True)
    registry.join_or_create('R1', 'c2', info('Bob', 'O'), is_private=False)
    assert registry.get('R1').private is True


def test_leave_last_player_deletes_room(registry, scheduler):
    registry.join_or_create('R1', 'c1', info('Alice', 'X'))
    departure = registry.leave('c1')
    assert departure.deleted is True
    assert 'R1' not in registry
    assert registry.room_of('c1') is None
    assert registry.leave('c1') is None


def test_leave_during_active_game_abandons(registry, scheduler):
    registry.join_or_create('R1', 'c1', info('Alice', 'X'))
    registry.join_or_create('R1', 'c2', info('Bob', 'O'))
    departure = registry.leave('c1')
    assert departure.abandoned is True
    assert departure.snapshot['gameState']['status'] == FINISHED
    assert departure.snapshot['gameState']['winner'] is None
    assert [p['name'] for p in departure.snapshot['players']] == ['Bob']
    assert scheduler.pending() == []


def test_list_public(registry):
    registry.join_or_create('open', 'c1', info('Alice', 'X'))
    registry.join_or_create('secret', 'c2', info('Bob', 'X'), is_private=True)
    registry.join_or_create('full', 'c3', info('Cara', 'X'))
    registry.join_or_create('full', 'c4', info('Dan', 'O'))
    listed = registry.list_public()
    assert [r['id'] for r in listed] == ['open']
    assert listed[0] == {
        'id': 'open',
        'playerCount': 1,
        'maxPlayers': 2,
        'created': int(registry.clock() * 1000),
    }


def test_sweep_stale_only_removes_old_empty_rooms(registry, clock):
    registry.join_or_create('busy', 'c1', info('Alice', 'X'))
    # Empty rooms never normally survive a leave; plant one directly
    empty_old = registry._create_room('old', False)
    clock.now += 10
    registry._create_room('young', False)
    clock.now += 1795
    removed = registry.sweep_stale(threshold_sec=1800)
    assert removed == ['old']
    assert empty_old.timer is None
    assert 'busy' in registry
    assert 'young' in registry


def test_require_missing_room(registry):
    with pytest.raises(RoomNotFound):
        registry.require('nope')


def test_timeout_hook_receives_snapshot(registry, scheduler, timeouts):
    registry.join_or_create('R1', 'c1', info('Alice', 'X'))
    registry.join_or_create('R1', 'c2', info('Bob', 'O'))
    scheduler.fire_all()
    assert len(timeouts) == 1
    room_id, snapshot = timeouts[0]
    assert room_id == 'R1'
    assert snapshot['gameState']['status'] == WAITING
    assert len(snapshot['players']) == 2
