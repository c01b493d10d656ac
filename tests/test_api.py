def _init(client, **overrides):
    payload = {'fee_percent': 5, 'fixed_bet': 100, 'owner': 'owner', 'economic_mode': True}
    payload.update(overrides)
    res = client.post('/api/registry', json=payload)
    assert res.status_code == 201
    return res.json()


def _fund(client, *identities, amount=1000):
    for identity in identities:
        res = client.post(f'/api/accounts/{identity}/deposit', json={'amount': amount})
        assert res.status_code == 200


def _start(client):
    _init(client)
    _fund(client, 'alice', 'bob')
    first = client.post('/api/matches/join', json={'player': 'alice'}).json()
    second = client.post('/api/matches/join', json={'player': 'bob'}).json()
    assert first['created'] is True
    assert second['created'] is False
    return second['match']['number']


def _move(client, number, player, row, column):
    return client.post(
        f'/api/matches/{number}/moves',
        json={'player': player, 'row': row, 'column': column},
    )


def test_health(client):
    assert client.get('/health').json() == {'status': 'healthy'}
    assert client.get('/').json()['status'] == 'ok'


def test_initialize_registry(client):
    data = _init(client)
    assert data['match_count'] == 1
    assert data['fee_percent'] == 5
    assert data['charge_fee_on_waiting_cancel'] is False
    assert data['active_players'] == []

    res = client.post('/api/registry', json={})
    assert res.status_code == 409
    assert res.json()['detail']['code'] == 'RegistryAlreadyInitialized'


def test_registry_not_initialized(client):
    res = client.get('/api/registry')
    assert res.status_code == 404
    assert res.json()['detail']['code'] == 'RegistryNotInitialized'


def test_join_and_state(client):
    number = _start(client)

    match = client.get(f'/api/matches/{number}').json()
    assert match['status'] == 'in_progress'
    assert match['players'] == ['alice', 'bob']
    assert match['pot'] == 200

    registry = client.get('/api/registry').json()
    assert registry['match_count'] == 2
    assert {p['player'] for p in registry['active_players']} == {'alice', 'bob'}
    assert client.get('/api/accounts/alice').json()['balance'] == 900


def test_full_game_and_fee_withdrawal(client):
    number = _start(client)
    for player, row, column in [('alice', 0, 0), ('bob', 1, 0), ('alice', 0, 1), ('bob', 1, 1)]:
        assert _move(client, number, player, row, column).status_code == 200

    res = _move(client, number, 'alice', 0, 2)
    assert res.status_code == 200
    match = res.json()
    assert match['status'] == 'won'
    assert match['winner'] == 'alice'
    assert match['paid'] is True
    assert match['board'][0] == ['X', 'X', 'X']

    assert client.get('/api/accounts/alice').json()['balance'] == 1090
    assert client.get('/api/registry').json()['fee_balance'] == 10

    events = client.get(f'/api/matches/{number}/events').json()
    completed = [e for e in events if e['event_type'] == 'MATCH_COMPLETED']
    assert len(completed) == 1
    assert completed[0]['data'] == {'player_one': 'alice', 'player_two': 'bob', 'winner': 'alice'}

    res = client.post('/api/registry/fees/withdraw', json={'signer': 'alice', 'amount': 5})
    assert res.status_code == 403
    assert res.json()['detail']['code'] == 'SignerIsNotOwner'

    res = client.post('/api/registry/fees/withdraw', json={'signer': 'owner', 'amount': 10})
    assert res.status_code == 200
    assert res.json()['fee_balance'] == 0
    assert client.get('/api/accounts/owner').json()['balance'] == 10

    res = client.post('/api/registry/fees/withdraw', json={'signer': 'owner', 'amount': 1})
    assert res.status_code == 402
    assert res.json()['detail']['code'] == 'InsufficientFunds'


def test_illegal_moves_report_codes(client):
    number = _start(client)

    res = _move(client, number, 'bob', 0, 0)
    assert res.status_code == 400
    assert res.json()['detail']['code'] == 'NotPlayersTurn'

    res = _move(client, number, 'alice', 5, 0)
    assert res.json()['detail']['code'] == 'TileOutOfBounds'

    assert _move(client, number, 'alice', 1, 1).status_code == 200
    res = _move(client, number, 'bob', 1, 1)
    assert res.json()['detail']['code'] == 'TileAlreadySet'

    res = _move(client, number, 'mallory', 0, 0)
    assert res.status_code == 409
    assert res.json()['detail']['code'] == 'PlayerHasNotAnActiveGame'

    match = client.get(f'/api/matches/{number}').json()
    assert match['turn'] == 1
    assert match['board'] == [[None, None, None], [None, 'X', None], [None, None, None]]


def test_double_join_rejected(client):
    _init(client)
    _fund(client, 'alice')
    assert client.post('/api/matches/join', json={'player': 'alice'}).status_code == 200
    res = client.post('/api/matches/join', json={'player': 'alice'})
    assert res.status_code == 409
    assert res.json()['detail']['code'] == 'GameAlreadyInProgress'
    assert client.get('/api/accounts/alice').json()['balance'] == 900


def test_join_without_funds(client):
    _init(client)
    res = client.post('/api/matches/join', json={'player': 'broke'})
    assert res.status_code == 402
    assert res.json()['detail']['code'] == 'InsufficientFunds'
    assert client.get('/api/registry').json()['active_players'] == []


def test_cancel_waiting_and_close(client):
    _init(client)
    _fund(client, 'alice')
    number = client.post('/api/matches/join', json={'player': 'alice'}).json()['match']['number']

    res = client.post(f'/api/matches/{number}/cancel', json={'signer': 'alice'})
    assert res.status_code == 200
    assert res.json()['status'] == 'canceled'
    assert client.get('/api/accounts/alice').json()['balance'] == 1000
    assert client.get('/api/registry').json()['active_players'] == []

    res = client.post(f'/api/matches/{number}/close', json={'signer': 'bob'})
    assert res.status_code == 403
    assert res.json()['detail']['code'] == 'SignerDidNotOpenTheGameAccount'

    res = client.post(f'/api/matches/{number}/close', json={'signer': 'alice'})
    assert res.status_code == 200
    assert res.json()['closed'] is True

    # Archived matches stay readable
    assert client.get(f'/api/matches/{number}').json()['closed'] is True


def test_forfeit_in_progress(client):
    number = _start(client)
    res = client.post(f'/api/matches/{number}/cancel', json={'signer': 'mallory'})
    assert res.status_code == 403
    assert res.json()['detail']['code'] == 'SignerIsNotPlayer'

    res = client.post(f'/api/matches/{number}/cancel', json={'signer': 'alice'})
    assert res.json()['status'] == 'won'
    assert res.json()['winner'] == 'bob'
    assert client.get('/api/accounts/bob').json()['balance'] == 1090


def test_close_live_match(client):
    number = _start(client)
    res = client.post(f'/api/matches/{number}/close', json={'signer': 'alice'})
    assert res.status_code == 409
    assert res.json()['detail']['code'] == 'GameAlreadyInProgress'


def test_unknown_match(client):
    _init(client)
    res = client.get('/api/matches/42')
    assert res.status_code == 404
    assert res.json()['detail']['code'] == 'MatchNotFound'
