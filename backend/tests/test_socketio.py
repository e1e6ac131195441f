def _connected(sio_client):
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    # Flush any initial events
    return sio_client.get_received('/ws')


def _named(packets, name):
    return [pkt['args'][0] for pkt in packets if pkt['name'] == name]


def _host_session(client):
    client.post('/register', json={'username': 'host', 'password': 'secret'})
    quiz_id = client.post('/api/quizzes', json={'name': 'Rivers'}).get_json()['quiz_id']
    client.post(f'/api/quizzes/{quiz_id}/questions', json={
        'question': 'Longest river?', 'duration': 10, 'points': 10,
        'answers': [{'answer': 'Nile', 'correct': True}, {'answer': 'Thames'}],
    })
    session_id = client.post(f'/api/quizzes/{quiz_id}/sessions', json={}).get_json()['session_id']
    return quiz_id, session_id


def test_socket_connect_and_ping(sio_client):
    initial = _connected(sio_client)
    assert any(pkt['name'] == 'connected' for pkt in initial)

    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    assert _named(sio_client.get_received('/ws'), 'pong') == [{'n': 1}]


def test_join_session_sends_current_state(client, sio_client):
    _, session_id = _host_session(client)
    _connected(sio_client)

    sio_client.emit('join_session', {'session_id': session_id}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _named(received, 'joined') == [{'room': f'session:{session_id}'}]
    assert _named(received, 'state_update') == [{'session_id': session_id, 'state': 'LOBBY', 'at_question': 0}]


def test_join_session_errors(sio_client):
    _connected(sio_client)

    sio_client.emit('join_session', {}, namespace='/ws')
    assert _named(sio_client.get_received('/ws'), 'error')

    sio_client.emit('join_session', {'session_id': 404}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _named(received, 'error')
    assert not _named(received, 'state_update')


def test_transitions_broadcast_to_session_room(client, sio_client):
    quiz_id, session_id = _host_session(client)
    _connected(sio_client)
    sio_client.emit('join_session', {'session_id': session_id}, namespace='/ws')
    sio_client.get_received('/ws')

    client.put(f'/api/quizzes/{quiz_id}/sessions/{session_id}', json={'action': 'START'})
    client.put(f'/api/quizzes/{quiz_id}/sessions/{session_id}', json={'action': 'SKIP_COUNTDOWN'})

    updates = _named(sio_client.get_received('/ws'), 'state_update')
    assert [(u['state'], u['at_question']) for u in updates] == [
        ('QUESTION_COUNTDOWN', 1),
        ('QUESTION_OPEN', 1),
    ]


def test_leave_session_stops_updates(client, sio_client):
    quiz_id, session_id = _host_session(client)
    _connected(sio_client)
    sio_client.emit('join_session', {'session_id': session_id}, namespace='/ws')
    sio_client.emit('leave_session', {'session_id': session_id}, namespace='/ws')
    assert _named(sio_client.get_received('/ws'), 'left')

    client.put(f'/api/quizzes/{quiz_id}/sessions/{session_id}', json={'action': 'END'})
    assert not _named(sio_client.get_received('/ws'), 'state_update')
