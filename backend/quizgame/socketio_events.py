from flask_socketio import join_room, leave_room, emit
from quizgame import socketio
from quizgame.services.games import get_orchestrator
from quizgame.services.games.errors import GameError


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def _room_for(data):
    session_id = (data or {}).get('session_id')
    if isinstance(session_id, bool) or not isinstance(session_id, int):
        emit('error', {'message': 'session_id is required'})
        return None
    return f"session:{session_id}"


def handle_join_session(data):
    room = _room_for(data)
    if not room:
        return
    join_room(room)
    emit('joined', {'room': room})
    # Send the current state so late joiners can render straight away
    try:
        status = get_orchestrator().get_session_view(data['session_id'])
    except GameError as exc:
        emit('error', exc.to_dict())
        return
    emit('state_update', {
        'session_id': status['session_id'],
        'state': status['state'],
        'at_question': status['at_question'],
    })


def handle_leave_session(data):
    room = _room_for(data)
    if not room:
        return
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('join_session', handle_join_session, namespace='/ws')
    socketio.on_event('leave_session', handle_leave_session, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')

    if testing:
        # Test-only mirror on default namespace
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('join_session', handle_join_session, namespace='/')
        socketio.on_event('leave_session', handle_leave_session, namespace='/')
        socketio.on_event('ping', handle_ping, namespace='/')
