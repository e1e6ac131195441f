from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from quizgame.services.games import get_orchestrator
from quizgame.services.games.errors import InvalidSubmission


sessions = Blueprint('sessions', __name__)
players = Blueprint('players', __name__)


def _session_for_quiz(orchestrator, quiz_id, session_id):
    view = orchestrator.get_session_view(session_id, current_user.id)
    if view['quiz_id'] != quiz_id:
        raise InvalidSubmission('Session Id does not refer to a valid session within this quiz')
    return view


# ---- host endpoints ----

@sessions.route('/<int:quiz_id>/sessions', methods=['POST'])
@login_required
def start_session(quiz_id):
    data = request.get_json(silent=True) or {}
    session = get_orchestrator().create_session(quiz_id, current_user.id, data.get('auto_start_num', 0))
    return jsonify({'session_id': session.session_id}), 201


@sessions.route('/<int:quiz_id>/sessions', methods=['GET'])
@login_required
def list_sessions(quiz_id):
    return jsonify(get_orchestrator().list_sessions(quiz_id, current_user.id))


@sessions.route('/<int:quiz_id>/sessions/<int:session_id>', methods=['GET'])
@login_required
def session_status(quiz_id, session_id):
    return jsonify(_session_for_quiz(get_orchestrator(), quiz_id, session_id))


@sessions.route('/<int:quiz_id>/sessions/<int:session_id>', methods=['PUT'])
@login_required
def update_session_state(quiz_id, session_id):
    data = request.get_json(silent=True) or {}
    orchestrator = get_orchestrator()
    _session_for_quiz(orchestrator, quiz_id, session_id)
    orchestrator.apply_action(session_id, current_user.id, data.get('action'))
    return jsonify(orchestrator.get_session_view(session_id, current_user.id))


@sessions.route('/<int:quiz_id>/sessions/<int:session_id>/results', methods=['GET'])
@login_required
def session_results(quiz_id, session_id):
    orchestrator = get_orchestrator()
    _session_for_quiz(orchestrator, quiz_id, session_id)
    return jsonify(orchestrator.get_final_results(session_id, current_user.id))


# ---- player endpoints ----

@players.route('/join', methods=['POST'])
def join_session():
    data = request.get_json(silent=True) or {}
    session_id = data.get('session_id')
    if isinstance(session_id, bool) or not isinstance(session_id, int):
        return jsonify({'error': 'session_id is required'}), 400
    player = get_orchestrator().join_player(session_id, data.get('name'))
    return jsonify(player.to_dict()), 201


@players.route('/<int:player_id>', methods=['GET'])
def player_status(player_id):
    return jsonify(get_orchestrator().get_player_status(player_id))


@players.route('/<int:player_id>/questions/<int:position>', methods=['GET'])
def player_question(player_id, position):
    return jsonify(get_orchestrator().get_player_question(player_id, position))


@players.route('/<int:player_id>/questions/<int:position>/answer', methods=['PUT'])
def submit_answer(player_id, position):
    data = request.get_json(silent=True) or {}
    get_orchestrator().submit_answers(player_id, position, data.get('answer_ids'))
    return jsonify({})


@players.route('/<int:player_id>/questions/<int:position>/results', methods=['GET'])
def player_question_results(player_id, position):
    return jsonify(get_orchestrator().get_player_question_result(player_id, position))


@players.route('/<int:player_id>/results', methods=['GET'])
def player_final_results(player_id):
    return jsonify(get_orchestrator().get_player_final_results(player_id))
