from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from quizgame.services import quizzes as quiz_service
from quizgame.services.games import get_orchestrator


quizzes = Blueprint('quizzes', __name__)


@quizzes.route('', methods=['POST'])
@login_required
def create_quiz():
    data = request.get_json(silent=True) or {}
    quiz = quiz_service.create_quiz(current_user.id, data.get('name'), data.get('description', ''))
    return jsonify({'quiz_id': quiz.id}), 201


@quizzes.route('', methods=['GET'])
@login_required
def list_quizzes():
    return jsonify({'quizzes': [q.to_summary() for q in quiz_service.list_quizzes(current_user.id)]})


@quizzes.route('/trash', methods=['GET'])
@login_required
def view_trash():
    trashed = quiz_service.list_quizzes(current_user.id, in_trash=True)
    return jsonify({'quizzes': [q.to_summary() for q in trashed]})


@quizzes.route('/<int:quiz_id>', methods=['GET'])
@login_required
def quiz_info(quiz_id):
    return jsonify(quiz_service.get_quiz(current_user.id, quiz_id).to_dict())


@quizzes.route('/<int:quiz_id>', methods=['DELETE'])
@login_required
def trash_quiz(quiz_id):
    quiz_service.trash_quiz(current_user.id, quiz_id, get_orchestrator())
    return jsonify({})


@quizzes.route('/<int:quiz_id>/restore', methods=['POST'])
@login_required
def restore_quiz(quiz_id):
    quiz_service.restore_quiz(current_user.id, quiz_id)
    return jsonify({})


@quizzes.route('/<int:quiz_id>/questions', methods=['POST'])
@login_required
def create_question(quiz_id):
    question = quiz_service.create_question(current_user.id, quiz_id, request.get_json(silent=True))
    return jsonify({'question_id': question.id}), 201


@quizzes.route('/<int:quiz_id>/questions/<int:question_id>', methods=['DELETE'])
@login_required
def delete_question(quiz_id, question_id):
    quiz_service.delete_question(current_user.id, quiz_id, question_id, get_orchestrator())
    return jsonify({})


@quizzes.route('/trash/empty', methods=['DELETE'])
@login_required
def empty_trash():
    data = request.get_json(silent=True) or {}
    quiz_service.empty_trash(current_user.id, data.get('quiz_ids'))
    return jsonify({})


@quizzes.route('/<int:quiz_id>/name', methods=['PUT'])
@login_required
def update_quiz_name(quiz_id):
    data = request.get_json(silent=True) or {}
    quiz_service.update_quiz_name(current_user.id, quiz_id, data.get('name'))
    return jsonify({})


@quizzes.route('/<int:quiz_id>/description', methods=['PUT'])
@login_required
def update_quiz_description(quiz_id):
    data = request.get_json(silent=True) or {}
    quiz_service.update_quiz_description(current_user.id, quiz_id, data.get('description'))
    return jsonify({})


@quizzes.route('/<int:quiz_id>/questions/<int:question_id>', methods=['PUT'])
@login_required
def update_question(quiz_id, question_id):
    quiz_service.update_question(current_user.id, quiz_id, question_id,
                                 request.get_json(silent=True), get_orchestrator())
    return jsonify({})


@quizzes.route('/<int:quiz_id>/questions/<int:question_id>/move', methods=['PUT'])
@login_required
def move_question(quiz_id, question_id):
    data = request.get_json(silent=True) or {}
    quiz_service.move_question(current_user.id, quiz_id, question_id, data.get('new_position'), get_orchestrator())
    return jsonify({})


@quizzes.route('/<int:quiz_id>/questions/<int:question_id>/duplicate', methods=['POST'])
@login_required
def duplicate_question(quiz_id, question_id):
    question = quiz_service.duplicate_question(current_user.id, quiz_id, question_id)
    return jsonify({'new_question_id': question.id}), 201
