"""Quiz and question bookkeeping the game core depends on.

Kept deliberately thin: ownership, trash and question storage. Content rules
(lengths, limits) are left to clients.
"""

from typing import List

from quizgame import db
from quizgame.models import Answer, Question, Quiz
from quizgame.services.games.errors import InvalidState, InvalidSubmission, NotFound, Unauthorised
from quizgame.services.games.persistence import app_scope
from quizgame.services.games.state import QuestionSnapshot


class SqlQuizDirectory:
    """Read side used by the orchestrator."""

    def __init__(self, app):
        self.app = app

    def _get(self, quiz_id) -> Quiz:
        quiz = db.session.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFound(f"Quiz {quiz_id} does not exist")
        return quiz

    def get_quiz_owner(self, quiz_id: int) -> int:
        with app_scope(self.app):
            return self._get(quiz_id).owner_id

    def get_quiz_snapshot(self, quiz_id: int) -> List[QuestionSnapshot]:
        with app_scope(self.app):
            return [q.to_snapshot() for q in self._get(quiz_id).questions]

    def is_in_trash(self, quiz_id: int) -> bool:
        with app_scope(self.app):
            return self._get(quiz_id).in_trash


def _owned_quiz(user_id, quiz_id, in_trash=False) -> Quiz:
    quiz = db.session.get(Quiz, quiz_id)
    if quiz is None or quiz.in_trash != in_trash:
        raise NotFound(f"Quiz {quiz_id} does not exist")
    if quiz.owner_id != user_id:
        raise Unauthorised('User is not an owner of this quiz')
    return quiz


def create_quiz(user_id, name, description='') -> Quiz:
    if not isinstance(name, str) or not name.strip():
        raise InvalidSubmission('Quiz name is required')
    name = name.strip()
    if Quiz.query.filter_by(owner_id=user_id, name=name, in_trash=False).first():
        raise InvalidSubmission('Quiz name already exists')
    quiz = Quiz(name=name, description=description or '', owner_id=user_id)
    db.session.add(quiz)
    db.session.commit()
    return quiz


def list_quizzes(user_id, in_trash=False) -> List[Quiz]:
    return Quiz.query.filter_by(owner_id=user_id, in_trash=in_trash).order_by(Quiz.id).all()


def get_quiz(user_id, quiz_id) -> Quiz:
    return _owned_quiz(user_id, quiz_id)


def trash_quiz(user_id, quiz_id, orchestrator) -> None:
    quiz = _owned_quiz(user_id, quiz_id)
    if orchestrator.has_active_sessions(quiz.id):
        raise InvalidState('Any session for this quiz is not in END state')
    quiz.in_trash = True
    quiz.touch()
    db.session.commit()


def restore_quiz(user_id, quiz_id) -> None:
    quiz = _owned_quiz(user_id, quiz_id, in_trash=True)
    if Quiz.query.filter_by(owner_id=user_id, name=quiz.name, in_trash=False).first():
        raise InvalidSubmission('Quiz name of the restored quiz is already used by another active quiz')
    quiz.in_trash = False
    quiz.touch()
    db.session.commit()


def update_quiz_name(user_id, quiz_id, name) -> None:
    quiz = _owned_quiz(user_id, quiz_id)
    if not isinstance(name, str) or not name.strip():
        raise InvalidSubmission('Quiz name is required')
    name = name.strip()
    clash = Quiz.query.filter(Quiz.owner_id == user_id, Quiz.name == name,
                              Quiz.in_trash.is_(False), Quiz.id != quiz.id).first()
    if clash:
        raise InvalidSubmission('Quiz name already exists')
    quiz.name = name
    quiz.touch()
    db.session.commit()


def update_quiz_description(user_id, quiz_id, description) -> None:
    quiz = _owned_quiz(user_id, quiz_id)
    if not isinstance(description, str):
        raise InvalidSubmission('Quiz description must be a string')
    quiz.description = description
    quiz.touch()
    db.session.commit()


def empty_trash(user_id, quiz_ids) -> None:
    """Permanently delete the given trashed quizzes; all or nothing."""
    if not isinstance(quiz_ids, list) or any(isinstance(q, bool) or not isinstance(q, int) for q in quiz_ids):
        raise InvalidSubmission('quiz_ids must be a list of quiz ids')
    quizzes = []
    for quiz_id in quiz_ids:
        quiz = db.session.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFound(f"Quiz {quiz_id} does not exist")
        if quiz.owner_id != user_id:
            raise Unauthorised('User is not an owner of this quiz')
        if not quiz.in_trash:
            raise InvalidSubmission('One or more of the Quiz IDs is not currently in the trash')
        quizzes.append(quiz)
    for quiz in quizzes:
        db.session.delete(quiz)
    db.session.commit()


def _question_fields(body):
    body = body or {}
    text = body.get('question')
    duration = body.get('duration')
    points = body.get('points')
    answers = body.get('answers')
    if not isinstance(text, str) or not text:
        raise InvalidSubmission('Question text is required')
    for value, label in ((duration, 'duration'), (points, 'points')):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise InvalidSubmission(f"Question {label} must be a positive whole number")
    if not isinstance(answers, list) or not answers:
        raise InvalidSubmission('Question answers are required')
    for item in answers:
        if not isinstance(item, dict) or not isinstance(item.get('answer'), str):
            raise InvalidSubmission('Each answer needs an answer string')
    return text, duration, points, answers, body.get('thumbnail_url')


def _owned_question(quiz, question_id) -> Question:
    question = next((q for q in quiz.questions if q.id == question_id), None)
    if question is None:
        raise NotFound('Question Id does not refer to a valid question within this quiz')
    return question


def _renumber(quiz) -> None:
    for position, question in enumerate(quiz.questions):
        question.position = position


def create_question(user_id, quiz_id, body) -> Question:
    quiz = _owned_quiz(user_id, quiz_id)
    text, duration, points, answers, thumbnail_url = _question_fields(body)

    question = Question(
        quiz=quiz,
        position=len(quiz.questions),
        text=text,
        duration=duration,
        points=points,
        thumbnail_url=thumbnail_url,
    )
    for item in answers:
        question.answers.append(Answer(text=item['answer'], correct=bool(item.get('correct'))))
    quiz.touch()
    db.session.add(question)
    db.session.commit()
    return question


def update_question(user_id, quiz_id, question_id, body, orchestrator) -> None:
    quiz = _owned_quiz(user_id, quiz_id)
    question = _owned_question(quiz, question_id)
    text, duration, points, answers, thumbnail_url = _question_fields(body)
    if orchestrator.has_active_sessions(quiz.id):
        raise InvalidState('Any session for this quiz is not in END state')

    question.text = text
    question.duration = duration
    question.points = points
    question.thumbnail_url = thumbnail_url
    # Answers are replaced, so they get fresh ids and colours
    question.answers = [Answer(text=item['answer'], correct=bool(item.get('correct'))) for item in answers]
    quiz.touch()
    db.session.commit()


def move_question(user_id, quiz_id, question_id, new_position, orchestrator) -> None:
    quiz = _owned_quiz(user_id, quiz_id)
    question = _owned_question(quiz, question_id)
    if isinstance(new_position, bool) or not isinstance(new_position, int) \
            or not 0 <= new_position < len(quiz.questions):
        raise InvalidSubmission('new_position must be between 0 and the number of questions minus one')
    current = quiz.questions.index(question)
    if current == new_position:
        raise InvalidSubmission('new_position is the position of the current question')
    if orchestrator.has_active_sessions(quiz.id):
        raise InvalidState('Any session for this quiz is not in END state')

    ordered = list(quiz.questions)
    ordered.insert(new_position, ordered.pop(current))
    for position, item in enumerate(ordered):
        item.position = position
    quiz.touch()
    db.session.commit()


def duplicate_question(user_id, quiz_id, question_id) -> Question:
    """Copy a question to the slot right after the source."""
    quiz = _owned_quiz(user_id, quiz_id)
    source = _owned_question(quiz, question_id)
    index = quiz.questions.index(source)

    duplicate = Question(
        text=source.text,
        duration=source.duration,
        points=source.points,
        thumbnail_url=source.thumbnail_url,
    )
    for answer in source.answers:
        duplicate.answers.append(Answer(text=answer.text, colour=answer.colour, correct=answer.correct))
    quiz.questions.insert(index + 1, duplicate)
    _renumber(quiz)
    quiz.touch()
    db.session.commit()
    return duplicate


def delete_question(user_id, quiz_id, question_id, orchestrator) -> None:
    quiz = _owned_quiz(user_id, quiz_id)
    question = _owned_question(quiz, question_id)
    if orchestrator.has_active_sessions(quiz.id):
        raise InvalidState('Any session for this quiz is not in END state')
    quiz.questions.remove(question)
    _renumber(quiz)
    quiz.touch()
    db.session.commit()
