from quizgame import db, bcrypt
from flask_login import UserMixin
import random
import time

from quizgame.services.games.state import AnswerOption, QuestionSnapshot

ANSWER_COLOURS = ['red', 'blue', 'green', 'yellow', 'purple', 'brown', 'orange']


def random_colour():
    return random.choice(ANSWER_COLOURS)


def now_ts():
    return int(time.time())


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    quizzes = db.relationship('Quiz', back_populates='owner', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class Quiz(db.Model):
    __tablename__ = 'quiz'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(256), nullable=False, default='')
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    in_trash = db.Column(db.Boolean, default=False, nullable=False)
    time_created = db.Column(db.Integer, default=now_ts, nullable=False)
    time_last_edited = db.Column(db.Integer, default=now_ts, nullable=False)
    owner = db.relationship('User', back_populates='quizzes')
    questions = db.relationship(
        'Question',
        back_populates='quiz',
        order_by='Question.position',
        cascade='all, delete-orphan',
    )

    @property
    def duration(self):
        return sum(q.duration for q in self.questions)

    def touch(self):
        self.time_last_edited = now_ts()

    def to_summary(self):
        return {'quiz_id': self.id, 'name': self.name}

    def to_dict(self):
        return {
            'quiz_id': self.id,
            'name': self.name,
            'description': self.description,
            'time_created': self.time_created,
            'time_last_edited': self.time_last_edited,
            'num_questions': len(self.questions),
            'duration': self.duration,
            'questions': [q.to_dict() for q in self.questions],
        }


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quiz.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    text = db.Column(db.String(256), nullable=False)
    duration = db.Column(db.Integer, nullable=False)
    points = db.Column(db.Integer, nullable=False)
    thumbnail_url = db.Column(db.String(512), nullable=True)
    quiz = db.relationship('Quiz', back_populates='questions')
    answers = db.relationship(
        'Answer',
        back_populates='question',
        order_by='Answer.id',
        cascade='all, delete-orphan',
    )

    def to_snapshot(self) -> QuestionSnapshot:
        return QuestionSnapshot(
            question_id=self.id,
            question=self.text,
            duration=self.duration,
            points=self.points,
            answers=tuple(
                AnswerOption(answer_id=a.id, answer=a.text, colour=a.colour, correct=a.correct)
                for a in self.answers
            ),
            thumbnail_url=self.thumbnail_url,
        )

    def to_dict(self):
        return {
            'question_id': self.id,
            'question': self.text,
            'duration': self.duration,
            'points': self.points,
            'thumbnail_url': self.thumbnail_url,
            'answers': [a.to_dict() for a in self.answers],
        }


class Answer(db.Model):
    __tablename__ = 'answer'
    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=False, index=True)
    text = db.Column(db.String(64), nullable=False)
    colour = db.Column(db.String(16), nullable=False, default=random_colour)
    correct = db.Column(db.Boolean, nullable=False, default=False)
    question = db.relationship('Question', back_populates='answers')

    def to_dict(self):
        return {
            'answer_id': self.id,
            'answer': self.text,
            'colour': self.colour,
            'correct': self.correct,
        }


class GameSessionRecord(db.Model):
    """Persisted snapshot of a game session; the live copy is in memory."""
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    # no FK: the session outlives its quiz
    quiz_id = db.Column(db.Integer, nullable=False, index=True)
    owner_id = db.Column(db.Integer, nullable=False)
    state = db.Column(db.String(32), nullable=False, default='LOBBY')
    question_index = db.Column(db.Integer, nullable=False, default=-1)
    payload = db.Column(db.Text, nullable=False)  # JSON-encoded session snapshot
    updated_at = db.Column(db.Float, nullable=True)
