import os
import sys
import pytest

# Ensure the backend root (containing the `quizgame` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizgame import create_app, db, socketio
from quizgame.services.games.errors import NotFound
from quizgame.services.games.orchestrator import GameSettings, SessionOrchestrator
from quizgame.services.games.scheduler import TimerRegistry
from quizgame.services.games.state import AnswerOption, QuestionSnapshot
from quizgame.services.games.store import SessionStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    COUNTDOWN_DURATION_SEC = 3
    POINTS_SCALING_RULE = 'reciprocal'
    MAX_AUTO_START_NUM = 50
    MAX_ACTIVE_SESSIONS = 10
    # Timers are registered but only fire when a test fires them
    TIMERS_ENABLED = False


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import quizgame.models  # noqa: F401
        db.create_all()
    # No app context held open: each request gets its own `g` for Flask-Login
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


# ---- game core fixtures (no Flask) ----

class VirtualClock:
    """Fake time source that also runs timer handles when time is advanced."""

    def __init__(self, start=1000.0):
        self.now = start
        self._pending = []
        self._seq = 0

    def __call__(self):
        return self.now

    def spawn(self, handle):
        self._seq += 1
        self._pending.append((self.now + handle.delay, self._seq, handle))

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [entry for entry in self._pending if entry[0] <= target]
            if not due:
                break
            entry = min(due, key=lambda e: (e[0], e[1]))
            self._pending.remove(entry)
            self.now = max(self.now, entry[0])
            entry[2].fire()
        self.now = target

    @property
    def pending(self):
        return [handle for _, _, handle in self._pending if not handle.cancelled]


class FakeQuizDirectory:
    def __init__(self):
        self.quizzes = {}

    def add_quiz(self, quiz_id, owner_id, questions, in_trash=False):
        self.quizzes[quiz_id] = {'owner_id': owner_id, 'questions': list(questions), 'in_trash': in_trash}

    def _get(self, quiz_id):
        if quiz_id not in self.quizzes:
            raise NotFound(f"Quiz {quiz_id} does not exist")
        return self.quizzes[quiz_id]

    def get_quiz_owner(self, quiz_id):
        return self._get(quiz_id)['owner_id']

    def get_quiz_snapshot(self, quiz_id):
        return list(self._get(quiz_id)['questions'])

    def is_in_trash(self, quiz_id):
        return self._get(quiz_id)['in_trash']


def build_question(question_id, answer_ids, correct_ids, points=10, duration=10):
    return QuestionSnapshot(
        question_id=question_id,
        question=f"Question {question_id}?",
        duration=duration,
        points=points,
        answers=tuple(
            AnswerOption(answer_id=a, answer=f"Answer {a}", colour='red', correct=a in correct_ids)
            for a in answer_ids
        ),
    )


@pytest.fixture()
def make_question():
    return build_question


@pytest.fixture()
def clock():
    return VirtualClock()


@pytest.fixture()
def quiz_directory():
    directory = FakeQuizDirectory()
    # quiz 1 owned by user 1: single-answer question then multi-answer question
    directory.add_quiz(1, 1, [
        build_question(101, (1001, 1002, 1003), {1001}, points=10, duration=10),
        build_question(102, (2001, 2002, 2003), {2002, 2003}, points=6, duration=8),
    ])
    return directory


@pytest.fixture()
def timers(clock):
    return TimerRegistry(spawn=clock.spawn)


@pytest.fixture()
def store():
    return SessionStore()


@pytest.fixture()
def orchestrator(store, quiz_directory, timers, clock):
    return SessionOrchestrator(
        store,
        quiz_directory,
        timers,
        settings=GameSettings(countdown_duration=3, points_scaling_rule='reciprocal'),
        clock=clock,
    )
