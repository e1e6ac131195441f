"""Game domain services: session state machine, timers and scoring.

This package contains the game core imported by HTTP routes and socket
handlers, keeping transport concerns separated from session mechanics.
``init_game_services`` builds one timer registry, session store and
orchestrator per Flask app and keeps them in ``app.extensions``.
"""

import logging
import threading

from flask import current_app

from .orchestrator import GameSettings, SessionOrchestrator
from .scheduler import TimerRegistry

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'quizgame.games'


def emit_state_update(session) -> None:
    from quizgame import socketio
    socketio.emit(
        'state_update',
        {'session_id': session.session_id, 'state': session.state.value, 'at_question': session.question_index + 1},
        to=f"session:{session.session_id}",
        namespace='/ws',
    )


class GameServices:

    def __init__(self, app):
        from quizgame import socketio
        from quizgame.services.quizzes import SqlQuizDirectory
        from .persistence import SqlSessionRepository
        from .store import SessionStore

        self.app = app
        self.repository = SqlSessionRepository(app)

        if app.config.get('TIMERS_ENABLED', True):
            def spawn(handle):
                socketio.start_background_task(handle.run)
        else:
            # Handles stay registered and can be fired by hand
            def spawn(handle):
                return None

        self.timers = TimerRegistry(spawn=spawn, heartbeat=int(app.config.get('TIMER_HEARTBEAT_SEC', 0)))
        self.store = SessionStore(persist=self.repository.save, purge=self.repository.clear)
        self.orchestrator = SessionOrchestrator(
            self.store,
            SqlQuizDirectory(app),
            self.timers,
            settings=GameSettings.from_config(app.config),
            notify=emit_state_update,
        )
        self._restored = False
        self._restore_lock = threading.Lock()

    def ensure_restored(self) -> None:
        """Load persisted sessions into the store on first use.

        A failed load is retried on the next call; until then nothing is
        handed out, so fresh ids can never overwrite persisted sessions.
        """
        if self._restored:
            return
        with self._restore_lock:
            if self._restored:
                return
            try:
                sessions = self.repository.load_all()
            except Exception as exc:
                logger.error(f"[store-restore-failed] reason={exc}")
                raise
            self.store.restore(sessions)
            self._restored = True


def init_game_services(app) -> GameServices:
    services = GameServices(app)
    app.extensions[EXTENSION_KEY] = services
    return services


def get_game_services(app=None) -> GameServices:
    app = app or current_app._get_current_object()
    return app.extensions[EXTENSION_KEY]


def get_orchestrator(app=None) -> SessionOrchestrator:
    services = get_game_services(app)
    services.ensure_restored()
    return services.orchestrator
