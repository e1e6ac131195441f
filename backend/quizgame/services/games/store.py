"""In-memory store of game sessions owned by the process.

Every session gets its own re-entrant lock; host commands and timer
callbacks for one session serialise on it while different sessions proceed
independently. Persistence is delegated to an optional ``persist`` callable.
"""

import logging
import threading
from contextlib import ExitStack, contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from .errors import NotFound
from .session import GameSession
from .state import Player

logger = logging.getLogger(__name__)


class SessionStore:

    def __init__(self, persist: Optional[Callable[[GameSession], None]] = None,
                 purge: Optional[Callable[[], None]] = None):
        self._persist = persist
        self._purge = purge
        self._sessions: Dict[int, GameSession] = {}
        self._locks: Dict[int, threading.RLock] = {}
        self._player_sessions: Dict[int, int] = {}
        self._guard = threading.Lock()
        self._last_session_id = 0
        self._last_player_id = 0
        # Bumped by clear(); work queued on a lock from before is refused
        self._generation = 0

    def next_session_id(self) -> int:
        with self._guard:
            self._last_session_id += 1
            return self._last_session_id

    def next_player_id(self) -> int:
        with self._guard:
            self._last_player_id += 1
            return self._last_player_id

    def add(self, session: GameSession) -> GameSession:
        with self._guard:
            self._sessions[session.session_id] = session
            self._locks.setdefault(session.session_id, threading.RLock())
            self._last_session_id = max(self._last_session_id, session.session_id)
            for player in session.players:
                self._player_sessions[player.player_id] = session.session_id
                self._last_player_id = max(self._last_player_id, player.player_id)
        return session

    def get(self, session_id: int) -> GameSession:
        with self._guard:
            session = self._sessions.get(session_id)
        if session is None:
            raise NotFound(f"Session {session_id} does not exist")
        return session

    def __contains__(self, session_id):
        with self._guard:
            return session_id in self._sessions

    @contextmanager
    def locked(self, session_id: int) -> Iterator[GameSession]:
        """Hold the session's lock and yield the session.

        Waits for any in-flight operation on the same session. If the store
        was cleared while waiting the session is gone, even when a new
        session has since been given the same id.
        """
        with self._guard:
            lock = self._locks.get(session_id)
            generation = self._generation
        if lock is None:
            raise NotFound(f"Session {session_id} does not exist")
        with lock:
            if self._generation != generation:
                raise NotFound(f"Session {session_id} does not exist")
            yield self.get(session_id)

    @contextmanager
    def locked_all(self) -> Iterator[None]:
        """Hold every session lock, taken in id order."""
        with self._guard:
            locks = [self._locks[sid] for sid in sorted(self._locks)]
        with ExitStack() as stack:
            for lock in locks:
                stack.enter_context(lock)
            yield

    def discard(self, session_id: int) -> None:
        with self._guard:
            session = self._sessions.pop(session_id, None)
            self._locks.pop(session_id, None)
            if session is not None:
                for player in session.players:
                    self._player_sessions.pop(player.player_id, None)

    def register_player(self, player: Player) -> None:
        with self._guard:
            self._player_sessions[player.player_id] = player.session_id

    def unregister_player(self, player_id: int) -> None:
        with self._guard:
            self._player_sessions.pop(player_id, None)

    def session_id_for_player(self, player_id: int) -> int:
        with self._guard:
            session_id = self._player_sessions.get(player_id)
        if session_id is None:
            raise NotFound(f"Player {player_id} does not exist")
        return session_id

    def find_player(self, player_id: int) -> Player:
        session = self.get(self.session_id_for_player(player_id))
        player = session.find_player(player_id)
        if player is None:
            raise NotFound(f"Player {player_id} does not exist")
        return player

    def sessions_for_quiz(self, quiz_id: int) -> List[GameSession]:
        with self._guard:
            return [s for s in self._sessions.values() if s.quiz_id == quiz_id]

    def all(self) -> List[GameSession]:
        with self._guard:
            return list(self._sessions.values())

    def save(self, session: GameSession) -> None:
        if self._persist is not None:
            self._persist(session)

    def restore(self, sessions: Iterable[GameSession]) -> int:
        restored = 0
        for session in sessions:
            self.add(session)
            restored += 1
        if restored:
            logger.info(f"[store-restore] sessions={restored}")
        return restored

    def clear(self) -> None:
        with self._guard:
            self._sessions.clear()
            self._locks.clear()
            self._player_sessions.clear()
            self._last_session_id = 0
            self._last_player_id = 0
            self._generation += 1
        if self._purge is not None:
            self._purge()

    def __len__(self):
        with self._guard:
            return len(self._sessions)
