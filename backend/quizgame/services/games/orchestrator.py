"""Coordinates session transitions for host commands and timer expiry.

Host commands and timer callbacks both become a transition applied while
holding the session's lock, so the two can never interleave on one
session. A transition is saved before its timer is re-armed or cancelled;
if saving fails the session is put back as it was and the error propagates.
"""

import copy
import logging
import random
import string
import time
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .errors import GameError, InvalidState, InvalidSubmission, NotFound, Unauthorised
from .scheduler import TimerHandle, TimerRegistry
from .scoring import ResultsAggregator
from .session import GameSession
from .state import HOST_ACTIONS, Action, Player, QuestionSnapshot, SessionState, next_state
from .store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class GameSettings:
    countdown_duration: float = 3
    points_scaling_rule: str = 'reciprocal'
    max_auto_start_num: int = 50
    max_active_sessions: int = 10

    @classmethod
    def from_config(cls, config) -> 'GameSettings':
        return cls(
            countdown_duration=float(config.get('COUNTDOWN_DURATION_SEC', 3)),
            points_scaling_rule=config.get('POINTS_SCALING_RULE', 'reciprocal'),
            max_auto_start_num=int(config.get('MAX_AUTO_START_NUM', 50)),
            max_active_sessions=int(config.get('MAX_ACTIVE_SESSIONS', 10)),
        )


@dataclass(frozen=True)
class TransitionRequest:
    session_id: int
    action: Action
    # Set when a timer raised the request
    handle: Optional[TimerHandle] = None
    question_index: Optional[int] = None


class SessionOrchestrator:
    """Public entry point for everything that changes a game session.

    ``quizzes`` is the quiz collaborator: it answers ``get_quiz_owner``,
    ``get_quiz_snapshot`` and ``is_in_trash`` for a quiz id. ``notify`` is
    called with the session after every change that clients should see.
    """

    def __init__(self, store: SessionStore, quizzes, timers: TimerRegistry,
                 settings: Optional[GameSettings] = None,
                 clock: Callable[[], float] = time.time,
                 notify: Optional[Callable[[GameSession], None]] = None):
        self.store = store
        self.quizzes = quizzes
        self.timers = timers
        self.settings = settings or GameSettings()
        self.aggregator = ResultsAggregator(self.settings.points_scaling_rule)
        self._clock = clock
        self._notify_cb = notify

    # ---- session lifecycle ----

    def create_session(self, quiz_id: int, user_id: int, auto_start_num: int = 0) -> GameSession:
        if self.quizzes.get_quiz_owner(quiz_id) != user_id:
            raise Unauthorised('User is not an owner of this quiz')
        if self.quizzes.is_in_trash(quiz_id):
            raise InvalidState('The quiz is in trash')
        if isinstance(auto_start_num, bool) or not isinstance(auto_start_num, int):
            raise InvalidSubmission('autoStartNum must be a whole number')
        if auto_start_num < 0 or auto_start_num > self.settings.max_auto_start_num:
            raise InvalidSubmission(f"autoStartNum must be between 0 and {self.settings.max_auto_start_num}")
        active = [s for s in self.store.sessions_for_quiz(quiz_id) if s.is_active]
        if len(active) >= self.settings.max_active_sessions:
            raise InvalidState(f"A maximum of {self.settings.max_active_sessions} sessions can be active for a quiz")
        questions = tuple(self.quizzes.get_quiz_snapshot(quiz_id))
        if not questions:
            raise InvalidState('The quiz does not have any questions in it')

        session = GameSession(
            session_id=self.store.next_session_id(),
            quiz_id=quiz_id,
            owner_id=user_id,
            questions=questions,
            auto_start_num=auto_start_num,
            created_at=self._clock(),
        )
        self.store.add(session)
        try:
            with self.store.locked(session.session_id):
                self.store.save(session)
        except Exception:
            self.store.discard(session.session_id)
            raise
        logger.info(f"[session-create] session={session.session_id} quiz={quiz_id} questions={len(questions)}")
        return session

    def list_sessions(self, quiz_id: int, user_id: int) -> Dict[str, List[int]]:
        if self.quizzes.get_quiz_owner(quiz_id) != user_id:
            raise Unauthorised('User is not an owner of this quiz')
        sessions = self.store.sessions_for_quiz(quiz_id)
        return {
            'active_sessions': sorted(s.session_id for s in sessions if s.is_active),
            'inactive_sessions': sorted(s.session_id for s in sessions if not s.is_active),
        }

    def has_active_sessions(self, quiz_id: int) -> bool:
        return any(s.is_active for s in self.store.sessions_for_quiz(quiz_id))

    # ---- host commands ----

    def start(self, session_id: int, user_id: int) -> GameSession:
        return self._command(session_id, user_id, Action.START)

    def advance_to_next_question(self, session_id: int, user_id: int) -> GameSession:
        """Move on from a closed question; after the last one this opens final results."""
        with self.store.locked(session_id) as session:
            self._authorize(session, user_id)
            action = Action.NEXT_QUESTION
            if session.state is SessionState.QUESTION_CLOSE and session.is_last_question:
                action = Action.GO_TO_FINAL_RESULTS
            self._apply(session, action)
            return session

    def skip_countdown(self, session_id: int, user_id: int) -> GameSession:
        return self._command(session_id, user_id, Action.SKIP_COUNTDOWN)

    def force_close_question(self, session_id: int, user_id: int) -> GameSession:
        return self._command(session_id, user_id, Action.GO_TO_ANSWER)

    def go_to_final_results(self, session_id: int, user_id: int) -> GameSession:
        return self._command(session_id, user_id, Action.GO_TO_FINAL_RESULTS)

    def end(self, session_id: int, user_id: int) -> GameSession:
        return self._command(session_id, user_id, Action.END)

    def apply_action(self, session_id: int, user_id: int, action_name) -> GameSession:
        try:
            action = Action(action_name)
        except ValueError:
            action = None
        if action not in HOST_ACTIONS:
            raise InvalidSubmission(f"Action provided is not a valid Action enum: {action_name!r}")
        handlers = {
            Action.START: self.start,
            Action.NEXT_QUESTION: self.advance_to_next_question,
            Action.SKIP_COUNTDOWN: self.skip_countdown,
            Action.GO_TO_ANSWER: self.force_close_question,
            Action.GO_TO_FINAL_RESULTS: self.go_to_final_results,
            Action.END: self.end,
        }
        return handlers[action](session_id, user_id)

    def dispatch(self, request: TransitionRequest) -> GameSession:
        """Apply a queued transition request under the session's lock."""
        with self.store.locked(request.session_id) as session:
            handle = request.handle
            if handle is not None:
                if handle.cancelled or not self.timers.is_current(handle):
                    logger.info(f"[timer-abort] session={session.session_id} handle={handle.id} cancelled")
                    return session
                self.timers.discard(handle)
                if request.question_index is not None and request.question_index != session.question_index:
                    logger.warning(
                        f"[timer-abort] session={session.session_id} expected_question={request.question_index} "
                        f"actual_question={session.question_index}"
                    )
                    return session
            self._apply(session, request.action)
            return session

    # ---- players ----

    def join_player(self, session_id: int, name: Optional[str]) -> Player:
        with self.store.locked(session_id) as session:
            if session.state is not SessionState.LOBBY:
                raise InvalidState('Session is not in LOBBY state')
            name = (name or '').strip()
            if not name:
                name = self._generate_name(session)
            elif session.has_player_named(name):
                raise InvalidSubmission('Name of user entered is not unique')

            player = Player(player_id=self.store.next_player_id(), session_id=session.session_id, name=name)
            session.players.append(player)
            self.store.register_player(player)
            auto_start = bool(session.auto_start_num) and len(session.players) >= session.auto_start_num
            try:
                if auto_start:
                    self._apply(session, Action.START)
                else:
                    self.store.save(session)
            except Exception:
                session.players.remove(player)
                self.store.unregister_player(player.player_id)
                raise

            logger.info(f"[player-join] session={session.session_id} player={player.player_id} name={name}")
            if not auto_start:
                self._notify(session)
            return player

    def submit_answers(self, player_id: int, position: int, answer_ids: Sequence[int]):
        session_id = self.store.session_id_for_player(player_id)
        with self.store.locked(session_id) as session:
            question = self._question_at(session, position)
            if session.state is not SessionState.QUESTION_OPEN:
                raise InvalidSubmission('Session is not in QUESTION_OPEN state')
            if session.question_index != position - 1:
                raise InvalidSubmission('Session is not currently on this question')
            if not isinstance(answer_ids, (list, tuple)) or any(
                    isinstance(a, bool) or not isinstance(a, int) for a in answer_ids):
                raise InvalidSubmission('Answer IDs must be a list of integers')
            return session.collector.submit(player_id, question.question_id, list(answer_ids), self._clock())

    # ---- reads ----

    def get_session_view(self, session_id: int, user_id: Optional[int] = None):
        with self.store.locked(session_id) as session:
            if user_id is not None:
                self._authorize(session, user_id)
            return self._view(session)

    def get_player_status(self, player_id: int):
        session_id = self.store.session_id_for_player(player_id)
        with self.store.locked(session_id) as session:
            return {
                'state': session.state.value,
                'num_questions': session.question_count,
                'at_question': session.question_index + 1,
            }

    def get_player_question(self, player_id: int, position: int):
        session_id = self.store.session_id_for_player(player_id)
        with self.store.locked(session_id) as session:
            question = self._question_at(session, position)
            if session.state in (SessionState.LOBBY, SessionState.END):
                raise InvalidState('Session is in LOBBY or END state')
            if session.question_index != position - 1:
                raise InvalidState('Session is not currently on this question')
            return question.to_dict(reveal=False)

    def get_player_question_result(self, player_id: int, position: int):
        session_id = self.store.session_id_for_player(player_id)
        with self.store.locked(session_id) as session:
            question = self._question_at(session, position)
            result = session.result_for(question.question_id)
            if result is None:
                raise InvalidState('Results for this question are not available yet')
            return result.to_dict()

    def get_final_results(self, session_id: int, user_id: Optional[int] = None):
        with self.store.locked(session_id) as session:
            if user_id is not None:
                self._authorize(session, user_id)
            if session.state not in (SessionState.FINAL_RESULTS, SessionState.END) or session.final_results is None:
                raise InvalidState('Session is not in FINAL_RESULTS state')
            return session.final_results.to_dict()

    def get_player_final_results(self, player_id: int):
        return self.get_final_results(self.store.session_id_for_player(player_id))

    # ---- reset ----

    def clear(self) -> None:
        # Wait for in-flight commands so none can re-arm or save afterwards
        with self.store.locked_all():
            cancelled = self.timers.cancel_all()
            self.store.clear()
        logger.info(f"[clear] timers_cancelled={cancelled}")

    # ---- internals ----

    def _command(self, session_id: int, user_id: int, action: Action) -> GameSession:
        with self.store.locked(session_id) as session:
            self._authorize(session, user_id)
            self._apply(session, action)
            return session

    def _apply(self, session: GameSession, action: Action) -> None:
        rollback = self._checkpoint(session)
        timer = self._transition(session, action)
        try:
            self.store.save(session)
        except Exception:
            rollback()
            logger.error(
                f"[save-failed] session={session.session_id} action={action.value} "
                f"kept_state={session.state.value}"
            )
            raise
        if timer is None:
            self.timers.cancel(session.session_id)
        else:
            self._arm(session, *timer)
        self._notify(session)

    def _checkpoint(self, session: GameSession) -> Callable[[], None]:
        state, index, opened_at = session.state, session.question_index, session.question_opened_at
        result_count, final_results = len(session.results), session.final_results
        # Transitions rebind collector fields rather than mutating them
        collector = copy.copy(session.collector)

        def rollback():
            session.state = state
            session.question_index = index
            session.question_opened_at = opened_at
            del session.results[result_count:]
            session.final_results = final_results
            session.collector = collector

        return rollback

    def _transition(self, session: GameSession, action: Action) -> Optional[Tuple[Action, float]]:
        """Change the session in memory; return the timer to arm, or None to cancel."""
        previous = session.state
        target = next_state(previous, action, session.question_index, session.question_count)
        timer = None

        if target is SessionState.QUESTION_COUNTDOWN:
            session.question_index = 0 if previous is SessionState.LOBBY else session.question_index + 1
            session.question_opened_at = None
            session.state = target
            timer = (Action.COUNTDOWN_ELAPSED, self.settings.countdown_duration)
        elif target is SessionState.QUESTION_OPEN:
            question = session.current_question
            session.state = target
            session.question_opened_at = self._clock()
            session.collector.open(question, session.player_ids)
            timer = (Action.QUESTION_ELAPSED, question.duration)
        elif target is SessionState.QUESTION_CLOSE:
            question = session.current_question
            submissions = session.collector.close(question.question_id)
            result = self.aggregator.compute(question, submissions, session.players, session.question_opened_at)
            session.results.append(result)
            session.state = target
        elif target is SessionState.FINAL_RESULTS:
            session.final_results = self.aggregator.final_results(session.players, session.results)
            session.state = target
        elif target is SessionState.END:
            session.collector.discard()
            if session.final_results is None:
                session.final_results = self.aggregator.final_results(session.players, session.results)
            session.question_opened_at = None
            session.state = target

        logger.info(
            f"[transition] session={session.session_id} {previous.value} -> {target.value} "
            f"action={action.value} question={session.question_index}"
        )
        return timer

    def _arm(self, session: GameSession, action: Action, delay: float) -> None:
        callback = partial(self._on_timer, action=action, question_index=session.question_index)
        self.timers.arm(session.session_id, delay, callback)

    def _on_timer(self, handle: TimerHandle, action: Action, question_index: int) -> None:
        request = TransitionRequest(handle.session_id, action, handle=handle, question_index=question_index)
        try:
            self.dispatch(request)
        except GameError as exc:
            # Cancellation should have prevented this
            logger.warning(
                f"[timer-stale] session={handle.session_id} action={action.value} reason={exc.message}"
            )

    def _authorize(self, session: GameSession, user_id: int) -> None:
        try:
            owner_id = self.quizzes.get_quiz_owner(session.quiz_id)
        except NotFound:
            owner_id = session.owner_id
        if owner_id != user_id:
            raise Unauthorised('User is not an owner of this quiz')

    def _question_at(self, session: GameSession, position) -> QuestionSnapshot:
        if isinstance(position, bool) or not isinstance(position, int) or not 1 <= position <= session.question_count:
            raise InvalidSubmission('Question position is not valid for the session this player is in')
        return session.questions[position - 1]

    def _generate_name(self, session: GameSession) -> str:
        while True:
            name = ''.join(random.sample(string.ascii_lowercase, 5)) + ''.join(random.sample(string.digits, 3))
            if not session.has_player_named(name):
                return name

    def _notify(self, session: GameSession) -> None:
        if self._notify_cb is None:
            return
        try:
            self._notify_cb(session)
        except Exception:
            logger.exception(f"[notify-error] session={session.session_id}")

    def _view(self, session: GameSession):
        question = session.current_question
        latest = session.latest_result
        show_final = session.state in (SessionState.FINAL_RESULTS, SessionState.END)
        return {
            'session_id': session.session_id,
            'quiz_id': session.quiz_id,
            'state': session.state.value,
            'question_index': session.question_index,
            'at_question': session.question_index + 1,
            'num_questions': session.question_count,
            'auto_start_num': session.auto_start_num,
            'players': [p.name for p in session.players],
            'current_question': question.to_dict() if question is not None else None,
            'latest_result': latest.to_dict() if latest is not None else None,
            'final_results': session.final_results.to_dict() if show_final and session.final_results else None,
        }
