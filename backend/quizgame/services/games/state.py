"""Session states, the transition table and the value types a session holds."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from .errors import InvalidState


class SessionState(str, Enum):
    LOBBY = 'LOBBY'
    QUESTION_COUNTDOWN = 'QUESTION_COUNTDOWN'
    QUESTION_OPEN = 'QUESTION_OPEN'
    QUESTION_CLOSE = 'QUESTION_CLOSE'
    FINAL_RESULTS = 'FINAL_RESULTS'
    END = 'END'


class Action(str, Enum):
    # host commands
    START = 'START'
    NEXT_QUESTION = 'NEXT_QUESTION'
    SKIP_COUNTDOWN = 'SKIP_COUNTDOWN'
    GO_TO_ANSWER = 'GO_TO_ANSWER'
    GO_TO_FINAL_RESULTS = 'GO_TO_FINAL_RESULTS'
    END = 'END'
    # timer expiry
    COUNTDOWN_ELAPSED = 'COUNTDOWN_ELAPSED'
    QUESTION_ELAPSED = 'QUESTION_ELAPSED'


HOST_ACTIONS = frozenset({
    Action.START,
    Action.NEXT_QUESTION,
    Action.SKIP_COUNTDOWN,
    Action.GO_TO_ANSWER,
    Action.GO_TO_FINAL_RESULTS,
    Action.END,
})

TRANSITIONS: Dict[Tuple[SessionState, Action], SessionState] = {
    (SessionState.LOBBY, Action.START): SessionState.QUESTION_COUNTDOWN,
    (SessionState.QUESTION_COUNTDOWN, Action.COUNTDOWN_ELAPSED): SessionState.QUESTION_OPEN,
    (SessionState.QUESTION_COUNTDOWN, Action.SKIP_COUNTDOWN): SessionState.QUESTION_OPEN,
    (SessionState.QUESTION_OPEN, Action.QUESTION_ELAPSED): SessionState.QUESTION_CLOSE,
    (SessionState.QUESTION_OPEN, Action.GO_TO_ANSWER): SessionState.QUESTION_CLOSE,
    (SessionState.QUESTION_CLOSE, Action.NEXT_QUESTION): SessionState.QUESTION_COUNTDOWN,
    (SessionState.QUESTION_CLOSE, Action.GO_TO_FINAL_RESULTS): SessionState.FINAL_RESULTS,
}
# END is reachable from every state except itself
for _state in SessionState:
    if _state is not SessionState.END:
        TRANSITIONS[(_state, Action.END)] = SessionState.END


def next_state(state: SessionState, action: Action, question_index: int, question_count: int) -> SessionState:
    """Resolve the target state for ``action`` or raise :class:`InvalidState`."""
    target = TRANSITIONS.get((state, action))
    if target is None:
        raise InvalidState(f"Action {action.value} cannot be applied in state {state.value}")
    if action is Action.NEXT_QUESTION and question_index + 1 >= question_count:
        raise InvalidState('No questions remain; go to final results instead')
    return target


@dataclass(frozen=True)
class AnswerOption:
    answer_id: int
    answer: str
    colour: str
    correct: bool

    def to_dict(self, reveal: bool = True):
        data = {'answer_id': self.answer_id, 'answer': self.answer, 'colour': self.colour}
        if reveal:
            data['correct'] = self.correct
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(data['answer_id'], data['answer'], data.get('colour', ''), bool(data.get('correct')))


@dataclass(frozen=True)
class QuestionSnapshot:
    """Immutable copy of a quiz question taken when the session is created."""

    question_id: int
    question: str
    duration: int
    points: int
    answers: Tuple[AnswerOption, ...]
    thumbnail_url: Optional[str] = None

    @property
    def answer_ids(self) -> FrozenSet[int]:
        return frozenset(a.answer_id for a in self.answers)

    @property
    def correct_answer_ids(self) -> FrozenSet[int]:
        return frozenset(a.answer_id for a in self.answers if a.correct)

    def to_dict(self, reveal: bool = True):
        return {
            'question_id': self.question_id,
            'question': self.question,
            'duration': self.duration,
            'points': self.points,
            'thumbnail_url': self.thumbnail_url,
            'answers': [a.to_dict(reveal=reveal) for a in self.answers],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            question_id=data['question_id'],
            question=data['question'],
            duration=int(data['duration']),
            points=int(data['points']),
            answers=tuple(AnswerOption.from_dict(a) for a in data.get('answers', [])),
            thumbnail_url=data.get('thumbnail_url'),
        )


@dataclass(frozen=True)
class Player:
    player_id: int
    session_id: int
    name: str

    def to_dict(self):
        return {'player_id': self.player_id, 'session_id': self.session_id, 'name': self.name}

    @classmethod
    def from_dict(cls, data):
        return cls(data['player_id'], data['session_id'], data['name'])


@dataclass(frozen=True)
class Submission:
    player_id: int
    question_id: int
    answer_ids: Tuple[int, ...]
    submitted_at: float


@dataclass(frozen=True)
class PlayerOutcome:
    player_id: int
    name: str
    submitted: bool
    correct: bool
    answer_time_ms: Optional[int] = None
    rank: Optional[int] = None
    points: float = 0.0

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'name': self.name,
            'submitted': self.submitted,
            'correct': self.correct,
            'answer_time_ms': self.answer_time_ms,
            'rank': self.rank,
            'points': self.points,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            player_id=data['player_id'],
            name=data['name'],
            submitted=bool(data['submitted']),
            correct=bool(data['correct']),
            answer_time_ms=data.get('answer_time_ms'),
            rank=data.get('rank'),
            points=float(data.get('points', 0.0)),
        )


@dataclass(frozen=True)
class QuestionResult:
    question_id: int
    outcomes: Tuple[PlayerOutcome, ...]
    percent_correct: float
    average_answer_time_ms: int

    @property
    def players_correct(self) -> List[str]:
        return sorted(o.name for o in self.outcomes if o.correct)

    def outcome_for(self, player_id: int) -> Optional[PlayerOutcome]:
        return next((o for o in self.outcomes if o.player_id == player_id), None)

    def to_dict(self):
        return {
            'question_id': self.question_id,
            'players_correct': self.players_correct,
            'percent_correct': self.percent_correct,
            'average_answer_time_ms': self.average_answer_time_ms,
            'outcomes': [o.to_dict() for o in self.outcomes],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            question_id=data['question_id'],
            outcomes=tuple(PlayerOutcome.from_dict(o) for o in data.get('outcomes', [])),
            percent_correct=float(data['percent_correct']),
            average_answer_time_ms=int(data['average_answer_time_ms']),
        )


@dataclass(frozen=True)
class FinalResults:
    # (player_id, name, score) ordered best first
    ranking: Tuple[Tuple[int, str, float], ...] = ()
    question_results: Tuple[QuestionResult, ...] = field(default_factory=tuple)

    def to_dict(self):
        return {
            'users_ranked_by_score': [
                {'player_id': pid, 'name': name, 'score': score} for pid, name, score in self.ranking
            ],
            'question_results': [r.to_dict() for r in self.question_results],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            ranking=tuple((r['player_id'], r['name'], float(r['score'])) for r in data.get('users_ranked_by_score', [])),
            question_results=tuple(QuestionResult.from_dict(r) for r in data.get('question_results', [])),
        )
