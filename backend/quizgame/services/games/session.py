"""The mutable game session.

Only the orchestrator changes ``state`` and ``question_index``; everything
else reads them.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .collector import AnswerCollector
from .state import FinalResults, Player, QuestionResult, QuestionSnapshot, SessionState


@dataclass(eq=False)
class GameSession:
    session_id: int
    quiz_id: int
    owner_id: int
    questions: Tuple[QuestionSnapshot, ...]
    auto_start_num: int = 0
    state: SessionState = SessionState.LOBBY
    question_index: int = -1
    players: List[Player] = field(default_factory=list)
    results: List[QuestionResult] = field(default_factory=list)
    final_results: Optional[FinalResults] = None
    question_opened_at: Optional[float] = None
    created_at: float = field(default_factory=time.time)
    collector: AnswerCollector = field(default_factory=AnswerCollector, repr=False)

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[QuestionSnapshot]:
        if 0 <= self.question_index < len(self.questions):
            return self.questions[self.question_index]
        return None

    @property
    def is_last_question(self) -> bool:
        return self.question_index + 1 >= len(self.questions)

    @property
    def is_active(self) -> bool:
        return self.state is not SessionState.END

    @property
    def player_ids(self) -> List[int]:
        return [p.player_id for p in self.players]

    def find_player(self, player_id: int) -> Optional[Player]:
        return next((p for p in self.players if p.player_id == player_id), None)

    def has_player_named(self, name: str) -> bool:
        return any(p.name == name for p in self.players)

    def result_for(self, question_id: int) -> Optional[QuestionResult]:
        return next((r for r in self.results if r.question_id == question_id), None)

    @property
    def latest_result(self) -> Optional[QuestionResult]:
        """Result of the current question once it has closed."""
        question = self.current_question
        if question is None or self.state in (SessionState.QUESTION_COUNTDOWN, SessionState.QUESTION_OPEN):
            return None
        return self.result_for(question.question_id)

    def to_record(self):
        return {
            'session_id': self.session_id,
            'quiz_id': self.quiz_id,
            'owner_id': self.owner_id,
            'auto_start_num': self.auto_start_num,
            'state': self.state.value,
            'question_index': self.question_index,
            'question_opened_at': self.question_opened_at,
            'created_at': self.created_at,
            'questions': [q.to_dict() for q in self.questions],
            'players': [p.to_dict() for p in self.players],
            'results': [r.to_dict() for r in self.results],
            'final_results': self.final_results.to_dict() if self.final_results else None,
        }

    @classmethod
    def from_record(cls, data) -> 'GameSession':
        session = cls(
            session_id=data['session_id'],
            quiz_id=data['quiz_id'],
            owner_id=data['owner_id'],
            questions=tuple(QuestionSnapshot.from_dict(q) for q in data.get('questions', [])),
            auto_start_num=int(data.get('auto_start_num') or 0),
            state=SessionState(data['state']),
            question_index=int(data.get('question_index', -1)),
            players=[Player.from_dict(p) for p in data.get('players', [])],
            results=[QuestionResult.from_dict(r) for r in data.get('results', [])],
            final_results=FinalResults.from_dict(data['final_results']) if data.get('final_results') else None,
            question_opened_at=data.get('question_opened_at'),
            created_at=data.get('created_at') or time.time(),
        )
        # Submissions are not persisted; an open question restarts empty
        if session.state is SessionState.QUESTION_OPEN and session.current_question is not None:
            session.collector.open(session.current_question, session.player_ids)
        return session
