"""Buffers answer submissions for the question that is currently open."""

from typing import Dict, Iterable, Optional, Sequence, Set, Tuple

from .errors import InvalidSubmission
from .state import QuestionSnapshot, Submission


class AnswerCollector:
    """Per-session collector. Only one question is ever open at a time.

    A player's later submission replaces the earlier one, so the time of the
    last submission is what scoring sees. Closing freezes the set; the
    collector then refuses anything for that question.
    """

    def __init__(self):
        self._question: Optional[QuestionSnapshot] = None
        self._player_ids: Set[int] = set()
        self._submissions: Dict[int, Submission] = {}
        self._open = False

    @property
    def question_id(self) -> Optional[int]:
        return self._question.question_id if self._question else None

    def is_open_for(self, question_id: int) -> bool:
        return self._open and self.question_id == question_id

    def open(self, question: QuestionSnapshot, player_ids: Iterable[int]) -> None:
        self._question = question
        self._player_ids = set(player_ids)
        self._submissions = {}
        self._open = True

    def submit(self, player_id: int, question_id: int, answer_ids: Sequence[int], submitted_at: float) -> Submission:
        if not self.is_open_for(question_id):
            raise InvalidSubmission(f"Question {question_id} is not accepting answers")
        if player_id not in self._player_ids:
            raise InvalidSubmission(f"Player {player_id} is not part of this question")
        if not answer_ids:
            raise InvalidSubmission('Less than 1 answer ID was submitted')
        if len(set(answer_ids)) != len(answer_ids):
            raise InvalidSubmission('Duplicate answer IDs provided')
        unknown = set(answer_ids) - self._question.answer_ids
        if unknown:
            raise InvalidSubmission(f"Answer IDs {sorted(unknown)} are not valid for this question")

        submission = Submission(
            player_id=player_id,
            question_id=question_id,
            answer_ids=tuple(answer_ids),
            submitted_at=submitted_at,
        )
        self._submissions[player_id] = submission
        return submission

    def close(self, question_id: int) -> Tuple[Submission, ...]:
        if not self.is_open_for(question_id):
            raise InvalidSubmission(f"Question {question_id} is not open")
        self._open = False
        return tuple(sorted(self._submissions.values(), key=lambda s: (s.submitted_at, s.player_id)))

    def discard(self) -> None:
        self._question = None
        self._player_ids = set()
        self._submissions = {}
        self._open = False

    def submission_for(self, player_id: int) -> Optional[Submission]:
        return self._submissions.get(player_id)

    def __len__(self):
        return len(self._submissions)
