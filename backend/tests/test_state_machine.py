import pytest

from quizgame.services.games.errors import InvalidState
from quizgame.services.games.state import TRANSITIONS, Action, SessionState, next_state

S = SessionState
A = Action


@pytest.mark.parametrize('state, action, expected', [
    (S.LOBBY, A.START, S.QUESTION_COUNTDOWN),
    (S.QUESTION_COUNTDOWN, A.COUNTDOWN_ELAPSED, S.QUESTION_OPEN),
    (S.QUESTION_COUNTDOWN, A.SKIP_COUNTDOWN, S.QUESTION_OPEN),
    (S.QUESTION_OPEN, A.QUESTION_ELAPSED, S.QUESTION_CLOSE),
    (S.QUESTION_OPEN, A.GO_TO_ANSWER, S.QUESTION_CLOSE),
    (S.QUESTION_CLOSE, A.NEXT_QUESTION, S.QUESTION_COUNTDOWN),
    (S.QUESTION_CLOSE, A.GO_TO_FINAL_RESULTS, S.FINAL_RESULTS),
    (S.FINAL_RESULTS, A.END, S.END),
])
def test_allowed_transitions(state, action, expected):
    assert next_state(state, action, question_index=0, question_count=3) is expected


@pytest.mark.parametrize('state', [s for s in SessionState if s is not S.END])
def test_end_reachable_from_every_live_state(state):
    assert next_state(state, A.END, 0, 1) is S.END


def test_nothing_leaves_end():
    for action in Action:
        with pytest.raises(InvalidState):
            next_state(S.END, action, 0, 1)


@pytest.mark.parametrize('state, action', [
    (S.LOBBY, A.SKIP_COUNTDOWN),
    (S.LOBBY, A.NEXT_QUESTION),
    (S.LOBBY, A.GO_TO_ANSWER),
    (S.QUESTION_OPEN, A.NEXT_QUESTION),
    (S.QUESTION_OPEN, A.GO_TO_FINAL_RESULTS),
    (S.QUESTION_COUNTDOWN, A.GO_TO_ANSWER),
    (S.QUESTION_CLOSE, A.START),
    (S.FINAL_RESULTS, A.NEXT_QUESTION),
])
def test_unlisted_transitions_rejected(state, action):
    with pytest.raises(InvalidState):
        next_state(state, action, 0, 3)


def test_every_pair_outside_table_is_rejected():
    for state in SessionState:
        for action in Action:
            if (state, action) in TRANSITIONS:
                continue
            with pytest.raises(InvalidState):
                next_state(state, action, 0, 3)


def test_no_shortcut_edges_exist():
    assert not any(s is S.LOBBY and t is S.QUESTION_OPEN for (s, _), t in TRANSITIONS.items())
    assert not any(s is S.QUESTION_OPEN and t is S.FINAL_RESULTS for (s, _), t in TRANSITIONS.items())


def test_next_question_guarded_at_last_question():
    assert next_state(S.QUESTION_CLOSE, A.NEXT_QUESTION, 0, 2) is S.QUESTION_COUNTDOWN
    with pytest.raises(InvalidState):
        next_state(S.QUESTION_CLOSE, A.NEXT_QUESTION, 1, 2)
