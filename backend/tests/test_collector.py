import pytest

from quizgame.services.games.collector import AnswerCollector
from quizgame.services.games.errors import InvalidSubmission


@pytest.fixture()
def question(make_question):
    return make_question(101, (1, 2, 3, 4), {1, 3})


@pytest.fixture()
def collector(question):
    c = AnswerCollector()
    c.open(question, [10, 11])
    return c


def test_submit_requires_open_question(question):
    c = AnswerCollector()
    with pytest.raises(InvalidSubmission):
        c.submit(10, question.question_id, [1], 1.0)


def test_submit_for_other_question_rejected(collector):
    with pytest.raises(InvalidSubmission):
        collector.submit(10, 999, [1], 1.0)


def test_unknown_player_rejected(collector):
    with pytest.raises(InvalidSubmission):
        collector.submit(42, 101, [1], 1.0)


@pytest.mark.parametrize('answer_ids', [[], [1, 1], [1, 9]])
def test_malformed_answers_rejected(collector, answer_ids):
    with pytest.raises(InvalidSubmission):
        collector.submit(10, 101, answer_ids, 1.0)
    assert collector.submission_for(10) is None


def test_resubmission_overwrites(collector):
    collector.submit(10, 101, [2], 1.0)
    latest = collector.submit(10, 101, [3, 1], 4.5)

    assert len(collector) == 1
    assert collector.submission_for(10) == latest
    assert latest.answer_ids == (3, 1)
    assert latest.submitted_at == 4.5


def test_close_freezes_and_rejects_late_submissions(collector):
    collector.submit(11, 101, [2], 2.0)
    collector.submit(10, 101, [1, 3], 1.0)

    frozen = collector.close(101)
    assert [s.player_id for s in frozen] == [10, 11]
    assert not collector.is_open_for(101)

    with pytest.raises(InvalidSubmission):
        collector.submit(10, 101, [1], 3.0)
    with pytest.raises(InvalidSubmission):
        collector.close(101)


def test_open_resets_previous_question(collector, make_question):
    collector.submit(10, 101, [1], 1.0)
    collector.close(101)

    collector.open(make_question(102, (5, 6), {5}), [10, 11])
    assert len(collector) == 0
    assert collector.is_open_for(102)


def test_discard_drops_everything(collector):
    collector.submit(10, 101, [1], 1.0)
    collector.discard()

    assert collector.question_id is None
    assert len(collector) == 0
    with pytest.raises(InvalidSubmission):
        collector.submit(10, 101, [1], 1.0)
