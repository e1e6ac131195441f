import pytest

from quizgame.services.games.scoring import ResultsAggregator, get_scaling_rule
from quizgame.services.games.state import Player, Submission

OPENED_AT = 100.0


def players(*names):
    return [Player(player_id=i, session_id=1, name=name) for i, name in enumerate(names, start=1)]


def submit(player_id, answer_ids, after, question_id=101):
    return Submission(player_id, question_id, tuple(answer_ids), OPENED_AT + after)


@pytest.fixture()
def question(make_question):
    return make_question(101, (1, 2, 3), {1, 2}, points=10)


def test_correct_requires_exact_set_in_any_order(question):
    roster = players('ann', 'bob', 'cat')
    result = ResultsAggregator().compute(question, [
        submit(1, [2, 1], 1),
        submit(2, [1], 2),
        submit(3, [1, 2, 3], 3),
    ], roster, OPENED_AT)

    outcomes = {o.name: o for o in result.outcomes}
    assert outcomes['ann'].correct
    assert not outcomes['bob'].correct
    assert not outcomes['cat'].correct
    assert result.players_correct == ['ann']


def test_reciprocal_points_by_answer_time(question):
    roster = players('ann', 'bob', 'cat')
    result = ResultsAggregator('reciprocal').compute(question, [
        submit(3, [1, 2], 3),
        submit(1, [1, 2], 1),
        submit(2, [1, 2], 2),
    ], roster, OPENED_AT)

    outcomes = {o.name: o for o in result.outcomes}
    assert (outcomes['ann'].rank, outcomes['ann'].points) == (1, 10)
    assert (outcomes['bob'].rank, outcomes['bob'].points) == (2, 5)
    assert outcomes['cat'].rank == 3
    assert outcomes['cat'].points == pytest.approx(10 / 3)
    assert result.percent_correct == 1.0


def test_flat_rule_awards_full_points(question):
    roster = players('ann', 'bob')
    result = ResultsAggregator('flat').compute(question, [
        submit(1, [1, 2], 1),
        submit(2, [1, 2], 2),
    ], roster, OPENED_AT)
    assert [o.points for o in result.outcomes] == [10, 10]


def test_incorrect_and_silent_players_score_zero_without_rank(question):
    roster = players('ann', 'bob', 'cat', 'dan')
    result = ResultsAggregator().compute(question, [
        submit(2, [3], 1),
        submit(1, [1, 2], 3),
    ], roster, OPENED_AT)

    outcomes = {o.name: o for o in result.outcomes}
    # bob answered first but wrongly, so ann still ranks first
    assert (outcomes['ann'].rank, outcomes['ann'].points) == (1, 10)
    assert (outcomes['bob'].rank, outcomes['bob'].points) == (None, 0)
    assert outcomes['cat'].submitted is False
    assert outcomes['cat'].answer_time_ms is None
    assert result.percent_correct == 0.25
    # averaged over the two players who submitted
    assert result.average_answer_time_ms == 2000


def test_no_players_gives_empty_result(question):
    result = ResultsAggregator().compute(question, [], [], OPENED_AT)
    assert result.percent_correct == 0.0
    assert result.average_answer_time_ms == 0
    assert result.outcomes == ()


def test_final_results_rank_by_total_score(make_question):
    aggregator = ResultsAggregator()
    roster = players('zed', 'amy', 'bo')
    q1 = make_question(1, (1, 2), {1}, points=10)
    q2 = make_question(2, (3, 4), {4}, points=4)

    r1 = aggregator.compute(q1, [
        Submission(1, 1, (1,), 101.0),
        Submission(2, 1, (1,), 102.0),
    ], roster, OPENED_AT)
    r2 = aggregator.compute(q2, [
        Submission(2, 2, (4,), 101.0),
        Submission(1, 2, (4,), 102.0),
    ], roster, OPENED_AT)

    final = aggregator.final_results(roster, [r1, r2])
    # zed 10 + 2, amy 5 + 4, bo 0
    assert [(name, score) for _, name, score in final.ranking] == [('zed', 12), ('amy', 9), ('bo', 0)]
    assert final.question_results == (r1, r2)


def test_final_results_ties_break_by_name():
    final = ResultsAggregator().final_results(players('zed', 'amy'), [])
    assert [name for _, name, _ in final.ranking] == ['amy', 'zed']


def test_unknown_scaling_rule():
    with pytest.raises(ValueError):
        get_scaling_rule('exponential')
    with pytest.raises(ValueError):
        ResultsAggregator('exponential')
