"""Per-question scoring and the final leaderboard.

A submission is correct only when its selected ids equal the question's
correct ids as a set. Correct players are ranked by answer time; the points
they earn depend on that rank through a named scaling rule. Everybody else
scores zero and takes no rank.
"""

from typing import Callable, Dict, Sequence

from .state import FinalResults, Player, PlayerOutcome, QuestionResult, QuestionSnapshot, Submission

ScalingRule = Callable[[int, int], float]


def reciprocal_points(points: int, rank: int) -> float:
    return points / rank


def flat_points(points: int, rank: int) -> float:
    return float(points)


SCALING_RULES: Dict[str, ScalingRule] = {
    'reciprocal': reciprocal_points,
    'flat': flat_points,
}


def get_scaling_rule(name: str) -> ScalingRule:
    try:
        return SCALING_RULES[name]
    except KeyError:
        raise ValueError(f"Unknown points scaling rule {name!r}; expected one of {sorted(SCALING_RULES)}")


class ResultsAggregator:

    def __init__(self, scaling_rule: str = 'reciprocal'):
        self.scaling_rule = scaling_rule
        self._scale = get_scaling_rule(scaling_rule)

    def compute(self, question: QuestionSnapshot, submissions: Sequence[Submission],
                players: Sequence[Player], opened_at: float) -> QuestionResult:
        """Score one closed question.

        ``submissions`` holds at most one entry per player (the latest);
        ``opened_at`` is when the question opened, on the same clock as the
        submission timestamps.
        """
        correct_ids = question.correct_answer_ids
        by_player = {s.player_id: s for s in submissions}

        times = {}
        correct_players = []
        for player in players:
            submission = by_player.get(player.player_id)
            if submission is None:
                continue
            times[player.player_id] = max(0, int(round((submission.submitted_at - opened_at) * 1000)))
            if frozenset(submission.answer_ids) == correct_ids:
                correct_players.append(player.player_id)

        ranked = sorted(correct_players, key=lambda pid: (by_player[pid].submitted_at, pid))
        ranks = {pid: position for position, pid in enumerate(ranked, start=1)}

        outcomes = []
        for player in players:
            pid = player.player_id
            rank = ranks.get(pid)
            outcomes.append(PlayerOutcome(
                player_id=pid,
                name=player.name,
                submitted=pid in times,
                correct=rank is not None,
                answer_time_ms=times.get(pid),
                rank=rank,
                points=self._scale(question.points, rank) if rank is not None else 0.0,
            ))

        total_players = len(players)
        percent_correct = len(ranked) / total_players if total_players else 0.0
        average_answer_time_ms = int(round(sum(times.values()) / len(times))) if times else 0

        return QuestionResult(
            question_id=question.question_id,
            outcomes=tuple(outcomes),
            percent_correct=percent_correct,
            average_answer_time_ms=average_answer_time_ms,
        )

    def final_results(self, players: Sequence[Player], results: Sequence[QuestionResult]) -> FinalResults:
        scores = {p.player_id: 0.0 for p in players}
        names = {p.player_id: p.name for p in players}
        for result in results:
            for outcome in result.outcomes:
                scores[outcome.player_id] = scores.get(outcome.player_id, 0.0) + outcome.points
                names.setdefault(outcome.player_id, outcome.name)

        ranking = sorted(scores.items(), key=lambda item: (-item[1], names[item[0]]))
        return FinalResults(
            ranking=tuple((pid, names[pid], score) for pid, score in ranking),
            question_results=tuple(results),
        )
