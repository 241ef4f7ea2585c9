from __future__ import annotations

import unittest

from goalwatch.fixtures.schema import FixtureSnapshot, Goals
from goalwatch.resolution.evaluator import Outcome, evaluate, goals_needed
from goalwatch.resolution.markets import UnknownMarket, classify


def _snapshot(
    status: str,
    home: int,
    away: int,
    half_time: tuple[int, int] | None = None,
    elapsed: int | None = None,
) -> FixtureSnapshot:
    return FixtureSnapshot(
        match_id="1035037",
        status_code=status,
        elapsed=elapsed,
        goals=Goals(home=home, away=away),
        half_time_goals=Goals(home=half_time[0], away=half_time[1]) if half_time else None,
    )


class GoalsNeededTests(unittest.TestCase):
    def test_half_lines(self) -> None:
        self.assertEqual(1, goals_needed(0.5))
        self.assertEqual(3, goals_needed(2.5))
        self.assertEqual(5, goals_needed(4.5))


class FullMatchOverTests(unittest.TestCase):
    spec = classify("2.5Ü MB")

    def test_not_started_is_pending(self) -> None:
        self.assertEqual(Outcome.PENDING, evaluate(self.spec, _snapshot("NS", 0, 0)).outcome)

    def test_early_win_in_first_half(self) -> None:
        decision = evaluate(self.spec, _snapshot("1H", 2, 1, elapsed=40))

        self.assertEqual(Outcome.WON, decision.outcome)
        self.assertTrue(decision.is_terminal)
        self.assertEqual((2, 1), (decision.home_score, decision.away_score))

    def test_win_stays_won_for_later_snapshots(self) -> None:
        for snapshot in (
            _snapshot("1H", 2, 1, elapsed=40),
            _snapshot("HT", 2, 1, half_time=(2, 1)),
            _snapshot("2H", 3, 1, half_time=(2, 1)),
            _snapshot("FT", 3, 1, half_time=(2, 1)),
        ):
            with self.subTest(status=snapshot.status_code):
                self.assertEqual(Outcome.WON, evaluate(self.spec, snapshot).outcome)

    def test_no_loss_while_match_is_live(self) -> None:
        decision = evaluate(self.spec, _snapshot("2H", 1, 0))

        self.assertEqual(Outcome.PENDING, decision.outcome)
        self.assertFalse(decision.is_terminal)

    def test_lost_once_finished(self) -> None:
        for status in ("FT", "AET", "PEN"):
            with self.subTest(status=status):
                self.assertEqual(Outcome.LOST, evaluate(self.spec, _snapshot(status, 1, 1)).outcome)

    def test_extra_time_goals_can_still_win(self) -> None:
        self.assertEqual(Outcome.WON, evaluate(self.spec, _snapshot("ET", 2, 1)).outcome)

    def test_exactly_the_line_minus_half_is_not_enough(self) -> None:
        self.assertEqual(Outcome.LOST, evaluate(classify("1.5Ü MB"), _snapshot("FT", 1, 0)).outcome)
        self.assertEqual(Outcome.WON, evaluate(classify("1.5Ü MB"), _snapshot("2H", 1, 1)).outcome)

    def test_suspended_match_is_pending(self) -> None:
        self.assertEqual(Outcome.PENDING, evaluate(self.spec, _snapshot("SUSP", 4, 2)).outcome)


class FirstHalfOverTests(unittest.TestCase):
    def test_pending_during_first_half(self) -> None:
        spec = classify("0.5Ü İY")

        self.assertEqual(Outcome.PENDING, evaluate(spec, _snapshot("1H", 1, 0)).outcome)

    def test_half_time_win_is_idempotent(self) -> None:
        spec = classify("0.5Ü İY")
        snapshot = _snapshot("HT", 1, 0, half_time=(1, 0))

        first = evaluate(spec, snapshot)
        second = evaluate(spec, snapshot)

        self.assertEqual(Outcome.WON, first.outcome)
        self.assertEqual(first, second)

    def test_half_time_loss(self) -> None:
        decision = evaluate(classify("1.5Ü İY"), _snapshot("2H", 3, 0, half_time=(1, 0)))

        self.assertEqual(Outcome.LOST, decision.outcome)
        self.assertEqual((1, 0), (decision.home_score, decision.away_score))

    def test_missing_half_time_score_is_not_zero(self) -> None:
        decision = evaluate(classify("0.5Ü İY"), _snapshot("HT", 0, 0))

        self.assertEqual(Outcome.PENDING, decision.outcome)


class BothTeamsScoreTests(unittest.TestCase):
    spec = classify("KGV MB")

    def test_waits_for_second_team(self) -> None:
        self.assertEqual(Outcome.PENDING, evaluate(self.spec, _snapshot("2H", 1, 0)).outcome)
        self.assertEqual(Outcome.WON, evaluate(self.spec, _snapshot("2H", 1, 1)).outcome)

    def test_lost_only_at_full_time(self) -> None:
        self.assertEqual(Outcome.PENDING, evaluate(self.spec, _snapshot("2H", 0, 3)).outcome)
        self.assertEqual(Outcome.LOST, evaluate(self.spec, _snapshot("FT", 0, 3)).outcome)


class UnknownMarketTests(unittest.TestCase):
    def test_unknown_market_is_always_pending(self) -> None:
        decision = evaluate(UnknownMarket(label="3.5Ä MB", reason="typo"), _snapshot("FT", 5, 5))

        self.assertEqual(Outcome.PENDING, decision.outcome)
        self.assertIn("unknown market", decision.reason)


if __name__ == "__main__":
    unittest.main()
