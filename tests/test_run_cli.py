from __future__ import annotations

import io
import json
import unittest
from contextlib import redirect_stdout
from unittest.mock import AsyncMock, patch

from goalwatch.fixtures.schema import FixtureSnapshot, Goals
from goalwatch.resolution import run
from goalwatch.resolution.store import ActivePrediction
from goalwatch.settings import SettingsSnapshot

SETTINGS = SettingsSnapshot(
    id=1,
    fixtures_api_key_enc=None,
    resolver_enabled=True,
    resolver_concurrency=2,
    resolver_interval_seconds=30,
    fetch_timeout_seconds=5.0,
    retention_days=2,
)


class _Gateway:
    deadline_seconds = 2.0

    def fetch_snapshot(self, match_id: str) -> FixtureSnapshot:
        return FixtureSnapshot(match_id=match_id, status_code="FT", goals=Goals(home=2, away=1))


class _Store:
    def __init__(self) -> None:
        self.completed: dict[int, tuple] = {}

    def list_active(self) -> list[ActivePrediction]:
        return [ActivePrediction(id=7, match_id="1035037", prediction_type="2.5Ü MB", odds=1.8)]

    def try_complete(self, prediction_id, result, home_score, away_score, *, now=None) -> bool:
        self.completed[prediction_id] = (result, home_score, away_score)
        return True


class RunCliTests(unittest.TestCase):
    def setUp(self) -> None:
        for target, kwargs in (
            ("goalwatch.resolution.run.init_db", {}),
            ("goalwatch.resolution.run.load_settings_snapshot", {"return_value": SETTINGS}),
        ):
            patcher = patch(target, **kwargs)
            patcher.start()
            self.addCleanup(patcher.stop)

    def _main(self, *args: str) -> str:
        out = io.StringIO()
        with patch("sys.argv", ["goalwatch-resolver", *args]), redirect_stdout(out):
            run.main()
        return out.getvalue()

    def test_once_prints_tick_summary(self) -> None:
        store = _Store()

        with patch("goalwatch.resolution.run.build_fixture_client", return_value=_Gateway()), patch(
            "goalwatch.resolution.run.PredictionStore", return_value=store
        ):
            output = self._main("--once")

        summary = json.loads(output)
        self.assertEqual(1, summary["checked"])
        self.assertEqual(1, summary["transitioned_count"])
        self.assertEqual([], summary["failures"])
        self.assertEqual({7: ("won", 2, 1)}, store.completed)

    def test_once_without_api_key_exits(self) -> None:
        with patch("goalwatch.resolution.run.build_fixture_client", return_value=None):
            with self.assertRaises(SystemExit) as ctx:
                self._main("--once")

        self.assertIn("No fixtures API key", str(ctx.exception.code))

    def test_purge_uses_configured_retention(self) -> None:
        with patch("goalwatch.resolution.run.PredictionStore") as store_cls, patch(
            "goalwatch.resolution.run.purge_expired_predictions", return_value=4
        ) as purge:
            self._main("--purge")

        purge.assert_called_once_with(store_cls.return_value, 2)

    def test_loop_runs_resolver(self) -> None:
        with patch("goalwatch.resolution.run.run_resolver_with_shutdown", new_callable=AsyncMock) as loop:
            self._main("--loop")

        loop.assert_awaited_once()

    def test_a_mode_is_required(self) -> None:
        with patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                self._main()


if __name__ == "__main__":
    unittest.main()
