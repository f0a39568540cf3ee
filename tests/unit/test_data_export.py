"""
Unit tests for the CSV export balance summary
"""
import pandas as pd

from mentorboard.scripts.data_export import EXPERIENCE_COLUMNS, POINTS_COLUMNS, summarize_balances


def _points(rows):
    return pd.DataFrame(
        [(i, sid, name, kind, pts, None, rolled, None) for i, (sid, name, kind, pts, rolled) in enumerate(rows)],
        columns=POINTS_COLUMNS,
    )


def _experience(rows):
    return pd.DataFrame(
        [(i, sid, name, amount, rolled, None) for i, (sid, name, amount, rolled) in enumerate(rows)],
        columns=EXPERIENCE_COLUMNS,
    )


class TestSummarizeBalances:
    def test_empty_ledgers(self):
        summary = summarize_balances(_points([]), _experience([]))
        assert summary.empty
        assert "points" in summary.columns

    def test_points_and_experience(self):
        points = _points([
            ("s1", "ana", "AWARD", 30, False),
            ("s1", "ana", "REDEEM", 10, False),
            ("s2", "ben", "AWARD", 50, False),
        ])
        experience = _experience([("s1", "ana", 25, False)])

        summary = summarize_balances(points, experience).set_index("username")

        assert summary.loc["ana", "points"] == 20
        assert summary.loc["ana", "experience"] == 55
        assert summary.loc["ben", "points"] == 50
        assert summary.loc["ben", "experience"] == 50
        # Highest experience first
        assert list(summary.index) == ["ana", "ben"]

    def test_rolled_back_rows_ignored(self):
        points = _points([
            ("s1", "ana", "AWARD", 30, False),
            ("s1", "ana", "AWARD", 100, True),
        ])
        summary = summarize_balances(points, _experience([]))
        assert summary.iloc[0]["points"] == 30

    def test_points_floor_at_zero(self):
        points = _points([
            ("s1", "ana", "AWARD", 10, False),
            ("s1", "ana", "REDEEM", 40, False),
        ])
        summary = summarize_balances(points, _experience([]))
        assert summary.iloc[0]["points"] == 0
