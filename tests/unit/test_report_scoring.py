"""
Unit tests for weekly report scoring

Tests completion score rounding, suggested-point bands per role and points
per DONE answer.
"""
import pytest

from mentorboard.services.weekly_reports import completion_score, report_points, suggested_points


class TestCompletionScore:
    def test_nothing_answered_scores_zero(self):
        assert completion_score(0, 0) == 0

    def test_all_done_scores_hundred(self):
        assert completion_score(4, 4) == 100

    def test_rounds_half_up(self):
        # 1/8 = 12.5%
        assert completion_score(1, 8) == 13
        # 2/3 = 66.67%
        assert completion_score(2, 3) == 67


class TestSuggestedPoints:
    @pytest.mark.parametrize("score,expected", [
        (100, 15), (90, 15), (89, 12), (80, 12), (70, 9), (60, 6), (50, 3), (49, 0), (0, 0),
    ])
    def test_tutor_bands(self, score, expected):
        assert suggested_points(score, "TUTOR") == expected

    @pytest.mark.parametrize("score,expected", [
        (95, 10), (80, 8), (70, 6), (60, 4), (50, 2), (10, 0),
    ])
    def test_assistant_bands(self, score, expected):
        assert suggested_points(score, "ASSISTANT") == expected


class TestReportPoints:
    def test_ten_points_per_done_answer(self):
        assert report_points(["DONE", "NOT_DONE", "DONE"]) == 20

    def test_no_answers_no_points(self):
        assert report_points([]) == 0
