"""
Unit tests for balance arithmetic, leaderboard ranking and syllabus progress
"""
from mentorboard.services.ledger import net_points
from mentorboard.services.leaderboard import rank_entries
from mentorboard.services.syllabus import progress_percentage


class TestNetPoints:
    def test_awards_minus_redemptions(self):
        assert net_points(100, 30) == 70

    def test_never_negative(self):
        assert net_points(10, 40) == 0

    def test_missing_sums_count_as_zero(self):
        assert net_points(None, None) == 0


class TestRankEntries:
    def _entry(self, username, experience):
        return {"username": username, "experience": experience}

    def test_sorted_by_experience_then_username(self):
        ranked = rank_entries([
            self._entry("carol", 10),
            self._entry("bob", 50),
            self._entry("alice", 10),
        ])
        assert [e["username"] for e in ranked] == ["bob", "alice", "carol"]

    def test_ties_share_rank(self):
        ranked = rank_entries([
            self._entry("a", 30),
            self._entry("b", 30),
            self._entry("c", 20),
        ])
        assert [e["rank"] for e in ranked] == [1, 1, 3]

    def test_empty(self):
        assert rank_entries([]) == []


class TestProgressPercentage:
    def test_no_lessons(self):
        assert progress_percentage(0, 0) == 0

    def test_partial(self):
        assert progress_percentage(1, 3) == 33
        assert progress_percentage(2, 3) == 67

    def test_capped_at_hundred(self):
        assert progress_percentage(5, 4) == 100
