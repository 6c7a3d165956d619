from oasis.progress.dashboard import average_score, dashboard_stats
from oasis.progress.models import Certificate, Progress, QuizResult
from oasis.users.models import StreakData


def record(status="in-progress", best_scores=(), time_spent=0, certified=False):
    return Progress(
        progress_id="PRG_X",
        user_id="USR_1",
        course_id="COURSE_X",
        status=status,
        total_time_spent=time_spent,
        quiz_results=[QuizResult(lesson_id=f"L{i}", best_score=s) for i, s in enumerate(best_scores)],
        certificate=Certificate(issued=certified),
    )


class TestAverageScore:
    """Mean of per-course means."""

    def test_course_without_quizzes_counts_as_zero(self):
        assert average_score([record(best_scores=[70]), record()]) == 35

    def test_two_levels(self):
        # course means 85 and 70
        assert average_score([record(best_scores=[80, 90]), record(best_scores=[70])]) == 78

    def test_empty(self):
        assert average_score([]) == 0


class TestDashboardStats:

    def test_counts(self):
        stats = dashboard_stats(
            [
                record("completed", [90], 30, certified=True),
                record("in-progress", [], 15),
                record("not-started"),
            ],
            StreakData(current_streak=2, longest_streak=5),
        )
        assert stats["total_courses"] == 3
        assert stats["completed_courses"] == 1
        assert stats["in_progress_courses"] == 1
        assert stats["total_time_spent"] == 45
        assert stats["average_score"] == 30
        assert stats["certificates"] == 1
        assert stats["current_streak"] == 2
        assert stats["longest_streak"] == 5

    def test_without_streak(self):
        stats = dashboard_stats([])
        assert stats["current_streak"] == 0
        assert stats["average_score"] == 0
