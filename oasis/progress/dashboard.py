from typing import List, Optional

from oasis.progress.models import Progress, ProgressStatus
from oasis.progress.tracker import round_half_up
from oasis.users.models import StreakData


def course_average_score(progress: Progress) -> float:
    """Mean of the quiz best scores of one course, 0 without quiz results"""
    best_scores = [result.best_score or 0 for result in progress.quiz_results]
    if not best_scores:
        return 0
    return sum(best_scores) / len(best_scores)


def average_score(progress_list: List[Progress]) -> int:
    """
    Two-level average: mean over courses of each course's own mean.
    Courses without quiz results count as 0 in the outer mean.
    """
    if not progress_list:
        return 0
    total = sum(course_average_score(p) for p in progress_list)
    return round_half_up(total / len(progress_list))


def dashboard_stats(progress_list: List[Progress], streak: Optional[StreakData] = None) -> dict:
    streak = streak or StreakData()
    return {
        "total_courses": len(progress_list),
        "completed_courses": sum(1 for p in progress_list if p.status == ProgressStatus.COMPLETED),
        "in_progress_courses": sum(1 for p in progress_list if p.status == ProgressStatus.IN_PROGRESS),
        "total_time_spent": sum(p.total_time_spent for p in progress_list),
        "average_score": average_score(progress_list),
        "certificates": sum(1 for p in progress_list if p.certificate.issued),
        "current_streak": streak.current_streak,
        "longest_streak": streak.longest_streak,
    }
