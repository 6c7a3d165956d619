"""
Stored document shape tests.
"""

from oasis.progress.models import LessonProgress, Progress
from oasis.users.models import User


class TestEnumStorage:
    """Enum fields reach MongoDB as plain strings, defaults included."""

    def test_default_role(self):
        user = User(
            user_id="USR_1",
            first_name="Ann",
            last_name="Lee",
            email="ann@oasis.test",
            password_hash="x",
            department="Legal",
        )
        role = user.to_document()["role"]
        assert type(role) is str
        assert f"{role}" == "employee"

    def test_default_statuses(self):
        lesson = LessonProgress(lesson_id="LSN_1").to_document()
        assert type(lesson["status"]) is str
        assert lesson["status"] == "not-started"

        progress = Progress(progress_id="PRG_1", user_id="USR_1", course_id="COURSE_1").to_document()
        assert type(progress["status"]) is str
        assert progress["status"] == "not-started"
