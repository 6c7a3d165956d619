"""
Progress tracking, assessment and certificate endpoint tests.
"""

import asyncio

import pytest

from tests.conftest import auth


@pytest.fixture
def enrolled(client, register, create_course):
    """Enrolled learner: (user_id, token, course)"""
    course = create_course()
    user_id, token = register()
    response = client.post(f"/api/courses/{course['course_id']}/enroll", headers=auth(token))
    assert response.status_code == 200
    return user_id, token, course


def lesson_ids(course):
    return [l["lesson_id"] for l in course["lessons"]]


class TestLessonProgress:

    def test_not_enrolled(self, client, register, create_course):
        course = create_course()
        _, token = register()
        response = client.get(f"/api/progress/course/{course['course_id']}", headers=auth(token))
        assert response.status_code == 404

    def test_lesson_update_moves_status(self, client, enrolled):
        _, token, course = enrolled
        first, _ = lesson_ids(course)
        response = client.put(
            f"/api/progress/course/{course['course_id']}/lessons/{first}",
            json={"status": "completed", "time_spent": 12},
            headers=auth(token),
        )
        assert response.status_code == 200
        progress = response.json()["progress"]
        assert progress["status"] == "in-progress"
        assert progress["overall_progress"] == 50
        assert progress["total_time_spent"] == 12
        assert progress["started_at"] is not None

    def test_batch_update_completes_course(self, client, db, enrolled):
        _, token, course = enrolled
        response = client.put(
            f"/api/progress/course/{course['course_id']}",
            json={"lessons": [{"lesson_id": i, "status": "completed"} for i in lesson_ids(course)]},
            headers=auth(token),
        )
        progress = response.json()["progress"]
        assert progress["status"] == "completed"
        assert progress["overall_progress"] == 100
        assert progress["completed_at"] is not None

        # Completing again does not count twice
        client.put(
            f"/api/progress/course/{course['course_id']}",
            json={"lessons": [{"lesson_id": lesson_ids(course)[0], "time_spent": 3}]},
            headers=auth(token),
        )
        stored = asyncio.run(db.courses.find_one({"course_id": course["course_id"]}))
        assert stored["stats"]["completions"] == 1

    def test_unknown_lesson(self, client, enrolled):
        _, token, course = enrolled
        response = client.put(
            f"/api/progress/course/{course['course_id']}/lessons/LSN_NOPE",
            json={"status": "completed"},
            headers=auth(token),
        )
        assert response.status_code == 404


class TestQuizzes:

    def test_graded_attempts_keep_best(self, client, enrolled):
        _, token, course = enrolled
        _, quiz_lesson = lesson_ids(course)
        url = f"/api/progress/course/{course['course_id']}/lessons/{quiz_lesson}/quiz"

        # Q1 wrong, Q2 right: 2 of 3 points
        first = client.post(url, json={"answers": {"Q1": 0, "Q2": 0}}, headers=auth(token)).json()
        assert first["attempt"]["score"] == 67
        assert first["attempt"]["passed"] is False

        second = client.post(url, json={"answers": {"Q1": 1, "Q2": 0}}, headers=auth(token)).json()
        assert second["attempt"]["passed"] is True

        third = client.post(url, json={"answers": {}}, headers=auth(token)).json()
        result = third["progress"]["quiz_results"][0]
        assert result["best_score"] == 100
        assert result["total_attempts"] == 3
        lesson = next(l for l in third["progress"]["lessons_progress"] if l["lesson_id"] == quiz_lesson)
        assert lesson["status"] == "completed"

    def test_lesson_without_quiz(self, client, enrolled):
        _, token, course = enrolled
        plain, _ = lesson_ids(course)
        response = client.post(
            f"/api/progress/course/{course['course_id']}/lessons/{plain}/quiz",
            json={"answers": {}},
            headers=auth(token),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "This lesson has no quiz"

    def test_final_assessment(self, client, enrolled):
        _, token, course = enrolled
        url = f"/api/progress/course/{course['course_id']}/final-assessment"
        client.post(url, json={"score": 90}, headers=auth(token))
        body = client.post(url, json={"score": 40}, headers=auth(token)).json()
        assert body["progress"]["final_assessment"]["passed"] is True
        assert body["progress"]["final_assessment"]["best_score"] == 90

        assert client.post(url, json={"score": 140}, headers=auth(token)).status_code == 400


class TestCertificates:

    def complete_course(self, client, token, course):
        client.put(
            f"/api/progress/course/{course['course_id']}",
            json={"lessons": [{"lesson_id": i, "status": "completed"} for i in lesson_ids(course)]},
            headers=auth(token),
        )

    def test_requires_completion(self, client, enrolled):
        _, token, course = enrolled
        response = client.post(f"/api/progress/course/{course['course_id']}/certificate", headers=auth(token))
        assert response.status_code == 400

    def test_issue_once_and_verify(self, client, enrolled):
        user_id, token, course = enrolled
        self.complete_course(client, token, course)
        url = f"/api/progress/course/{course['course_id']}/certificate"

        first = client.post(url, headers=auth(token)).json()
        second = client.post(url, headers=auth(token)).json()
        certificate_id = first["certificate"]["certificate_id"]
        assert second["certificate"]["certificate_id"] == certificate_id
        assert second["message"] == "Certificate already issued"

        public = client.get(f"/api/progress/certificates/{certificate_id}").json()["certificate"]
        assert public["user_id"] == user_id
        assert public["course_title"] == course["title"]
        assert public["is_valid"] is True
        assert public["is_owner"] is False

        owned = client.get(f"/api/progress/certificates/{certificate_id}", headers=auth(token)).json()
        assert owned["certificate"]["is_owner"] is True

    def test_unknown_certificate(self, client):
        assert client.get("/api/progress/certificates/CERT_NOPE").status_code == 404


class TestNotesBookmarksRating:

    def test_notes(self, client, enrolled):
        _, token, course = enrolled
        base = f"/api/progress/course/{course['course_id']}"
        lesson = lesson_ids(course)[0]

        created = client.post(f"{base}/notes", json={"lesson_id": lesson, "content": "key idea"}, headers=auth(token))
        assert created.status_code == 201
        note_id = created.json()["note"]["note_id"]

        assert client.delete(f"{base}/notes/{note_id}", headers=auth(token)).status_code == 200
        assert client.delete(f"{base}/notes/{note_id}", headers=auth(token)).status_code == 404

    def test_bookmarks(self, client, enrolled):
        _, token, course = enrolled
        base = f"/api/progress/course/{course['course_id']}"
        created = client.post(
            f"{base}/bookmarks",
            json={"lesson_id": lesson_ids(course)[0], "timestamp": 95, "title": "Demo"},
            headers=auth(token),
        )
        assert created.status_code == 201
        bookmark_id = created.json()["bookmark"]["bookmark_id"]

        progress = client.get(base, headers=auth(token)).json()["progress"]
        assert [b["bookmark_id"] for b in progress["bookmarks"]] == [bookmark_id]

    def test_rating_average(self, client, register, enrolled):
        _, token, course = enrolled
        _, other = register()
        client.post(f"/api/courses/{course['course_id']}/enroll", headers=auth(other))

        url = f"/api/progress/course/{course['course_id']}/rating"
        client.put(url, json={"stars": 4}, headers=auth(token))
        body = client.put(url, json={"stars": 5, "review": "Useful"}, headers=auth(other)).json()
        assert body["course_stats"] == {"average_rating": 4.5, "total_ratings": 2}

        # Re-rating replaces the earlier rating
        body = client.put(url, json={"stars": 2}, headers=auth(token)).json()
        assert body["course_stats"] == {"average_rating": 3.5, "total_ratings": 2}

    def test_rating_bounds(self, client, enrolled):
        _, token, course = enrolled
        response = client.put(
            f"/api/progress/course/{course['course_id']}/rating", json={"stars": 6}, headers=auth(token)
        )
        assert response.status_code == 400


class TestOverview:

    def test_list_and_dashboard(self, client, enrolled, admin):
        user_id, token, course = enrolled
        client.post(
            f"/api/progress/course/{course['course_id']}/lessons/{lesson_ids(course)[1]}/quiz",
            json={"answers": {"Q1": 1, "Q2": 0}, "time_spent": 40},
            headers=auth(token),
        )

        listed = client.get(f"/api/progress?user_id={user_id}", headers=auth(token)).json()["progress"]
        assert len(listed) == 1
        assert listed[0]["course"]["title"] == course["title"]

        stats = client.get("/api/users/dashboard/stats", headers=auth(token)).json()["stats"]
        assert stats["total_courses"] == 1
        assert stats["in_progress_courses"] == 1
        assert stats["average_score"] == 100

        detail = client.get(f"/api/users/{user_id}", headers=auth(admin[1])).json()
        assert len(detail["progress"]) == 1
