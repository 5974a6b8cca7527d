from django.contrib.auth.models import User
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from marketplace.progress.models import UserCourseProgress


class UserCourseProgressViewTests(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.student = User.objects.create_user(username="linus", password="pw")
        cls.other = User.objects.create_user(username="ken", password="pw")
        now = timezone.now()
        UserCourseProgress.objects.create(
            user_id=str(cls.student.pk),
            course_id="course-1",
            enrollment_date=now,
            overall_progress=0,
            sections=[{"sectionId": "S1", "chapters": [{"chapterId": "C1", "completed": False}]}],
            last_accessed_timestamp=now,
        )

    def url(self, user_id, course_id="course-1"):
        return f"/api/progress/{user_id}/{course_id}/"

    def test_caller_reads_own_progress(self):
        self.client.force_authenticate(user=self.student)

        response = self.client.get(self.url(self.student.pk))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()["data"]
        self.assertEqual(data["courseId"], "course-1")
        self.assertEqual(data["overallProgress"], 0)
        self.assertEqual(data["sections"][0]["chapters"][0], {"chapterId": "C1", "completed": False})

    def test_progress_of_other_users_is_forbidden(self):
        self.client.force_authenticate(user=self.other)

        response = self.client.get(self.url(self.student.pk))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_progress_returns_404(self):
        self.client.force_authenticate(user=self.student)

        response = self.client.get(self.url(self.student.pk, "course-2"))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
