from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from marketplace.courses.models import Course, CourseEnrollment
from marketplace.payments.models import EnrollmentRun, Transaction
from marketplace.progress.models import UserCourseProgress


class ReconcileEnrollmentsCommandTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.course = Course.objects.create(
            teacher_id="t1",
            teacher_name="Ada",
            sections=[{"sectionId": "S1", "chapters": [{"chapterId": "C1"}]}],
        )

    def setUp(self):
        self.an_hour_ago = timezone.now() - timedelta(hours=1)

    def make_orphan_transaction(self, transaction_id="pi_orphan", user_id="u1"):
        return Transaction.objects.create(
            transaction_id=transaction_id,
            date_time=self.an_hour_ago,
            user_id=user_id,
            course_id=self.course.course_id,
            amount=4900,
            payment_provider="stripe",
        )

    def make_stale_run(self, transaction_id, user_id, state, course_id=None):
        run = EnrollmentRun.objects.create(
            transaction_id=transaction_id,
            user_id=user_id,
            course_id=course_id or self.course.course_id,
            amount=4900,
            payment_provider="stripe",
            state=state,
        )
        # update() bypasses auto_now
        EnrollmentRun.objects.filter(pk=run.pk).update(updated_at=self.an_hour_ago)
        return run

    def run_command(self, *args):
        out, err = StringIO(), StringIO()
        call_command("reconcile_enrollments", *args, stdout=out, stderr=err)
        return out.getvalue(), err.getvalue()

    def test_orphan_transaction_is_enrolled(self):
        self.make_orphan_transaction()

        out, _ = self.run_command()

        self.assertIn("Completed 1 run(s), 0 failed", out)
        self.assertTrue(CourseEnrollment.objects.filter(user_id="u1").exists())
        self.assertTrue(UserCourseProgress.objects.filter(user_id="u1").exists())
        self.assertEqual(EnrollmentRun.objects.get(pk="pi_orphan").state, EnrollmentRun.State.ENROLLED)

    def test_stale_run_is_resumed(self):
        Transaction.objects.create(
            transaction_id="pi_stale",
            user_id="u2",
            course_id=self.course.course_id,
            amount=4900,
            payment_provider="stripe",
        )
        self.make_stale_run("pi_stale", "u2", EnrollmentRun.State.PROGRESS_SEEDED)

        self.run_command()

        self.assertTrue(CourseEnrollment.objects.filter(user_id="u2").exists())
        self.assertEqual(EnrollmentRun.objects.get(pk="pi_stale").state, EnrollmentRun.State.ENROLLED)

    def test_recent_runs_are_left_alone(self):
        EnrollmentRun.objects.create(
            transaction_id="pi_fresh",
            user_id="u3",
            course_id=self.course.course_id,
            amount=4900,
            payment_provider="stripe",
            state=EnrollmentRun.State.TRANSACTION_RECORDED,
        )

        out, _ = self.run_command()

        self.assertIn("Found 0 unfinished run(s)", out)
        self.assertFalse(CourseEnrollment.objects.filter(user_id="u3").exists())

    def test_dry_run_changes_nothing(self):
        self.make_orphan_transaction()

        out, _ = self.run_command("--dry-run")

        self.assertIn("transaction pi_orphan", out)
        self.assertFalse(EnrollmentRun.objects.exists())
        self.assertFalse(CourseEnrollment.objects.exists())

    def test_failures_are_reported_and_do_not_stop_the_batch(self):
        self.make_stale_run("pi_gone", "u4", EnrollmentRun.State.TRANSACTION_RECORDED, course_id="deleted")
        self.make_orphan_transaction()

        out, err = self.run_command()

        self.assertIn("pi_gone: NotFound", err)
        self.assertIn("Completed 1 run(s), 1 failed", out)
        self.assertTrue(CourseEnrollment.objects.filter(user_id="u1").exists())
