"""
Enrollment Pipeline Tests

Payment verification is stubbed through a mocked PaymentIntentService;
everything else runs against the test database.
"""

from types import SimpleNamespace
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from marketplace.courses.models import Course, CourseEnrollment
from marketplace.exceptions import (
    Conflict,
    NotFound,
    PaymentNotVerified,
    StorageUnavailable,
    ValidationError,
)
from marketplace.payments.models import EnrollmentRun, Transaction
from marketplace.payments.services.enrollment_pipeline import EnrollmentPipeline
from marketplace.progress.models import UserCourseProgress


def stripe_intent(course_id, user_id="u1", amount=4900, status="succeeded"):
    return SimpleNamespace(
        status=status,
        amount_received=amount,
        metadata={"user_id": user_id, "course_id": course_id},
    )


class EnrollmentPipelineTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.course = Course.objects.create(
            teacher_id="t1",
            teacher_name="Ada",
            price=4900,
            sections=[
                {"sectionId": "S1", "chapters": [{"chapterId": "C1"}, {"chapterId": "C2"}]},
                {"sectionId": "S2", "chapters": []},
            ],
        )
        cls.other_course = Course.objects.create(teacher_id="t1", teacher_name="Ada", price=4900)

    def setUp(self):
        self.payments = mock.Mock()
        self.payments.retrieve_intent.return_value = stripe_intent(self.course.course_id)
        self.pipeline = EnrollmentPipeline(payment_service=self.payments, verify_payments=True)

    def enroll(self, **overrides):
        kwargs = {
            "user_id": "u1",
            "course_id": self.course.course_id,
            "transaction_id": "pi_1",
            "amount": 4900,
            "payment_provider": "stripe",
        }
        kwargs.update(overrides)
        return self.pipeline.enroll(**kwargs)

    def assertNothingWritten(self):
        self.assertFalse(EnrollmentRun.objects.exists())
        self.assertFalse(Transaction.objects.exists())
        self.assertFalse(UserCourseProgress.objects.exists())
        self.assertFalse(CourseEnrollment.objects.exists())

    def test_purchase_records_transaction_seeds_progress_and_enrolls(self):
        result = self.enroll()

        self.assertTrue(result.created)
        self.assertEqual(result.transaction.transaction_id, "pi_1")
        self.assertEqual(result.transaction.amount, 4900)
        self.assertEqual(result.transaction.payment_provider, "stripe")
        self.assertEqual(result.progress.overall_progress, 0)
        self.assertEqual(
            result.progress.sections,
            [
                {
                    "sectionId": "S1",
                    "chapters": [
                        {"chapterId": "C1", "completed": False},
                        {"chapterId": "C2", "completed": False},
                    ],
                },
                {"sectionId": "S2", "chapters": []},
            ],
        )
        self.assertTrue(
            CourseEnrollment.objects.filter(course=self.course, user_id="u1").exists()
        )
        self.assertEqual(EnrollmentRun.objects.get(pk="pi_1").state, EnrollmentRun.State.ENROLLED)
        self.payments.retrieve_intent.assert_called_once_with("pi_1")

    def test_retry_with_same_transaction_returns_prior_result(self):
        first = self.enroll()
        second = self.enroll()

        self.assertFalse(second.created)
        self.assertEqual(second.transaction.pk, first.transaction.pk)
        self.assertEqual(second.progress.pk, first.progress.pk)
        self.assertEqual(Transaction.objects.count(), 1)
        self.assertEqual(UserCourseProgress.objects.count(), 1)
        self.assertEqual(CourseEnrollment.objects.filter(user_id="u1").count(), 1)
        self.payments.retrieve_intent.assert_called_once()

    def test_second_purchase_keeps_existing_progress(self):
        self.enroll()
        UserCourseProgress.objects.filter(user_id="u1").update(overall_progress=40)

        result = self.enroll(transaction_id="pi_2")

        self.assertTrue(result.created)
        self.assertEqual(result.progress.overall_progress, 40)
        self.assertEqual(Transaction.objects.count(), 2)
        self.assertEqual(CourseEnrollment.objects.filter(user_id="u1").count(), 1)

    def test_concurrent_buyers_both_end_up_enrolled(self):
        self.payments.retrieve_intent.side_effect = [
            stripe_intent(self.course.course_id, user_id="u1"),
            stripe_intent(self.course.course_id, user_id="u2"),
        ]

        self.enroll(user_id="u1", transaction_id="pi_a")
        self.enroll(user_id="u2", transaction_id="pi_b")

        enrolled = set(self.course.enrollments.values_list("user_id", flat=True))
        self.assertEqual(enrolled, {"u1", "u2"})

    def test_reused_transaction_id_for_other_user_is_a_conflict(self):
        self.enroll()

        with self.assertRaises(Conflict):
            self.enroll(user_id="u2")

        self.assertFalse(CourseEnrollment.objects.filter(user_id="u2").exists())

    def test_missing_course_writes_nothing(self):
        with self.assertRaises(NotFound):
            self.enroll(course_id="gone")

        self.assertNothingWritten()
        self.payments.retrieve_intent.assert_not_called()

    def test_unconfirmed_payment_is_rejected_without_leaving_a_run(self):
        self.payments.retrieve_intent.return_value = stripe_intent(
            self.course.course_id, amount=0, status="requires_payment_method"
        )

        with self.assertRaises(PaymentNotVerified):
            self.enroll()

        self.assertNothingWritten()

    def test_amount_mismatch_is_rejected(self):
        self.payments.retrieve_intent.return_value = stripe_intent(
            self.course.course_id, amount=5000
        )

        with self.assertRaises(PaymentNotVerified):
            self.enroll()

        self.assertNothingWritten()

    def test_payment_below_course_price_is_rejected(self):
        self.payments.retrieve_intent.return_value = stripe_intent(
            self.course.course_id, amount=50
        )

        with self.assertRaises(PaymentNotVerified):
            self.enroll(amount=50)

        self.assertNothingWritten()

    def test_payment_below_course_price_is_rejected_for_signed_events_too(self):
        with self.assertRaises(PaymentNotVerified):
            self.enroll(amount=50, verify_payment=False)

        self.assertNothingWritten()

    def test_payment_made_for_another_course_is_rejected(self):
        self.payments.retrieve_intent.return_value = stripe_intent(
            self.other_course.course_id
        )

        with self.assertRaises(PaymentNotVerified):
            self.enroll()

        self.assertNothingWritten()

    def test_payment_made_by_another_user_is_rejected(self):
        self.payments.retrieve_intent.return_value = stripe_intent(
            self.course.course_id, user_id="u2"
        )

        with self.assertRaises(PaymentNotVerified):
            self.enroll()

        self.assertNothingWritten()

    def test_intent_without_metadata_is_rejected(self):
        self.payments.retrieve_intent.return_value = SimpleNamespace(
            status="succeeded", amount_received=4900, metadata={}
        )

        with self.assertRaises(PaymentNotVerified):
            self.enroll()

    def test_unverifiable_provider_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.enroll(transaction_id="anything", amount=0, payment_provider="manual")

        self.assertNothingWritten()
        self.payments.retrieve_intent.assert_not_called()

    def test_provider_tag_is_case_insensitive(self):
        result = self.enroll(payment_provider="Stripe")

        self.assertEqual(result.transaction.payment_provider, "stripe")

    def test_verification_can_be_skipped_for_signed_events(self):
        self.enroll(verify_payment=False)

        self.payments.retrieve_intent.assert_not_called()

    def test_missing_transaction_id_is_required_when_verifying(self):
        with self.assertRaises(ValidationError):
            self.enroll(transaction_id=None)

        self.assertNothingWritten()
        self.payments.retrieve_intent.assert_not_called()

    def test_missing_transaction_id_is_generated_for_trusted_callers(self):
        result = self.enroll(transaction_id=None, verify_payment=False)

        self.assertTrue(result.transaction.transaction_id.startswith("txn_"))

    def test_invalid_input_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.enroll(user_id="")
        with self.assertRaises(ValidationError):
            self.enroll(amount="49.99")
        with self.assertRaises(ValidationError):
            self.enroll(amount=None)

    def test_failed_step_is_resumed_on_retry(self):
        with mock.patch.object(
            EnrollmentPipeline, "_grant_enrollment", side_effect=DatabaseError("connection lost")
        ):
            with self.assertRaises(StorageUnavailable):
                self.enroll()

        run = EnrollmentRun.objects.get(pk="pi_1")
        self.assertEqual(run.state, EnrollmentRun.State.PROGRESS_SEEDED)
        self.assertIn("connection lost", run.last_error)
        self.assertEqual(Transaction.objects.count(), 1)
        self.assertFalse(CourseEnrollment.objects.exists())

        result = self.enroll()

        self.assertTrue(result.created)
        run.refresh_from_db()
        self.assertEqual(run.state, EnrollmentRun.State.ENROLLED)
        self.assertEqual(run.attempts, 2)
        self.assertEqual(run.last_error, "")
        self.assertEqual(Transaction.objects.count(), 1)
        self.assertTrue(CourseEnrollment.objects.filter(user_id="u1").exists())
        # payment was verified by the first attempt only
        self.payments.retrieve_intent.assert_called_once()

    def test_resume_completes_a_stored_run(self):
        run = EnrollmentRun.objects.create(
            transaction_id="pi_9",
            user_id="u9",
            course_id=self.course.course_id,
            amount=4900,
            payment_provider="stripe",
            state=EnrollmentRun.State.TRANSACTION_RECORDED,
        )

        result = self.pipeline.resume(run)

        self.assertTrue(result.created)
        self.assertTrue(CourseEnrollment.objects.filter(user_id="u9").exists())
        self.payments.retrieve_intent.assert_not_called()

    def test_resuming_a_pending_run_does_not_call_stripe_again(self):
        run = EnrollmentRun.objects.create(
            transaction_id="pi_10",
            user_id="u10",
            course_id=self.course.course_id,
            amount=4900,
            payment_provider="stripe",
        )

        self.pipeline.resume(run)

        run.refresh_from_db()
        self.assertEqual(run.state, EnrollmentRun.State.ENROLLED)
        self.payments.retrieve_intent.assert_not_called()

    def test_transactions_are_immutable(self):
        transaction = self.enroll().transaction
        transaction.amount = 1

        with self.assertRaises(ValueError):
            transaction.save()
