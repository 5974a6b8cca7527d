"""
Enrollment Pipeline
===================

Turns a confirmed payment into a durable enrollment.

Checks (nothing is written until all of them pass):
  - The provider is one the server can verify (Stripe)
  - The course exists and the paid amount covers its price
  - The payment intent succeeded, received the reported amount and was
    created for this user and course (skipped for signed webhook events,
    which are proof of payment themselves)

Steps (each one is a precondition for the next):
  1. Record the Transaction (idempotent on the transaction id)
  2. Seed UserCourseProgress from the course's current sections
  3. Add the user to the course's enrollment set (atomic set-add)

State machine
-------------
Progress is persisted per transaction id in EnrollmentRun:

    pending -> transaction_recorded -> progress_seeded -> enrolled

A run is only created once the payment is accepted, so rejected requests
leave no rows behind. Completed steps are never rolled back. A failed run
keeps its state and the error; calling `enroll` again with the same
transaction id, or running the `reconcile_enrollments` management command,
resumes it. Every step uses `get_or_create`, so repeating a step is a no-op.

Idempotency
-----------
A retry for an already enrolled transaction id returns the prior transaction
and progress. A transaction id reused for another user, course or amount is
rejected with Conflict.

Author: Marketplace Development Team
Version: 1.0.0
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from ...courses.models import Course, CourseEnrollment
from ...exceptions import (
    Conflict,
    MarketplaceException,
    NotFound,
    PaymentNotVerified,
    StorageUnavailable,
    ValidationError,
)
from ...progress.models import UserCourseProgress
from ..models import EnrollmentRun, Transaction
from .payment_intent_service import PaymentIntentService

logger = logging.getLogger(__name__)

STRIPE_PROVIDER = "stripe"
PAYMENT_SUCCEEDED = "succeeded"

# Providers whose payments can be verified server side
PAYMENT_PROVIDERS = (STRIPE_PROVIDER,)

# Run states in pipeline order
_STATE_ORDER = list(EnrollmentRun.State.values)


@dataclass
class EnrollmentResult:
    transaction: Transaction
    progress: UserCourseProgress
    created: bool


def _parse_amount(amount: Any) -> int:
    if amount is None or isinstance(amount, bool):
        raise ValidationError("amount is required")
    try:
        value = int(str(amount).strip(), 10)
    except ValueError:
        raise ValidationError(
            "amount must be an integer number of minor units",
            details={"amount": amount},
        ) from None
    if value < 0:
        raise ValidationError("amount cannot be negative", details={"amount": amount})
    return value


class EnrollmentPipeline:
    """
    Orchestrates transaction, progress seeding and enrollment for one payment.

    Args:
        payment_service: Used to verify Stripe payment intents
        verify_payments: Override for settings.STRIPE_VERIFY_PAYMENTS
    """

    def __init__(
        self,
        payment_service: Optional[PaymentIntentService] = None,
        verify_payments: Optional[bool] = None,
    ):
        self.payment_service = payment_service or PaymentIntentService()
        self.verify_payments = (
            settings.STRIPE_VERIFY_PAYMENTS if verify_payments is None else verify_payments
        )

    def enroll(
        self,
        user_id: Optional[str],
        course_id: Optional[str],
        transaction_id: Optional[str] = None,
        amount: Any = None,
        payment_provider: Optional[str] = None,
        *,
        verify_payment: bool = True,
    ) -> EnrollmentResult:
        """
        Run (or resume) the pipeline for one payment.

        Args:
            user_id: Paying user
            course_id: Purchased course
            transaction_id: Processor reference (payment intent id for Stripe);
                required unless verification is off
            amount: Paid amount in minor units
            payment_provider: Provider tag, defaults to "stripe"
            verify_payment: False only for trusted server paths that already
                hold proof of payment (a signature-verified webhook event)

        Raises:
            ValidationError, Conflict, PaymentNotVerified, PaymentProviderError,
            NotFound, StorageUnavailable
        """
        if not user_id or not course_id:
            raise ValidationError("userId and courseId are required")
        user_id, course_id = str(user_id), str(course_id)
        value = _parse_amount(amount)

        provider = (payment_provider or STRIPE_PROVIDER).strip().lower()
        if provider not in PAYMENT_PROVIDERS:
            raise ValidationError(
                "Unsupported payment provider",
                details={"payment_provider": payment_provider, "allowed": list(PAYMENT_PROVIDERS)},
            )

        verify = verify_payment and self.verify_payments
        transaction_id = str(transaction_id).strip() if transaction_id else ""
        if not transaction_id:
            if verify:
                raise ValidationError("transactionId is required")
            transaction_id = f"txn_{uuid.uuid4().hex}"

        run = self._find_run(user_id, course_id, transaction_id, value)
        if run is None:
            course = self._fetch_course(course_id)
            self._check_price(transaction_id, value, course)
            if verify:
                self._verify_payment(transaction_id, user_id, course_id, value)
            run = self._create_run(user_id, course_id, transaction_id, value, provider)

        if run.is_complete:
            logger.info(
                "Transaction %s already enrolled; returning prior result", transaction_id
            )
            return self._prior_result(run)

        return self._execute(run)

    def resume(self, run: EnrollmentRun) -> EnrollmentResult:
        """Continue an unfinished run from its last completed state."""
        if run.is_complete:
            return self._prior_result(run)
        return self._execute(run)

    # --- state handling ---

    def _check_run(
        self, run: EnrollmentRun, user_id: str, course_id: str, amount: int
    ) -> EnrollmentRun:
        if run.user_id != user_id or run.course_id != course_id or run.amount != amount:
            logger.warning(
                "Transaction %s reused for user=%s course=%s amount=%s",
                run.transaction_id,
                user_id,
                course_id,
                amount,
            )
            raise Conflict(
                "Transaction ID already used for a different purchase",
                details={"transaction_id": run.transaction_id},
            )
        return run

    def _find_run(
        self, user_id: str, course_id: str, transaction_id: str, amount: int
    ) -> Optional[EnrollmentRun]:
        try:
            run = EnrollmentRun.objects.filter(transaction_id=transaction_id).first()
        except DatabaseError as exc:
            logger.exception("Failed to load enrollment run %s", transaction_id)
            raise StorageUnavailable("Enrollment storage unavailable") from exc
        if run is None:
            return None
        return self._check_run(run, user_id, course_id, amount)

    def _create_run(
        self, user_id: str, course_id: str, transaction_id: str, amount: int, provider: str
    ) -> EnrollmentRun:
        try:
            run, created = EnrollmentRun.objects.get_or_create(
                transaction_id=transaction_id,
                defaults={
                    "user_id": user_id,
                    "course_id": course_id,
                    "amount": amount,
                    "payment_provider": provider,
                },
            )
        except DatabaseError as exc:
            logger.exception("Failed to create enrollment run %s", transaction_id)
            raise StorageUnavailable("Enrollment storage unavailable") from exc

        if not created:
            # lost a race against a concurrent request for the same payment
            return self._check_run(run, user_id, course_id, amount)
        return run

    def _advance(self, run: EnrollmentRun, state: str) -> None:
        if _STATE_ORDER.index(state) <= _STATE_ORDER.index(run.state):
            return
        run.state = state
        run.last_error = ""
        run.save(update_fields=["state", "last_error", "updated_at"])
        logger.info("Enrollment run %s -> %s", run.transaction_id, state)

    def _record_failure(self, run: EnrollmentRun, exc: Exception) -> None:
        run.last_error = f"{exc.__class__.__name__}: {exc}"[:2000]
        try:
            run.save(update_fields=["last_error", "updated_at"])
        except DatabaseError:
            logger.exception("Could not record failure of run %s", run.transaction_id)

    def _execute(self, run: EnrollmentRun) -> EnrollmentResult:
        run.attempts += 1
        try:
            run.save(update_fields=["attempts", "updated_at"])

            course = self._fetch_course(run.course_id)

            transaction = self._record_transaction(run)
            self._advance(run, EnrollmentRun.State.TRANSACTION_RECORDED)

            progress = self._seed_progress(run, course)
            self._advance(run, EnrollmentRun.State.PROGRESS_SEEDED)

            self._grant_enrollment(run, course)
            self._advance(run, EnrollmentRun.State.ENROLLED)
        except MarketplaceException as exc:
            self._record_failure(run, exc)
            raise
        except DatabaseError as exc:
            logger.exception(
                "Storage failure in enrollment run %s (state=%s)",
                run.transaction_id,
                run.state,
            )
            self._record_failure(run, exc)
            raise StorageUnavailable(
                "Enrollment storage unavailable",
                details={"transaction_id": run.transaction_id, "state": run.state},
            ) from exc

        logger.info(
            "Enrolled user %s into course %s (transaction=%s)",
            run.user_id,
            run.course_id,
            run.transaction_id,
        )
        return EnrollmentResult(transaction=transaction, progress=progress, created=True)

    def _prior_result(self, run: EnrollmentRun) -> EnrollmentResult:
        try:
            transaction = Transaction.objects.get(pk=run.transaction_id)
            progress = UserCourseProgress.objects.get(
                user_id=run.user_id, course_id=run.course_id
            )
        except (Transaction.DoesNotExist, UserCourseProgress.DoesNotExist):
            raise NotFound(
                "Enrollment records for this transaction are missing",
                details={"transaction_id": run.transaction_id},
            ) from None
        except DatabaseError as exc:
            raise StorageUnavailable("Enrollment storage unavailable") from exc
        return EnrollmentResult(transaction=transaction, progress=progress, created=False)

    # --- checks ---

    def _check_price(self, transaction_id: str, amount: int, course: Course) -> None:
        if amount < course.price:
            logger.warning(
                "Payment %s of %s does not cover course %s price %s",
                transaction_id,
                amount,
                course.pk,
                course.price,
            )
            raise PaymentNotVerified(
                "Paid amount does not cover the course price",
                details={
                    "transaction_id": transaction_id,
                    "amount": amount,
                    "price": course.price,
                },
            )

    def _verify_payment(
        self, transaction_id: str, user_id: str, course_id: str, amount: int
    ) -> None:
        intent = self.payment_service.retrieve_intent(transaction_id)
        if intent.status != PAYMENT_SUCCEEDED:
            raise PaymentNotVerified(
                "Payment has not succeeded",
                details={"transaction_id": transaction_id, "status": intent.status},
            )
        if intent.amount_received != amount:
            raise PaymentNotVerified(
                "Paid amount does not match",
                details={
                    "transaction_id": transaction_id,
                    "expected": amount,
                    "received": intent.amount_received,
                },
            )

        metadata = getattr(intent, "metadata", None) or {}
        if (
            str(metadata.get("user_id") or "") != user_id
            or str(metadata.get("course_id") or "") != course_id
        ):
            logger.warning(
                "Payment %s was created for user=%s course=%s, claimed by user=%s course=%s",
                transaction_id,
                metadata.get("user_id"),
                metadata.get("course_id"),
                user_id,
                course_id,
            )
            raise PaymentNotVerified(
                "Payment was not made for this course",
                details={"transaction_id": transaction_id},
            )
        logger.info("Verified payment %s (amount=%s)", transaction_id, amount)

    # --- steps ---

    def _fetch_course(self, course_id: str) -> Course:
        try:
            return Course.objects.get(pk=course_id)
        except Course.DoesNotExist:
            logger.error("Payment for missing course %s", course_id)
            raise NotFound(
                "Course not found", details={"course_id": course_id}
            ) from None
        except DatabaseError as exc:
            logger.exception("Failed to load course %s", course_id)
            raise StorageUnavailable("Course storage unavailable") from exc

    def _record_transaction(self, run: EnrollmentRun) -> Transaction:
        transaction, created = Transaction.objects.get_or_create(
            transaction_id=run.transaction_id,
            defaults={
                "date_time": timezone.now(),
                "user_id": run.user_id,
                "course_id": run.course_id,
                "amount": run.amount,
                "payment_provider": run.payment_provider,
            },
        )
        if not created and (
            transaction.user_id != run.user_id or transaction.course_id != run.course_id
        ):
            raise Conflict(
                "Transaction ID already used for a different purchase",
                details={"transaction_id": run.transaction_id},
            )
        if not created:
            logger.info("Transaction %s already recorded", run.transaction_id)
        return transaction

    def _seed_progress(self, run: EnrollmentRun, course: Course) -> UserCourseProgress:
        now = timezone.now()
        progress, created = UserCourseProgress.objects.get_or_create(
            user_id=run.user_id,
            course_id=run.course_id,
            defaults={
                "enrollment_date": now,
                "overall_progress": 0,
                "sections": course.progress_snapshot(),
                "last_accessed_timestamp": now,
            },
        )
        if not created:
            logger.info(
                "Progress for user %s in course %s already exists", run.user_id, run.course_id
            )
        return progress

    def _grant_enrollment(self, run: EnrollmentRun, course: Course) -> CourseEnrollment:
        enrollment, created = CourseEnrollment.objects.get_or_create(
            course=course,
            user_id=run.user_id,
            defaults={"transaction_id": run.transaction_id},
        )
        if created:
            logger.info(
                "Added user %s to enrollments of course %s", run.user_id, course.pk
            )
        else:
            logger.info(
                "Enrollment already exists for user %s and course %s",
                run.user_id,
                course.pk,
            )
        return enrollment
