"""
Payment Models

Models:
- Transaction: Immutable record of a successful course purchase
- EnrollmentRun: Per-transaction progress of the enrollment pipeline

Transaction and EnrollmentRun reference users and courses by value only, so
they survive deletion of the course they point at.

Author: Marketplace Development Team
Version: 1.0.0
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Transaction(models.Model):
    """
    Payment record created exactly once per successful enrollment.

    The caller-supplied transaction id is the primary key; a second insert of
    the same id is rejected by the database, which keeps retries idempotent.
    """

    transaction_id = models.CharField(
        primary_key=True, max_length=255, verbose_name=_("Transaction ID")
    )
    date_time = models.DateTimeField(default=timezone.now, verbose_name=_("Date/Time"))
    user_id = models.CharField(max_length=255, db_index=True, verbose_name=_("User ID"))
    course_id = models.CharField(max_length=64, db_index=True, verbose_name=_("Course ID"))
    amount = models.PositiveIntegerField(
        verbose_name=_("Amount"), help_text=_("Amount in minor units (cents)")
    )
    payment_provider = models.CharField(max_length=50, verbose_name=_("Payment Provider"))

    def __str__(self) -> str:
        return f"{self.transaction_id} ({self.user_id} -> {self.course_id})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Transactions are immutable once created")
        super().save(*args, **kwargs)

    class Meta:
        verbose_name = _("Transaction")
        verbose_name_plural = _("Transactions")
        ordering = ["-date_time"]
        db_table = "marketplace_transaction"


class EnrollmentRun(models.Model):
    """
    Persistent state of one enrollment pipeline run.

    States advance strictly in order:
        pending -> transaction_recorded -> progress_seeded -> enrolled

    A failed run keeps its last completed state plus the error, so a retry
    with the same transaction id (or the reconcile_enrollments command)
    resumes instead of starting over.
    """

    class State(models.TextChoices):
        PENDING = "pending", _("Pending")
        TRANSACTION_RECORDED = "transaction_recorded", _("Transaction recorded")
        PROGRESS_SEEDED = "progress_seeded", _("Progress seeded")
        ENROLLED = "enrolled", _("Enrolled")

    transaction_id = models.CharField(
        primary_key=True, max_length=255, verbose_name=_("Transaction ID")
    )
    user_id = models.CharField(max_length=255, db_index=True)
    course_id = models.CharField(max_length=64, db_index=True)
    amount = models.PositiveIntegerField()
    payment_provider = models.CharField(max_length=50)
    state = models.CharField(
        max_length=32,
        choices=State.choices,
        default=State.PENDING,
        db_index=True,
        verbose_name=_("State"),
    )
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.transaction_id} [{self.state}]"

    @property
    def is_complete(self) -> bool:
        return self.state == self.State.ENROLLED

    class Meta:
        verbose_name = _("Enrollment Run")
        verbose_name_plural = _("Enrollment Runs")
        ordering = ["-created_at"]
        db_table = "marketplace_enrollment_run"
