"""
Reconcile Enrollments Command

Completes purchases whose enrollment pipeline stopped half way, e.g. a paid
Transaction without a matching course enrollment. Intended to run
periodically (cronjob).

Two sources are scanned:
- EnrollmentRun rows not in the `enrolled` state and untouched for
  --older-than minutes
- Transactions with neither an EnrollmentRun nor a course enrollment

Both are resumed through the enrollment pipeline, which continues from the
last completed step.

Author: Marketplace Development Team
Version: 1.0.0
"""

from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db.models import Exists, OuterRef
from django.utils import timezone

from marketplace.courses.models import CourseEnrollment
from marketplace.exceptions import MarketplaceException
from marketplace.payments.models import EnrollmentRun, Transaction
from marketplace.payments.services.enrollment_pipeline import EnrollmentPipeline


class Command(BaseCommand):
    """
    Resume unfinished enrollment runs

    Usage:
        python manage.py reconcile_enrollments
        python manage.py reconcile_enrollments --older-than 30
        python manage.py reconcile_enrollments --dry-run
    """

    help = "Resume enrollment pipeline runs that did not reach the enrolled state"

    def add_arguments(self, parser):
        parser.add_argument(
            "--older-than",
            type=int,
            default=10,
            help="Only touch runs not updated for this many minutes (default: 10)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List what would be resumed without changing anything",
        )

    def handle(self, *args, **options):
        cutoff = timezone.now() - timedelta(minutes=options["older_than"])
        dry_run = options["dry_run"]

        stale_runs = list(
            EnrollmentRun.objects.exclude(state=EnrollmentRun.State.ENROLLED).filter(
                updated_at__lt=cutoff
            )
        )
        orphans = list(
            Transaction.objects.filter(date_time__lt=cutoff)
            .annotate(
                has_run=Exists(
                    EnrollmentRun.objects.filter(transaction_id=OuterRef("pk"))
                ),
                has_enrollment=Exists(
                    CourseEnrollment.objects.filter(
                        course_id=OuterRef("course_id"), user_id=OuterRef("user_id")
                    )
                ),
            )
            .filter(has_run=False, has_enrollment=False)
        )

        self.stdout.write(
            f"Found {len(stale_runs)} unfinished run(s) and "
            f"{len(orphans)} transaction(s) without enrollment"
        )
        if dry_run:
            for run in stale_runs:
                self.stdout.write(f"  run {run.transaction_id} [{run.state}]")
            for transaction in orphans:
                self.stdout.write(f"  transaction {transaction.transaction_id}")
            self.stdout.write(self.style.WARNING("Dry run: nothing changed"))
            return

        for transaction in orphans:
            run, _ = EnrollmentRun.objects.get_or_create(
                transaction_id=transaction.transaction_id,
                defaults={
                    "user_id": transaction.user_id,
                    "course_id": transaction.course_id,
                    "amount": transaction.amount,
                    "payment_provider": transaction.payment_provider,
                    "state": EnrollmentRun.State.TRANSACTION_RECORDED,
                },
            )
            stale_runs.append(run)

        pipeline = EnrollmentPipeline()
        completed = failed = 0
        for run in stale_runs:
            try:
                pipeline.resume(run)
            except MarketplaceException as exc:
                failed += 1
                self.stderr.write(
                    f"  {run.transaction_id}: {exc.error_code} - {exc.message}"
                )
            else:
                completed += 1

        self.stdout.write(
            self.style.SUCCESS(f"Completed {completed} run(s), {failed} failed")
        )
