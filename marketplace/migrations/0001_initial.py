import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import marketplace.courses.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Course",
            fields=[
                (
                    "course_id",
                    models.CharField(
                        default=marketplace.courses.models.new_course_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                        verbose_name="Course ID",
                    ),
                ),
                (
                    "teacher_id",
                    models.CharField(
                        db_index=True,
                        help_text="Identity-provider id of the owning teacher",
                        max_length=255,
                        verbose_name="Teacher ID",
                    ),
                ),
                ("teacher_name", models.CharField(max_length=255, verbose_name="Teacher Name")),
                (
                    "title",
                    models.CharField(
                        default="Untitled Course", max_length=255, verbose_name="Title"
                    ),
                ),
                (
                    "description",
                    models.TextField(blank=True, default="", verbose_name="Description"),
                ),
                (
                    "category",
                    models.CharField(
                        db_index=True,
                        default="Uncategorized",
                        max_length=100,
                        verbose_name="Category",
                    ),
                ),
                (
                    "image",
                    models.CharField(
                        blank=True, default="", max_length=1024, verbose_name="Image URL"
                    ),
                ),
                (
                    "price",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Price in minor units (cents)",
                        verbose_name="Price",
                    ),
                ),
                (
                    "level",
                    models.CharField(
                        choices=[
                            ("Beginner", "Beginner"),
                            ("Intermediate", "Intermediate"),
                            ("Advanced", "Advanced"),
                        ],
                        default="Beginner",
                        max_length=20,
                        verbose_name="Level",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("Draft", "Draft"), ("Published", "Published")],
                        default="Draft",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "sections",
                    models.JSONField(blank=True, default=list, verbose_name="Sections"),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Course",
                "verbose_name_plural": "Courses",
                "db_table": "marketplace_course",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="EnrollmentRun",
            fields=[
                (
                    "transaction_id",
                    models.CharField(
                        max_length=255,
                        primary_key=True,
                        serialize=False,
                        verbose_name="Transaction ID",
                    ),
                ),
                ("user_id", models.CharField(db_index=True, max_length=255)),
                ("course_id", models.CharField(db_index=True, max_length=64)),
                ("amount", models.PositiveIntegerField()),
                ("payment_provider", models.CharField(max_length=50)),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("transaction_recorded", "Transaction recorded"),
                            ("progress_seeded", "Progress seeded"),
                            ("enrolled", "Enrolled"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=32,
                        verbose_name="State",
                    ),
                ),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("last_error", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Enrollment Run",
                "verbose_name_plural": "Enrollment Runs",
                "db_table": "marketplace_enrollment_run",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                (
                    "transaction_id",
                    models.CharField(
                        max_length=255,
                        primary_key=True,
                        serialize=False,
                        verbose_name="Transaction ID",
                    ),
                ),
                (
                    "date_time",
                    models.DateTimeField(
                        default=django.utils.timezone.now, verbose_name="Date/Time"
                    ),
                ),
                (
                    "user_id",
                    models.CharField(db_index=True, max_length=255, verbose_name="User ID"),
                ),
                (
                    "course_id",
                    models.CharField(db_index=True, max_length=64, verbose_name="Course ID"),
                ),
                (
                    "amount",
                    models.PositiveIntegerField(
                        help_text="Amount in minor units (cents)", verbose_name="Amount"
                    ),
                ),
                (
                    "payment_provider",
                    models.CharField(max_length=50, verbose_name="Payment Provider"),
                ),
            ],
            options={
                "verbose_name": "Transaction",
                "verbose_name_plural": "Transactions",
                "db_table": "marketplace_transaction",
                "ordering": ["-date_time"],
            },
        ),
        migrations.CreateModel(
            name="UserCourseProgress",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "user_id",
                    models.CharField(db_index=True, max_length=255, verbose_name="User ID"),
                ),
                (
                    "course_id",
                    models.CharField(db_index=True, max_length=64, verbose_name="Course ID"),
                ),
                ("enrollment_date", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "overall_progress",
                    models.PositiveSmallIntegerField(
                        default=0,
                        help_text="Completion in percent (0-100)",
                        validators=[django.core.validators.MaxValueValidator(100)],
                        verbose_name="Overall Progress",
                    ),
                ),
                ("sections", models.JSONField(blank=True, default=list)),
                (
                    "last_accessed_timestamp",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
            ],
            options={
                "verbose_name": "User Course Progress",
                "verbose_name_plural": "User Course Progress",
                "db_table": "marketplace_user_course_progress",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user_id", "course_id"),
                        name="unique_user_course_progress",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CourseEnrollment",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "user_id",
                    models.CharField(db_index=True, max_length=255, verbose_name="User ID"),
                ),
                (
                    "transaction_id",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Payment that granted this enrollment",
                        max_length=255,
                        verbose_name="Transaction ID",
                    ),
                ),
                ("enrolled_at", models.DateTimeField(auto_now_add=True)),
                (
                    "course",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="enrollments",
                        to="marketplace.course",
                        verbose_name="Course",
                    ),
                ),
            ],
            options={
                "verbose_name": "Course Enrollment",
                "verbose_name_plural": "Course Enrollments",
                "db_table": "marketplace_course_enrollment",
                "ordering": ["enrolled_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("course", "user_id"), name="unique_course_enrollment"
                    )
                ],
            },
        ),
    ]
