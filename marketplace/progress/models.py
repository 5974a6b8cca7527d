from django.core.validators import MaxValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class UserCourseProgress(models.Model):
    """
    Progress of one user through one course.

    Created once at enrollment time as a snapshot of the course's section and
    chapter identities. Later progress updates belong to the learning client.
    """

    user_id = models.CharField(max_length=255, db_index=True, verbose_name=_("User ID"))
    course_id = models.CharField(max_length=64, db_index=True, verbose_name=_("Course ID"))
    enrollment_date = models.DateTimeField(default=timezone.now)
    overall_progress = models.PositiveSmallIntegerField(
        default=0,
        validators=[MaxValueValidator(100)],
        verbose_name=_("Overall Progress"),
        help_text=_("Completion in percent (0-100)"),
    )
    sections = models.JSONField(default=list, blank=True)
    last_accessed_timestamp = models.DateTimeField(default=timezone.now)

    def __str__(self) -> str:
        return f"{self.user_id} @ {self.course_id}: {self.overall_progress}%"

    class Meta:
        verbose_name = _("User Course Progress")
        verbose_name_plural = _("User Course Progress")
        db_table = "marketplace_user_course_progress"
        constraints = [
            models.UniqueConstraint(
                fields=["user_id", "course_id"], name="unique_user_course_progress"
            )
        ]
