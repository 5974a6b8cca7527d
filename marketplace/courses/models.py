"""
Course Catalogue Models

This module defines the course aggregate and its denormalized enrollment set.

Models:
- Course: Authored course with price and ordered section/chapter content
- CourseEnrollment: Membership of a user in a course, one row per (course, user)

Content layout:
    Course.sections is an ordered JSON list held by value:

    [
        {
            "sectionId": "...",
            "sectionTitle": "...",
            "sectionDescription": "...",
            "chapters": [
                {"chapterId": "...", "title": "...", "content": "...",
                 "type": "Video", "video": "https://..."}
            ]
        }
    ]

    Identities are strings and never live references, so a course can be
    rewritten as a whole by the content reconciler.

Author: Marketplace Development Team
Version: 1.0.0
"""

import uuid
from typing import Any, Dict, List

from django.db import models
from django.utils.translation import gettext_lazy as _


def new_course_id() -> str:
    return str(uuid.uuid4())


class Course(models.Model):
    """
    Course authored by a teacher.

    Attributes:
        course_id: Opaque, globally unique, immutable identity
        teacher_id: Owner id from the identity provider, immutable after creation
        price: Price in minor units (cents)
        status: Draft until the owner publishes it
        sections: Ordered section/chapter content

    Example:
        >>> course = Course.objects.create(teacher_id="user_1", teacher_name="Ada")
        >>> course.status
        'Draft'
    """

    class Status(models.TextChoices):
        DRAFT = "Draft", _("Draft")
        PUBLISHED = "Published", _("Published")

    class Level(models.TextChoices):
        BEGINNER = "Beginner", _("Beginner")
        INTERMEDIATE = "Intermediate", _("Intermediate")
        ADVANCED = "Advanced", _("Advanced")

    course_id = models.CharField(
        primary_key=True,
        max_length=64,
        default=new_course_id,
        editable=False,
        verbose_name=_("Course ID"),
    )
    teacher_id = models.CharField(
        max_length=255,
        db_index=True,
        verbose_name=_("Teacher ID"),
        help_text=_("Identity-provider id of the owning teacher"),
    )
    teacher_name = models.CharField(max_length=255, verbose_name=_("Teacher Name"))
    title = models.CharField(
        max_length=255, default="Untitled Course", verbose_name=_("Title")
    )
    description = models.TextField(blank=True, default="", verbose_name=_("Description"))
    category = models.CharField(
        max_length=100,
        default="Uncategorized",
        db_index=True,
        verbose_name=_("Category"),
    )
    image = models.CharField(
        max_length=1024, blank=True, default="", verbose_name=_("Image URL")
    )
    price = models.PositiveIntegerField(
        default=0,
        verbose_name=_("Price"),
        help_text=_("Price in minor units (cents)"),
    )
    level = models.CharField(
        max_length=20,
        choices=Level.choices,
        default=Level.BEGINNER,
        verbose_name=_("Level"),
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        verbose_name=_("Status"),
    )
    sections = models.JSONField(default=list, blank=True, verbose_name=_("Sections"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.title} ({self.course_id})"

    class Meta:
        verbose_name = _("Course")
        verbose_name_plural = _("Courses")
        ordering = ["-created_at"]
        db_table = "marketplace_course"

    def progress_snapshot(self) -> List[Dict[str, Any]]:
        """
        Mirror the current section/chapter identities with every chapter incomplete.

        Returns:
            List of {"sectionId", "chapters": [{"chapterId", "completed"}]}
        """
        return [
            {
                "sectionId": section["sectionId"],
                "chapters": [
                    {"chapterId": chapter["chapterId"], "completed": False}
                    for chapter in section.get("chapters") or []
                ],
            }
            for section in self.sections or []
        ]


class CourseEnrollment(models.Model):
    """
    Membership record granting a user access to a course.

    The unique (course, user_id) constraint turns `get_or_create` into an
    atomic set-add, so concurrent purchasers never overwrite each other.
    """

    course = models.ForeignKey(
        Course,
        on_delete=models.CASCADE,
        related_name="enrollments",
        verbose_name=_("Course"),
    )
    user_id = models.CharField(max_length=255, db_index=True, verbose_name=_("User ID"))
    transaction_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name=_("Transaction ID"),
        help_text=_("Payment that granted this enrollment"),
    )
    enrolled_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.user_id} -> {self.course_id}"

    class Meta:
        verbose_name = _("Course Enrollment")
        verbose_name_plural = _("Course Enrollments")
        ordering = ["enrolled_at"]
        db_table = "marketplace_course_enrollment"
        constraints = [
            models.UniqueConstraint(
                fields=["course", "user_id"], name="unique_course_enrollment"
            )
        ]
