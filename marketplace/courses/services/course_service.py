"""
Course Service Module

Business logic behind the course endpoints: listing, retrieval, creation,
owner-only updates and deletion. Price updates go through the pricing
normalizer and content updates through the content reconciler.

Updates are last-writer-wins at whole-course granularity.
"""

import logging
from typing import Any, Dict, Optional

from django.db import DatabaseError
from django.db.models import QuerySet

from ...authorization import ensure_course_owner
from ...exceptions import NotFound, StorageUnavailable, ValidationError
from ..models import Course
from .content_reconciler import parse_sections, reconcile_sections
from .pricing import to_minor_units

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"

# Request field -> model field for plain text attributes
_TEXT_FIELDS = {
    "title": "title",
    "description": "description",
    "category": "category",
    "image": "image",
}


class CourseService:
    """
    Service class for course operations.

    Every mutation first loads the course and checks ownership, so a
    non-owner never changes stored data.
    """

    def list_courses(self, category: Optional[str] = None) -> QuerySet:
        """
        List courses, filtered by category unless it is empty or "all".
        """
        queryset = Course.objects.prefetch_related("enrollments")
        if category and category != ALL_CATEGORIES:
            queryset = queryset.filter(category=category)
        return queryset

    def get_course(self, course_id: str) -> Course:
        try:
            return Course.objects.prefetch_related("enrollments").get(pk=course_id)
        except Course.DoesNotExist:
            raise NotFound(
                "Course not found", details={"course_id": course_id}
            ) from None
        except DatabaseError as exc:
            logger.exception("Failed to load course %s", course_id)
            raise StorageUnavailable("Course storage unavailable") from exc

    def create_course(self, teacher_id: Optional[str], teacher_name: Optional[str]) -> Course:
        """
        Create an empty Draft course owned by `teacher_id`.

        Raises:
            ValidationError: If teacher id or name is missing
        """
        if not teacher_id or not teacher_name:
            raise ValidationError("Teacher ID and name are required")

        try:
            course = Course.objects.create(
                teacher_id=str(teacher_id),
                teacher_name=str(teacher_name),
                status=Course.Status.DRAFT,
                sections=[],
                price=0,
            )
        except DatabaseError as exc:
            logger.exception("Failed to create course for teacher %s", teacher_id)
            raise StorageUnavailable("Course storage unavailable") from exc

        logger.info("Created course %s for teacher %s", course.pk, teacher_id)
        return course

    def update_course(
        self, course_id: str, caller: Optional[str], data: Dict[str, Any]
    ) -> Course:
        """
        Apply a partial update from the course owner.

        Args:
            course_id: Course to update
            caller: Caller id (must be the course's teacher)
            data: Submitted fields (title, description, category, image,
                level, status, price, sections)

        Raises:
            NotFound, Forbidden, ValidationError, InvalidPrice, StorageUnavailable
        """
        course = self.get_course(course_id)
        ensure_course_owner(course, caller)

        changes = self._validated_changes(course, data)
        if not changes:
            return course

        for field, value in changes.items():
            setattr(course, field, value)

        try:
            course.save(update_fields=[*changes.keys(), "updated_at"])
        except DatabaseError as exc:
            logger.exception("Failed to update course %s", course_id)
            raise StorageUnavailable("Course storage unavailable") from exc

        logger.info("Updated course %s fields=%s", course_id, sorted(changes))
        return course

    def delete_course(self, course_id: str, caller: Optional[str]) -> Course:
        """Delete a course owned by `caller` and return its last state."""
        course = self.get_course(course_id)
        ensure_course_owner(course, caller)

        try:
            enrolled_user_ids = [e.user_id for e in course.enrollments.all()]
            course.delete()
        except DatabaseError as exc:
            logger.exception("Failed to delete course %s", course_id)
            raise StorageUnavailable("Course storage unavailable") from exc

        # delete() clears the primary key; restore it for the response
        course.course_id = course_id
        course.enrolled_user_ids = enrolled_user_ids

        logger.info("Deleted course %s (teacher=%s)", course_id, caller)
        return course

    # --- helpers ---

    def _validated_changes(self, course: Course, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate every submitted field before anything is assigned."""
        changes: Dict[str, Any] = {}

        for request_field, model_field in _TEXT_FIELDS.items():
            if request_field in data and data[request_field] is not None:
                changes[model_field] = str(data[request_field])

        if "level" in data and data["level"] is not None:
            if data["level"] not in Course.Level.values:
                raise ValidationError(
                    "Invalid course level",
                    details={"level": data["level"], "allowed": Course.Level.values},
                )
            changes["level"] = data["level"]

        if "status" in data and data["status"] is not None:
            if data["status"] not in Course.Status.values:
                raise ValidationError(
                    "Invalid course status",
                    details={"status": data["status"], "allowed": Course.Status.values},
                )
            changes["status"] = data["status"]

        if "price" in data:
            changes["price"] = to_minor_units(data["price"])

        if "sections" in data:
            incoming = parse_sections(data["sections"])
            changes["sections"] = reconcile_sections(course.sections, incoming)

        return changes
