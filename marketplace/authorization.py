"""
Central authorization helpers for the marketplace.

The identity provider supplies a verified caller id and a role claim. Every
mutating operation resolves the caller through `caller_id` / `caller_role` and
checks ownership through `ensure_course_owner`.
"""

import logging
from typing import Optional

from django.conf import settings
from rest_framework.permissions import BasePermission

from .exceptions import Forbidden

logger = logging.getLogger(__name__)

TEACHER_ROLE = "teacher"
STUDENT_ROLE = "student"


def caller_id(request) -> Optional[str]:
    """Returns the authenticated caller's id as a string, or None for anonymous callers."""
    user = getattr(request, "user", None)
    if not user or not user.is_authenticated:
        return None
    return str(user.pk)


def caller_role(request) -> str:
    """
    Resolve the caller's role.

    Order: the role claim of the validated token, then membership in the
    `teacher` group, then the default `student` role.
    """
    user = getattr(request, "user", None)
    if not user or not user.is_authenticated:
        return STUDENT_ROLE

    claims = getattr(request, "auth", None)
    if claims is not None and hasattr(claims, "get"):
        role = claims.get(settings.JWT_ROLE_CLAIM)
        if role:
            return str(role).lower()

    if user.groups.filter(name=TEACHER_ROLE).exists():
        return TEACHER_ROLE
    return STUDENT_ROLE


def ensure_course_owner(course, user_id: Optional[str]) -> None:
    """
    Raise Forbidden unless `user_id` owns the course.

    Args:
        course: Course instance about to be changed
        user_id: Caller id as resolved by `caller_id`
    """
    if not user_id or course.teacher_id != user_id:
        logger.warning(
            "Ownership check failed for course %s (caller=%s)", course.pk, user_id
        )
        raise Forbidden(
            "You are not allowed to modify this course",
            details={"course_id": course.pk},
        )


def ensure_same_user(user_id: Optional[str], target_user_id: Optional[str]) -> None:
    """Raise Forbidden unless the caller acts on their own records."""
    if not user_id or user_id != target_user_id:
        raise Forbidden("You can only act on your own records")


class IsTeacher(BasePermission):
    """Allows access only to authenticated callers with the teacher role."""

    message = "Only teachers can perform this action."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return caller_role(request) == TEACHER_ROLE
