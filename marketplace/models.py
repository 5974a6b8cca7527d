"""
Marketplace Models Registry

This module serves as the central models registry for the marketplace app.
It imports and exposes all models from the logical submodules (courses,
payments, progress) so they are registered with Django's ORM under the
`marketplace` app label.

Author: Marketplace Development Team
Version: 1.0.0
"""

# Course catalogue and enrollment set
from .courses.models import Course, CourseEnrollment

# Transactions and pipeline state
from .payments.models import EnrollmentRun, Transaction

# Learner progress
from .progress.models import UserCourseProgress

__all__ = [
    "Course",
    "CourseEnrollment",
    "EnrollmentRun",
    "Transaction",
    "UserCourseProgress",
]
