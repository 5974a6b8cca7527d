"""
Marketplace Django Admin Configuration

Admin views for courses, enrollments, transactions, pipeline runs and progress.
Transactions are read-only: they are immutable once created.

Author: Marketplace Development Team
Version: 1.0.0
"""

from typing import Optional

from django.contrib import admin
from django.http import HttpRequest

from .models import Course, CourseEnrollment, EnrollmentRun, Transaction, UserCourseProgress


class CourseEnrollmentInline(admin.TabularInline):
    model = CourseEnrollment
    extra = 0
    readonly_fields = ("user_id", "transaction_id", "enrolled_at")
    can_delete = False


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("title", "teacher_name", "category", "price", "status", "created_at")
    list_filter = ("status", "level", "category")
    search_fields = ("title", "teacher_name", "teacher_id", "course_id")
    readonly_fields = ("course_id", "teacher_id", "created_at", "updated_at")
    inlines = [CourseEnrollmentInline]


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "user_id", "course_id", "amount", "payment_provider", "date_time")
    list_filter = ("payment_provider",)
    search_fields = ("transaction_id", "user_id", "course_id")

    def has_add_permission(self, request: HttpRequest) -> bool:
        return False

    def has_change_permission(self, request: HttpRequest, obj: Optional[Transaction] = None) -> bool:
        return False

    def has_delete_permission(self, request: HttpRequest, obj: Optional[Transaction] = None) -> bool:
        return False


@admin.register(EnrollmentRun)
class EnrollmentRunAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "user_id", "course_id", "state", "attempts", "updated_at")
    list_filter = ("state",)
    search_fields = ("transaction_id", "user_id", "course_id")
    readonly_fields = ("created_at", "updated_at")


@admin.register(UserCourseProgress)
class UserCourseProgressAdmin(admin.ModelAdmin):
    list_display = ("user_id", "course_id", "overall_progress", "enrollment_date")
    search_fields = ("user_id", "course_id")
