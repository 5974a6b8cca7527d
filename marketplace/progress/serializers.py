from rest_framework import serializers

from .models import UserCourseProgress


class UserCourseProgressSerializer(serializers.ModelSerializer):
    userId = serializers.CharField(source="user_id", read_only=True)
    courseId = serializers.CharField(source="course_id", read_only=True)
    enrollmentDate = serializers.DateTimeField(source="enrollment_date", read_only=True)
    overallProgress = serializers.IntegerField(source="overall_progress", read_only=True)
    lastAccessedTimestamp = serializers.DateTimeField(
        source="last_accessed_timestamp", read_only=True
    )

    class Meta:
        model = UserCourseProgress
        fields = [
            "userId",
            "courseId",
            "enrollmentDate",
            "overallProgress",
            "sections",
            "lastAccessedTimestamp",
        ]
        read_only_fields = fields
