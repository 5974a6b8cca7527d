from rest_framework import serializers

from .models import Course


class CourseSerializer(serializers.ModelSerializer):
    """
    Course representation used by the web client (camelCase keys).

    `enrollments` renders the enrollment set as [{"userId": ...}].
    """

    courseId = serializers.CharField(source="course_id", read_only=True)
    teacherId = serializers.CharField(source="teacher_id", read_only=True)
    teacherName = serializers.CharField(source="teacher_name", read_only=True)
    enrollments = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Course
        fields = [
            "courseId",
            "teacherId",
            "teacherName",
            "title",
            "description",
            "category",
            "image",
            "price",
            "level",
            "status",
            "sections",
            "enrollments",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields

    def get_enrollments(self, obj):
        # Deleted courses carry their former members in memory
        user_ids = getattr(obj, "enrolled_user_ids", None)
        if user_ids is None:
            user_ids = [enrollment.user_id for enrollment in obj.enrollments.all()]
        return [{"userId": user_id} for user_id in user_ids]
