from rest_framework import serializers

from .models import Transaction


class TransactionSerializer(serializers.ModelSerializer):
    transactionId = serializers.CharField(source="transaction_id", read_only=True)
    dateTime = serializers.DateTimeField(source="date_time", read_only=True)
    userId = serializers.CharField(source="user_id", read_only=True)
    courseId = serializers.CharField(source="course_id", read_only=True)
    paymentProvider = serializers.CharField(source="payment_provider", read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "transactionId",
            "dateTime",
            "userId",
            "courseId",
            "amount",
            "paymentProvider",
        ]
        read_only_fields = fields
