"""
Transaction & Payment Views
===========================

Endpoints
---------
1. TransactionListCreateView
   - URL: /api/transactions/
   - GET:  list the caller's transactions (staff: all, optional ?userId=)
   - POST: {"userId", "courseId", "transactionId", "amount", "paymentProvider"}
           Runs the enrollment pipeline for a payment the client reports as
           confirmed. The payment is verified with Stripe before anything is
           written. A retry with the same transactionId returns the prior result.

2. CreatePaymentIntentView
   - URL: /api/transactions/stripe/payment-intent/
   - POST: {"courseId": "..."} -> {"clientSecret": "..."}
           The amount is the course price; without courseId the client amount
           (floored) is used. user_id/course_id metadata binds the intent.

3. GetStripeConfigView
   - URL: /api/transactions/stripe/config/
   - GET: publishable key for Stripe.js

4. StripeWebhookView
   - URL: /api/transactions/stripe/webhook/
   - POST: Stripe events, signature verified with STRIPE_WEBHOOK_SECRET.
           `payment_intent.succeeded` with user_id/course_id metadata drives
           the enrollment pipeline.

Security
--------
- Card data never touches this backend; Stripe.js uses the client secret.
- Users can only enroll themselves and list their own transactions.
- Only verifiable payment providers (Stripe) are accepted.

Dependencies
------------
- Django REST Framework (API endpoints)
- stripe (official Python SDK)

Author: Marketplace Development Team
Version: 1.0.0
"""

import logging

import stripe
from django.conf import settings
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from ..authorization import caller_id, ensure_same_user
from ..courses.services.course_service import CourseService
from ..exceptions import MarketplaceException
from ..progress.serializers import UserCourseProgressSerializer
from .models import Transaction
from .serializers import TransactionSerializer
from .services.enrollment_pipeline import STRIPE_PROVIDER, EnrollmentPipeline
from .services.payment_intent_service import PaymentIntentService

logger = logging.getLogger(__name__)

course_service = CourseService()


class TransactionListCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        caller = caller_id(request)
        user_id = request.query_params.get("userId")
        if not request.user.is_staff:
            # non-staff callers only see their own purchases
            if user_id:
                ensure_same_user(caller, user_id)
            user_id = caller

        transactions = Transaction.objects.all()
        if user_id:
            transactions = transactions.filter(user_id=user_id)
        return Response(
            {
                "message": "Transactions retrieved successfully",
                "data": TransactionSerializer(transactions, many=True).data,
            }
        )

    def post(self, request):
        caller = caller_id(request)
        user_id = request.data.get("userId") or caller
        ensure_same_user(caller, str(user_id))

        result = EnrollmentPipeline().enroll(
            user_id=user_id,
            course_id=request.data.get("courseId"),
            transaction_id=request.data.get("transactionId"),
            amount=request.data.get("amount"),
            payment_provider=request.data.get("paymentProvider"),
        )
        return Response(
            {
                "message": "Course purchased successfully",
                "data": {
                    "transaction": TransactionSerializer(result.transaction).data,
                    "courseProgress": UserCourseProgressSerializer(result.progress).data,
                },
            },
            status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
        )


class CreatePaymentIntentView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        metadata = {"user_id": caller_id(request)}
        amount = request.data.get("amount")
        course_id = request.data.get("courseId")
        if course_id:
            # amount comes from the course price
            course = course_service.get_course(str(course_id))
            metadata["course_id"] = course.course_id
            amount = course.price

        client_secret = PaymentIntentService().create_intent(amount, metadata=metadata)
        return Response(
            {
                "message": "Payment intent created successfully",
                "data": {"clientSecret": client_secret},
            }
        )


class GetStripeConfigView(APIView):
    """
    endpoint so the frontend can initialize Stripe.js
    """

    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response(
            {"publishableKey": PaymentIntentService.publishable_key()}, status=200
        )


class StripeWebhookView(APIView):
    """
    Signed Stripe webhook.

    Client errors (unknown course, bad metadata) are logged and acknowledged so
    Stripe stops retrying; provider and storage failures return 5xx so Stripe
    retries and the pipeline resumes.
    """

    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        try:
            event = stripe.Webhook.construct_event(
                request.body,
                request.META.get("HTTP_STRIPE_SIGNATURE", ""),
                settings.STRIPE_WEBHOOK_SECRET,
            )
        except ValueError:
            logger.warning("Stripe webhook with invalid payload")
            return Response({"detail": "Invalid payload."}, status=400)
        except stripe.SignatureVerificationError:
            logger.warning("Stripe webhook with invalid signature")
            return Response({"detail": "Invalid signature."}, status=400)

        event_type = event["type"]
        logger.info("[webhook] %s (event_id=%s)", event_type, event.get("id"))

        if event_type == "payment_intent.succeeded":
            self._handle_payment_intent_succeeded(event["data"]["object"])
        else:
            logger.debug("Unhandled event type: %s", event_type)

        return Response({"received": True}, status=200)

    def _handle_payment_intent_succeeded(self, payment_intent) -> None:
        pi_id = payment_intent.get("id")
        metadata = payment_intent.get("metadata") or {}
        user_id = metadata.get("user_id")
        course_id = metadata.get("course_id")

        if not user_id or not course_id:
            logger.warning("payment_intent.succeeded pi=%s without user/course metadata", pi_id)
            return

        try:
            EnrollmentPipeline().enroll(
                user_id=user_id,
                course_id=course_id,
                transaction_id=pi_id,
                amount=payment_intent.get("amount_received"),
                payment_provider=STRIPE_PROVIDER,
                verify_payment=False,
            )
        except MarketplaceException as exc:
            if exc.status_code >= 500:
                raise
            logger.error(
                "Webhook enrollment for pi=%s rejected: %s (%s)",
                pi_id,
                exc.message,
                exc.error_code,
            )
