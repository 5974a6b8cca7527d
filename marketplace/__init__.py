"""
Course Marketplace Package

This package contains the purchase-and-enrollment core of the online course
marketplace: creators author courses, learners pay for them and track their
progress.

Structure:
- courses/:  Course catalogue, content reconciliation and pricing
- uploads/:  Time-limited storage write grants for images and videos
- payments/: Payment intents, transactions and the enrollment pipeline
- progress/: Learner progress records seeded at enrollment time
- management/: Django management commands (enrollment reconciliation)

Author: Marketplace Development Team
Version: 1.0.0
"""
