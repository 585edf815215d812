"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Group, Message, receipt and directory model tests
- test_services.py: Membership, message, unseen and directory service tests
- test_permissions.py: DRF permission class tests
- test_views.py: REST API endpoint tests

Usage:
    pytest app/chat/tests/
    pytest app/chat/tests/test_services.py
"""
