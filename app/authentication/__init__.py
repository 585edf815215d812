"""
Authentication application.

Holds the member identity used by chat: an email-based User with an
optional display name. Registration, login and token issuance live in the
account service; this service verifies the JWTs it issues.

Usage:
    from authentication.models import User
    from authentication.serializers import MemberSerializer
"""
