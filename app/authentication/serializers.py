"""
Serializers for authentication models.

Related files:
    - models.py: User model
    - chat/serializers.py: Embeds MemberSerializer for message senders
"""

from rest_framework import serializers

from authentication.models import User


class MemberSerializer(serializers.ModelSerializer):
    """
    Minimal display projection of a member: id and name.

    Used for message senders and group member listings.
    """

    name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "name"]
        read_only_fields = fields

    def get_name(self, obj):
        """Return the member's display name, falling back to email."""
        return obj.get_full_name()
