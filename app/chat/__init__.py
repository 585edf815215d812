"""
Chat app for group messaging.

This app handles:
- Groups, their members and admins
- Message posting, listing and deletion
- Unseen counts and seen logs per member
- Each member's directory of groups

Related apps:
    - authentication: User model for members
    - core: ServiceResult and error kinds

Usage:
    from chat.content import TextContent
    from chat.services import MembershipService, MessageService

    # Create group
    group = MembershipService.create_group(
        creator=user,
        name="Reading circle",
        initial_members=[other_user],
    ).data

    # Send message
    message = MessageService.post_message(
        group.id,
        sender=user,
        content=TextContent("Hello!"),
    ).data
"""
