# Generated manually - Initial chat schema

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ChatGroup",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "name",
                    models.CharField(help_text="Group display name", max_length=100),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Member who created this group",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_chat_groups",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_group",
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="GroupMembership",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "is_admin",
                    models.BooleanField(
                        default=False, help_text="Whether this member is a group admin"
                    ),
                ),
                (
                    "group",
                    models.ForeignKey(
                        help_text="Group this membership belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="chat.chatgroup",
                    ),
                ),
                (
                    "member",
                    models.ForeignKey(
                        help_text="Member of the group",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="chat_memberships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_group_membership",
                "ordering": ["id"],
                "indexes": [
                    models.Index(
                        fields=["group", "is_admin"],
                        name="chat_member_group_admin_idx",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("group", "member"), name="unique_group_membership"
                    )
                ],
            },
        ),
        migrations.AddField(
            model_name="chatgroup",
            name="members",
            field=models.ManyToManyField(
                help_text="Members of this group",
                related_name="chat_groups",
                through="chat.GroupMembership",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[("text", "Text"), ("file", "File")],
                        default="text",
                        help_text="Content kind (text or file)",
                        max_length=10,
                    ),
                ),
                (
                    "body",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Text body for text messages",
                    ),
                ),
                (
                    "file_data",
                    models.BinaryField(
                        blank=True,
                        help_text="File payload for file messages",
                        null=True,
                    ),
                ),
                (
                    "file_content_type",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="MIME type of the file payload",
                        max_length=255,
                    ),
                ),
                (
                    "file_name",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Original name of the uploaded file",
                        max_length=255,
                    ),
                ),
                (
                    "file_size",
                    models.PositiveBigIntegerField(
                        default=0, help_text="Size of the file payload in bytes"
                    ),
                ),
                (
                    "group",
                    models.ForeignKey(
                        help_text="Group this message belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="chat.chatgroup",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        help_text="Member who posted this message",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sent_chat_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_message",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["group", "created_at", "id"],
                        name="chat_msg_group_cursor_idx",
                    )
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                models.Q(("kind", "text")),
                                models.Q(("body", ""), _negated=True),
                            ),
                            models.Q(
                                models.Q(("kind", "file")),
                                models.Q(("file_name", ""), _negated=True),
                            ),
                            _connector="OR",
                        ),
                        name="chat_message_content_matches_kind",
                    )
                ],
            },
        ),
        migrations.AddField(
            model_name="chatgroup",
            name="last_message",
            field=models.ForeignKey(
                blank=True,
                help_text="Most recent message posted to this group",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="chat.message",
            ),
        ),
        migrations.CreateModel(
            name="MessageReceipt",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "seen_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the recipient saw the message (null if unseen)",
                        null=True,
                    ),
                ),
                (
                    "member",
                    models.ForeignKey(
                        help_text="Recipient of the message",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="chat_receipts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "message",
                    models.ForeignKey(
                        help_text="Message this receipt tracks",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="receipts",
                        to="chat.message",
                    ),
                ),
            ],
            options={
                "db_table": "chat_message_receipt",
                "ordering": ["id"],
                "indexes": [
                    models.Index(
                        fields=["member", "seen_at"],
                        name="chat_receipt_member_seen_idx",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("message", "member"), name="unique_message_receipt"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="DirectoryEntry",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "group_ref",
                    models.PositiveBigIntegerField(
                        db_index=True,
                        help_text="Id of the recorded group (may no longer exist)",
                    ),
                ),
                (
                    "added_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        help_text="When the group was recorded for this member",
                    ),
                ),
                (
                    "member",
                    models.ForeignKey(
                        help_text="Member whose directory this entry belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="chat_directory",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_directory_entry",
                "ordering": ["id"],
                "verbose_name_plural": "directory entries",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("member", "group_ref"), name="unique_directory_entry"
                    )
                ],
            },
        ),
    ]
