"""
Notification Service - system events that produce user-facing notifications
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from crud.notification import NotificationRepository
from database_models import Notification

logger = logging.getLogger(__name__)

# event -> (title, message, type, related entity type)
NOTIFICATION_EVENTS = {
    "will_created": ("Will Created", "Your will has been created. Continue with Skyler to fill it in.", "success", "will"),
    "will_completed": ("Will Completed", "Your will is complete. You can download the full package at any time.", "success", "will"),
    "will_locked": ("Will Locked", "Your will is locked and can no longer be edited until it is unlocked.", "info", "will"),
    "will_unlocked": ("Will Unlocked", "Your will has been unlocked for editing.", "warning", "will"),
    "document_uploaded": ("Document Uploaded", "A supporting document was added to your will.", "success", "document"),
    "document_deleted": ("Document Deleted", "A supporting document was removed from your will.", "info", "document"),
    "contact_added": ("Contact Added", "A new contact was added to your will.", "success", "contact"),
    "contact_updated": ("Contact Updated", "A contact on your will was updated.", "info", "contact"),
    "contacts_extracted": ("Contacts Added", "Skyler added contacts from your conversation.", "success", "will"),
    "video_recorded": ("Video Testimony Recorded", "Your video testimony has been saved with your will.", "success", "will"),
    "email_verified": ("Email Verified", "Your email address has been verified.", "success", None),
    "password_changed": ("Password Changed", "Your password was changed. If this wasn't you, reset it immediately.", "warning", None),
    "two_factor_enabled": ("Two-Factor Authentication Enabled", "Two-factor authentication is now protecting your account.", "success", None),
    "two_factor_disabled": ("Two-Factor Authentication Disabled", "Two-factor authentication was turned off for your account.", "warning", None),
    "subscription_activated": ("Subscription Activated", "Your WillTank subscription is active. Thank you!", "success", "subscription"),
    "subscription_canceled": ("Subscription Canceling", "Your subscription will end at the close of the current billing period.", "warning", "subscription"),
    "payment_failed": ("Payment Failed", "We couldn't process your latest payment. Please update your billing details.", "warning", "subscription"),
    "support_request_sent": ("Request Received", "Thanks for reaching out. Our team will contact you shortly.", "info", None),
}


class NotificationService:
    """Creates notifications for known system events."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = NotificationRepository(db)

    async def notify(
        self,
        user_id: int,
        event: str,
        related_entity_id: Optional[int] = None,
        message: Optional[str] = None,
    ) -> Notification:
        """
        Create the notification registered for `event`.

        Args:
            user_id: Recipient
            event: Key of NOTIFICATION_EVENTS
            related_entity_id: ID of the will/document/contact the event concerns
            message: Overrides the default message text

        Raises:
            KeyError: If the event is not registered
        """
        title, default_message, notification_type, entity_type = NOTIFICATION_EVENTS[event]
        notification = await self.repo.create_notification(user_id, {
            "title": title,
            "message": message or default_message,
            "type": notification_type,
            "related_entity_type": entity_type if related_entity_id is not None else None,
            "related_entity_id": related_entity_id,
        })
        logger.info(f"Notification '{event}' created for user {user_id}")
        return notification
