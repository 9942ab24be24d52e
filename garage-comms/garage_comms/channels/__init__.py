"""
Delivery Channels
=================
WhatsApp, SMS and email adapters that each make one provider call and
return a CommunicationResult, plus the dispatcher that owns retry and
fallback policy.

Usage:
    from garage_comms.channels import NotificationDispatcher

    dispatcher = NotificationDispatcher.from_settings(settings, breakers)
    result = await dispatcher.send_status_update("9876543210", "+91", update)
    if not result.success and result.retryable:
        ...
"""

from .models import (
    MessageType,
    OutboundMessage,
    AppointmentConfirmation,
    StatusUpdate,
    BidNotification,
    ServiceProviderBooking,
    BidStatusUpdate,
    AuctionBidUpdate,
    NotificationChannel,
    Recipient,
)
from .base import BaseChannelAdapter
from .twilio import TwilioChannelAdapter
from .whatsapp import WhatsAppAdapter
from .sms import SMSAdapter
from .email import EmailAdapter, sanitize_sendgrid_error, is_valid_email
from .dispatcher import NotificationDispatcher
from . import templates

__all__ = [
    # Models
    "MessageType",
    "OutboundMessage",
    "AppointmentConfirmation",
    "StatusUpdate",
    "BidNotification",
    "ServiceProviderBooking",
    "BidStatusUpdate",
    "AuctionBidUpdate",
    "NotificationChannel",
    "Recipient",
    # Adapters
    "BaseChannelAdapter",
    "TwilioChannelAdapter",
    "WhatsAppAdapter",
    "SMSAdapter",
    "EmailAdapter",
    "sanitize_sendgrid_error",
    "is_valid_email",
    # Policy
    "NotificationDispatcher",
    "templates",
]
