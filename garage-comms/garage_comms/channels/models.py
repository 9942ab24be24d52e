"""
Channel Models
==============
Outbound message and template payload models.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class NotificationChannel(str, Enum):
    """Channels a customer can choose to be reached on."""
    WHATSAPP = "whatsapp"
    EMAIL = "email"

    @property
    def alternate(self) -> "NotificationChannel":
        if self == NotificationChannel.WHATSAPP:
            return NotificationChannel.EMAIL
        return NotificationChannel.WHATSAPP


class MessageType(str, Enum):
    """Kinds of customer notification."""
    APPOINTMENT_CONFIRMATION = "appointment_confirmation"
    STATUS_UPDATE = "status_update"
    BID_NOTIFICATION = "bid_notification"
    WELCOME = "welcome"
    OTP = "otp"
    SERVICE_PROVIDER_BOOKING = "service_provider_booking"
    APPOINTMENT_REMINDER = "appointment_reminder"
    BID_STATUS = "bid_status"
    AUCTION_BID_UPDATE = "auction_bid_update"
    PROMOTIONAL = "promotional"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


@dataclass
class OutboundMessage:
    """One message handed to a channel adapter."""
    to: str
    body: str
    subject: Optional[str] = None
    html: Optional[str] = None
    message_type: Optional[MessageType] = None


Price = Union[int, float]


@dataclass
class AppointmentConfirmation:
    customer_name: str
    booking_id: str
    service_name: str
    date_time: str
    location: str
    car_details: str
    mechanic_name: Optional[str] = None
    price: Optional[Price] = None


@dataclass
class StatusUpdate:
    customer_name: str
    booking_id: str
    service_name: str
    status: str
    additional_info: Optional[str] = None
    # Shown in the email rendition only
    date_time: Optional[str] = None
    car_details: Optional[str] = None
    mechanic_name: Optional[str] = None


@dataclass
class BidNotification:
    customer_name: str
    bid_id: str
    car_details: str
    bid_amount: Price


@dataclass
class ServiceProviderBooking:
    provider_name: str
    booking_id: str
    customer_name: str
    service_name: str
    date_time: str
    location: str
    car_details: str
    customer_phone: Optional[str] = None
    price: Optional[Price] = None


@dataclass
class BidStatusUpdate:
    """Outcome of a bid the customer placed on a listed car."""
    bid_id: str
    car_details: str
    bid_amount: Price
    accepted: bool


@dataclass
class AuctionBidUpdate:
    """Standing of the customer's bid in a running auction."""
    customer_name: str
    car_name: str
    bid_amount: Price
    current_highest_bid: Price

    @property
    def is_highest(self) -> bool:
        return self.bid_amount == self.current_highest_bid


@dataclass
class Recipient:
    """
    A customer and how they prefer to be reached.

    WhatsApp needs ``phone``; email needs ``email``. A missing contact
    detail fails that channel with a validation error.
    """
    name: str
    phone: Optional[str] = None
    country_code: str = "+91"
    email: Optional[str] = None
    preferred_channel: NotificationChannel = NotificationChannel.WHATSAPP
