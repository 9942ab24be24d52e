"""
Message Templates
=================
WhatsApp/SMS bodies and the email renditions of garage notifications.

Email renderers return ``(subject, text, html)``. Every interpolated value
is HTML-escaped in the html part.
"""

from html import escape
from typing import Optional, Tuple

from .models import (
    AppointmentConfirmation,
    AuctionBidUpdate,
    BidNotification,
    BidStatusUpdate,
    Price,
    ServiceProviderBooking,
    StatusUpdate,
)

BRAND = "Ronak Motor Garage"

STATUS_EMOJIS = {
    "confirmed": "✅",
    "in-progress": "🔄",
    "completed": "✅",
    "cancelled": "❌",
}


def format_price(amount: Price) -> str:
    return f"₹{amount:,.0f}"


def render_otp_message(code: str, expiry_minutes: int = 5) -> str:
    return f"Your Ronak Motor verification code is: {code}. Valid for {expiry_minutes} minutes."


def render_appointment_confirmation(data: AppointmentConfirmation) -> str:
    mechanic = f"\n👨‍🔧 *Mechanic:* {data.mechanic_name}" if data.mechanic_name else ""
    price = f"\n💰 *Total Cost:* {format_price(data.price)}" if data.price else ""

    return (
        "🎉 *Appointment Confirmed!*\n\n"
        f"Hi {data.customer_name}! Your service appointment has been confirmed.\n\n"
        "📋 *Booking Details:*\n"
        f"🆔 Booking ID: {data.booking_id}\n"
        f"🔧 Service: {data.service_name}\n"
        f"📅 Date & Time: {data.date_time}\n"
        f"📍 Location: {data.location}\n"
        f"🚗 Vehicle: {data.car_details}{mechanic}{price}\n\n"
        "We'll be ready to serve you! If you need to reschedule or have questions, "
        "please contact us.\n\n"
        f"*{BRAND}* - Your trusted automotive service center"
    )


def render_status_update(data: StatusUpdate) -> str:
    emoji = STATUS_EMOJIS.get(data.status, "📋")
    additional = f"\n\n{data.additional_info}" if data.additional_info else ""

    return (
        f"{emoji} *Service Update*\n\n"
        f"Hi {data.customer_name}!\n\n"
        "Your service appointment status has been updated:\n\n"
        f"🆔 *Booking ID:* {data.booking_id}\n"
        f"🔧 *Service:* {data.service_name}\n"
        f"📊 *Status:* {data.status.upper()}{additional}\n\n"
        f"Thank you for choosing *{BRAND}*!"
    )


def render_bid_notification(data: BidNotification) -> str:
    return (
        "🚗 *New Bid Placed!*\n\n"
        f"Hi {data.customer_name}!\n\n"
        "Great news! You've successfully placed a bid:\n\n"
        f"🆔 *Bid ID:* {data.bid_id}\n"
        f"🚗 *Vehicle:* {data.car_details}\n"
        f"💰 *Bid Amount:* {format_price(data.bid_amount)}\n\n"
        "We'll notify you about the auction status. Good luck!\n\n"
        f"*{BRAND}* - Quality cars, competitive prices"
    )


def render_welcome_message(customer_name: str) -> str:
    return (
        f"🎉 *Welcome to {BRAND}!*\n\n"
        f"Hi {customer_name}!\n\n"
        "Thank you for joining us! We're excited to serve your automotive needs.\n\n"
        "🔧 *Our Services:*\n"
        "• Professional car maintenance\n"
        "• Quality spare parts\n"
        "• Expert repairs\n"
        "• Car sales & auctions\n\n"
        "📱 You can now book services, place bids, and track your appointments easily.\n\n"
        "Need help? Just reply to this message!\n\n"
        f"*{BRAND}* - Your automotive partner"
    )


def render_service_provider_booking(data: ServiceProviderBooking) -> str:
    phone = f"\n📱 *Customer Phone:* {data.customer_phone}" if data.customer_phone else ""
    price = f"\n💰 *Service Cost:* {format_price(data.price)}" if data.price else ""

    return (
        "🔔 *New Service Booking Request!*\n\n"
        f"Hi {data.provider_name}!\n\n"
        "You have a new service booking request:\n\n"
        "📋 *Booking Details:*\n"
        f"🆔 Booking ID: {data.booking_id}\n"
        f"👤 Customer: {data.customer_name}\n"
        f"🔧 Service: {data.service_name}\n"
        f"📅 Date & Time: {data.date_time}\n"
        f"📍 Location: {data.location}\n"
        f"🚗 Vehicle: {data.car_details}{phone}{price}\n\n"
        "Please prepare for this service appointment. Contact the customer if you "
        "need any additional information.\n\n"
        f"*{BRAND}* - Service Excellence Team"
    )


def render_otp_email(code: str, expiry_minutes: int = 5) -> Tuple[str, str, str]:
    """
    Build the OTP email.

    Returns:
        Tuple of (subject, text, html)
    """
    subject = "Your Verification Code"
    text = render_otp_message(code, expiry_minutes)
    html = f"""<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
      <div style="background-color: #4CAF50; color: white; padding: 20px; text-align: center;">
        <h1>{BRAND}</h1>
      </div>
      <div style="background-color: #f9f9f9; padding: 30px; border-radius: 5px; margin-top: 20px;">
        <h2>Your Verification Code</h2>
        <p>Use the following code to complete your verification:</p>
        <div style="font-size: 32px; font-weight: bold; color: #4CAF50; text-align: center; letter-spacing: 5px;">{escape(code)}</div>
        <p><strong>This code will expire in {expiry_minutes} minutes.</strong></p>
        <p>If you didn't request this code, please ignore this email.</p>
      </div>
      <div style="text-align: center; margin-top: 20px; color: #777; font-size: 12px;">
        <p>{BRAND} - Your trusted automotive service center</p>
      </div>
    </div>
  </body>
</html>"""
    return subject, text, html


def render_fallback_email(subject_title: str, body: str) -> Tuple[str, str]:
    """
    Wrap a WhatsApp body for delivery by email.

    Returns:
        Tuple of (subject, html)
    """
    subject = f"{subject_title} - {BRAND}"
    paragraphs = "".join(
        f"<p>{escape(line)}</p>" for line in body.replace("*", "").split("\n") if line.strip()
    )
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"{paragraphs}</div>"
    )
    return subject, html


STATUS_EMAIL_MESSAGES = {
    "confirmed": "Your appointment has been confirmed",
    "in-progress": "Your vehicle service is now in progress",
    "completed": "Your vehicle service has been completed",
    "cancelled": "Your appointment has been cancelled",
}

EmailParts = Tuple[str, str, str]

_SIGN_OFF_TEXT = f"Best regards,\n{BRAND} Team"
_SIGN_OFF_HTML = (
    '<p style="margin-top: 30px;">Best regards,<br>'
    f"<strong>{BRAND} Team</strong></p>"
)


def _email_html(heading: str, body: str, heading_color: str = "#2c3e50") -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: {heading_color};">{escape(heading)}</h2>'
        f"{body}{_SIGN_OFF_HTML}</div>"
    )


def _detail_box(title: str, rows, background: str = "#f8f9fa") -> str:
    lines = "".join(
        f"<p><strong>{escape(label)}:</strong> {escape(str(value))}</p>"
        for label, value in rows
        if value
    )
    return (
        f'<div style="background-color: {background}; padding: 20px; '
        f'border-radius: 8px; margin: 20px 0;">'
        f'<h3 style="margin-top: 0;">{escape(title)}</h3>{lines}</div>'
    )


def _detail_text(rows) -> str:
    return "\n".join(f"{label}: {value}" for label, value in rows if value)


def render_appointment_confirmation_email(data: AppointmentConfirmation) -> EmailParts:
    subject = f"Appointment Confirmed - {data.service_name}"
    rows = [
        ("Booking ID", data.booking_id),
        ("Service", data.service_name),
        ("Date & Time", data.date_time),
        ("Location", data.location),
        ("Vehicle", data.car_details),
        ("Mechanic", data.mechanic_name),
        ("Estimated Price", format_price(data.price) if data.price else None),
    ]
    notice = (
        "Please arrive 10 minutes before your scheduled appointment time.\n"
        "If you need to reschedule or cancel, please contact us as soon as possible."
    )
    text = (
        f"{subject}\n\nHello {data.customer_name},\n\n"
        "Your appointment has been confirmed with the following details:\n\n"
        f"{_detail_text(rows)}\n\n{notice}\n\n{_SIGN_OFF_TEXT}"
    )
    html = _email_html(
        "Appointment Confirmed",
        f"<p>Hello {escape(data.customer_name)},</p>"
        "<p>Your appointment has been confirmed with the following details:</p>"
        + _detail_box("Appointment Details", rows)
        + "".join(f"<p>{escape(line)}</p>" for line in notice.split("\n")),
    )
    return subject, text, html


def render_status_update_email(data: StatusUpdate) -> EmailParts:
    subject = f"Appointment Update - {data.service_name}"
    status_message = STATUS_EMAIL_MESSAGES.get(
        data.status, f"Appointment status updated to: {data.status}"
    )
    rows = [
        ("Booking ID", data.booking_id),
        ("Service", data.service_name),
        ("Date & Time", data.date_time),
        ("Status", data.status.upper()),
        ("Vehicle", data.car_details),
        ("Mechanic", data.mechanic_name),
    ]
    thanks = ""
    if data.status == "completed":
        thanks = f"Thank you for choosing {BRAND}!"
    text = "\n\n".join(
        part for part in (
            f"{status_message}.",
            _detail_text(rows),
            data.additional_info,
            thanks,
            _SIGN_OFF_TEXT,
        ) if part
    )
    extra = f"<p>{escape(data.additional_info)}</p>" if data.additional_info else ""
    closing = (
        f'<p style="color: #28a745; font-weight: bold;">{escape(thanks)}</p>' if thanks else ""
    )
    html = _email_html(
        "Appointment Status Update",
        f"<p>Hello {escape(data.customer_name)},</p>"
        f"<p>{escape(status_message)}.</p>"
        + _detail_box("Appointment Details", rows)
        + extra
        + closing,
    )
    return subject, text, html


def render_appointment_reminder_email(data: AppointmentConfirmation) -> EmailParts:
    """Reminder sent the day before an appointment."""
    subject = f"Reminder: Appointment Tomorrow - {data.service_name}"
    rows = [
        ("Service", data.service_name),
        ("Date & Time", data.date_time),
        ("Location", data.location),
        ("Vehicle", data.car_details),
    ]
    text = (
        f"{subject}\n\nHello {data.customer_name},\n\n{_detail_text(rows)}\n\n"
        f"Please arrive 10 minutes before your scheduled time.\n\n{_SIGN_OFF_TEXT}"
    )
    html = _email_html(
        "Appointment Reminder",
        f"<p>Hello {escape(data.customer_name)},</p>"
        "<p>This is a friendly reminder about your appointment tomorrow:</p>"
        + _detail_box("Tomorrow's Appointment", rows, background="#fff3cd")
        + "<p><strong>Reminder:</strong> Please arrive 10 minutes before your scheduled time.</p>"
        "<p>If you need to reschedule or cancel, please contact us immediately.</p>",
        heading_color="#e67e22",
    )
    return subject, text, html


def render_auction_bid_email(data: AuctionBidUpdate) -> EmailParts:
    """Highest-bidder or outbid notice for a running auction."""
    subject = f"Bid Update - {data.car_name}"
    bid = format_price(data.bid_amount)
    highest = format_price(data.current_highest_bid)
    if data.is_highest:
        summary = f"You're the highest bidder with {bid}!"
        box = _detail_box(
            "You're the Highest Bidder!",
            [("Vehicle", data.car_name), ("Your Bid", bid)],
            background="#d4edda",
        )
    else:
        summary = f"You've been outbid. Current highest: {highest}"
        box = _detail_box(
            "You've Been Outbid",
            [("Vehicle", data.car_name), ("Current highest bid", highest), ("Your Bid", bid)],
            background="#f8d7da",
        )
    text = f"Auction Bid Update - {data.car_name}\n\n{summary}\n\n{_SIGN_OFF_TEXT}"
    html = _email_html(
        "Auction Bid Update",
        f"<p>Hello {escape(data.customer_name)},</p>"
        + box
        + "<p>Visit our auction page to place a new bid or monitor the auction progress.</p>",
    )
    return subject, text, html


def render_bid_status_message(data: BidStatusUpdate) -> str:
    amount = format_price(data.bid_amount)
    if data.accepted:
        return (
            f"Good news! Your bid of {amount} on {data.car_details} has been accepted. "
            "We will contact you soon with next steps."
        )
    return (
        f"Your bid of {amount} on {data.car_details} was not accepted. "
        "Thank you for your interest."
    )


def render_bid_status_email(data: BidStatusUpdate) -> EmailParts:
    title = "Bid Accepted" if data.accepted else "Bid Update"
    subject = f"{title} - {data.car_details}"
    text = render_bid_status_message(data)
    rows = [
        ("Vehicle", data.car_details),
        ("Your Bid", format_price(data.bid_amount)),
        ("Status", "accepted" if data.accepted else "rejected"),
    ]
    html = _email_html(title, f"<p>{escape(text)}</p>" + _detail_box("Bid Details", rows))
    return subject, f"{text}\n\n{_SIGN_OFF_TEXT}", html


def render_promotional_email(
    customer_name: str, message: str, subject: Optional[str] = None
) -> EmailParts:
    subject = subject or f"Special Offer from {BRAND}"
    text = f"Hello {customer_name},\n\n{message}\n\n{_SIGN_OFF_TEXT}"
    paragraphs = "".join(f"<p>{escape(line)}</p>" for line in message.split("\n") if line.strip())
    html = _email_html(
        subject,
        f"<p>Hello {escape(customer_name)},</p>"
        '<div style="background-color: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        f"{paragraphs}</div>",
    )
    return subject, text, html
