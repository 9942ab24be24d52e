"""
Tests for the channel adapters, templates and the notification dispatcher.
"""

import json
from urllib.parse import parse_qs

import pytest


def _twilio_settings(**overrides):
    from garage_comms.config import TwilioSettings

    values = dict(
        account_sid="AC00000000000000000000000000000000",
        auth_token="test-token",
        whatsapp_from="+14155238886",
        sms_from="+14155550100",
    )
    values.update(overrides)
    return TwilioSettings(**values)


def _sendgrid_settings(**overrides):
    from garage_comms.config import SendGridSettings

    values = dict(api_key="SG.test-key", from_email="noreply@ronakmotorgarage.com")
    values.update(overrides)
    return SendGridSettings(**values)


async def _no_sleep(seconds):
    return None


class TestWhatsAppAdapter:
    """Tests for Twilio WhatsApp delivery."""

    @pytest.mark.asyncio
    async def test_posts_prefixed_numbers(self):
        import httpx
        from garage_comms.channels import OutboundMessage, WhatsAppAdapter

        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, json={"sid": "SM123", "status": "queued"})

        adapter = WhatsAppAdapter(_twilio_settings(), transport=httpx.MockTransport(handler))
        result = await adapter.send(OutboundMessage(to="+919876543210", body="Your car is ready"))
        await adapter.aclose()

        assert result.success is True
        assert result.metadata.message_sid == "SM123"

        request = requests[0]
        assert request.url.path == "/2010-04-01/Accounts/AC00000000000000000000000000000000/Messages.json"
        assert request.headers["authorization"].startswith("Basic ")
        form = parse_qs(request.content.decode())
        assert form["From"] == ["whatsapp:+14155238886"]
        assert form["To"] == ["whatsapp:+919876543210"]
        assert form["Body"] == ["Your car is ready"]

    @pytest.mark.asyncio
    async def test_send_to_formats_national_number(self):
        import httpx
        from garage_comms.channels import WhatsAppAdapter

        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, json={"sid": "SM1"})

        adapter = WhatsAppAdapter(_twilio_settings(), transport=httpx.MockTransport(handler))
        result = await adapter.send_to("07911123456", "+44", "hello")
        await adapter.aclose()

        assert result.success is True
        assert parse_qs(requests[0].content.decode())["To"] == ["whatsapp:+447911123456"]

    @pytest.mark.asyncio
    async def test_provider_error_is_classified(self):
        import httpx
        from garage_comms.channels import OutboundMessage, WhatsAppAdapter
        from garage_comms.communication import ErrorType

        def handler(request):
            return httpx.Response(400, json={"code": 63016, "message": "Outside the allowed window"})

        adapter = WhatsAppAdapter(_twilio_settings(), transport=httpx.MockTransport(handler))
        result = await adapter.send(OutboundMessage(to="+919876543210", body="hi"))
        await adapter.aclose()

        assert result.success is False
        assert result.error_code == "63016"
        assert result.error_type == ErrorType.POLICY_VIOLATION
        assert result.retryable is False
        assert result.metadata.status_code == 400

    @pytest.mark.asyncio
    async def test_development_mode_without_credentials(self):
        import httpx
        from garage_comms.channels import OutboundMessage, WhatsAppAdapter

        def handler(request):
            raise AssertionError("development mode must not call the provider")

        adapter = WhatsAppAdapter(
            _twilio_settings(account_sid=None, auth_token=None),
            transport=httpx.MockTransport(handler),
        )
        result = await adapter.send(OutboundMessage(to="+919876543210", body="hi"))

        assert result.success is True
        assert result.metadata.development_mode is True
        assert result.metadata.message_sid.startswith("mock_")

    def test_production_requires_credentials(self):
        from garage_comms.channels import WhatsAppAdapter
        from garage_comms.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError):
            WhatsAppAdapter(_twilio_settings(auth_token=None), production=True)

    @pytest.mark.asyncio
    async def test_empty_body_rejected(self):
        from garage_comms.channels import OutboundMessage, WhatsAppAdapter
        from garage_comms.communication import ErrorType

        adapter = WhatsAppAdapter(_twilio_settings())
        result = await adapter.send(OutboundMessage(to="+919876543210", body=""))

        assert result.error_type == ErrorType.VALIDATION
        assert result.message == "Message body is required"


class TestSMSAdapter:
    """Tests for Twilio SMS delivery."""

    @pytest.mark.asyncio
    async def test_posts_plain_numbers(self):
        import httpx
        from garage_comms.channels import OutboundMessage, SMSAdapter

        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, json={"sid": "SM9"})

        adapter = SMSAdapter(_twilio_settings(), transport=httpx.MockTransport(handler))
        result = await adapter.send(OutboundMessage(to="+919876543210", body="hi"))
        await adapter.aclose()

        assert result.success is True
        form = parse_qs(requests[0].content.decode())
        assert form["From"] == ["+14155550100"]
        assert form["To"] == ["+919876543210"]

    @pytest.mark.asyncio
    async def test_missing_sender_is_unavailable(self):
        from garage_comms.channels import OutboundMessage, SMSAdapter
        from garage_comms.communication import ErrorType

        adapter = SMSAdapter(_twilio_settings(sms_from=None))

        assert adapter.available is False
        result = await adapter.send(OutboundMessage(to="+919876543210", body="hi"))
        assert result.error_type == ErrorType.SERVICE_UNAVAILABLE
        assert result.retryable is False

    def test_twilio_base_requires_sender(self):
        from garage_comms.channels.twilio import TwilioChannelAdapter

        with pytest.raises(TypeError):
            TwilioChannelAdapter(_twilio_settings())


class TestEmailAdapter:
    """Tests for SendGrid delivery."""

    @pytest.mark.asyncio
    async def test_accepted(self):
        import httpx
        from garage_comms.channels import EmailAdapter

        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(202, headers={"x-message-id": "msg-42"})

        adapter = EmailAdapter(_sendgrid_settings(), transport=httpx.MockTransport(handler))
        result = await adapter.send_email(
            "customer@example.com", "Booking confirmed", "See you soon", "<p>See you soon</p>"
        )
        await adapter.aclose()

        assert result.success is True
        assert result.metadata.email_id == "msg-42"
        assert result.metadata.status_code == 202

        request = requests[0]
        assert request.url.path == "/v3/mail/send"
        assert request.headers["authorization"] == "Bearer SG.test-key"
        payload = json.loads(request.content)
        assert payload["personalizations"] == [{"to": [{"email": "customer@example.com"}]}]
        assert payload["from"] == {"email": "noreply@ronakmotorgarage.com"}
        assert [c["type"] for c in payload["content"]] == ["text/plain", "text/html"]

    @pytest.mark.asyncio
    async def test_rejected_request(self):
        import httpx
        from garage_comms.channels import EmailAdapter
        from garage_comms.communication import ErrorType

        def handler(request):
            return httpx.Response(
                400,
                json={"errors": [{"message": "Invalid from address", "field": "from", "help": None}]},
            )

        adapter = EmailAdapter(_sendgrid_settings(), transport=httpx.MockTransport(handler))
        result = await adapter.send_email("customer@example.com", "Hello", "text")
        await adapter.aclose()

        assert result.success is False
        assert result.error_code == "400"
        assert result.error_type == ErrorType.VALIDATION
        assert result.retryable is False
        assert "Invalid from address" in result.message

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(self):
        import httpx
        from garage_comms.channels import EmailAdapter
        from garage_comms.communication import ErrorType

        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        adapter = EmailAdapter(_sendgrid_settings(), transport=httpx.MockTransport(handler))
        result = await adapter.send_email("customer@example.com", "Hello", "text")
        await adapter.aclose()

        assert result.error_type == ErrorType.SERVICE_UNAVAILABLE
        assert result.retryable is True

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        from garage_comms.channels import EmailAdapter
        from garage_comms.communication import ErrorType

        adapter = EmailAdapter(_sendgrid_settings(api_key=None))
        result = await adapter.send_email("customer@example.com", "Hello", "text")

        assert result.success is False
        assert result.message == "Email service not configured"
        assert result.error_type == ErrorType.SERVICE_UNAVAILABLE
        assert result.retryable is False

    @pytest.mark.asyncio
    async def test_invalid_recipient(self):
        from garage_comms.channels import EmailAdapter
        from garage_comms.communication import ErrorType

        adapter = EmailAdapter(_sendgrid_settings())
        result = await adapter.send_email("not-an-email", "Hello", "text")

        assert result.error_type == ErrorType.VALIDATION
        assert result.message == "Invalid recipient email format"

    def test_sanitize_sendgrid_error(self):
        from garage_comms.channels import sanitize_sendgrid_error

        body = {
            "errors": [{"message": "Bad", "field": "to", "email": "customer@example.com"}],
            "personalizations": [{"to": [{"email": "customer@example.com"}]}],
        }

        assert sanitize_sendgrid_error(body) == {"errors": [{"message": "Bad", "field": "to"}]}
        assert sanitize_sendgrid_error("oops") == {"error_id": "unknown"}


class TestTemplates:
    """Tests for the message templates."""

    def test_otp_message(self):
        from garage_comms.channels import templates

        assert (
            templates.render_otp_message("123456", 5)
            == "Your Ronak Motor verification code is: 123456. Valid for 5 minutes."
        )

    def test_appointment_confirmation_optional_lines(self):
        from garage_comms.channels import AppointmentConfirmation, templates

        data = AppointmentConfirmation(
            customer_name="Asha",
            booking_id="BK-1",
            service_name="Oil change",
            date_time="15 Jan, 10:00",
            location="Main workshop",
            car_details="Maruti Swift",
            price=2500,
        )
        text = templates.render_appointment_confirmation(data)

        assert "Hi Asha!" in text
        assert "₹2,500" in text
        assert "Mechanic" not in text

    def test_status_update_emoji(self):
        from garage_comms.channels import StatusUpdate, templates

        text = templates.render_status_update(
            StatusUpdate("Asha", "BK-1", "Oil change", "in-progress")
        )

        assert text.startswith("🔄")
        assert "IN-PROGRESS" in text

    def test_fallback_email_escapes_body(self):
        from garage_comms.channels import templates

        subject, html = templates.render_fallback_email("Welcome", "*Hi* <Asha>\n\nThanks")

        assert subject == "Welcome - Ronak Motor Garage"
        assert "<p>Hi &lt;Asha&gt;</p>" in html
        assert "<p>Thanks</p>" in html
        assert "*" not in html


class TestNotificationDispatcher:
    """Tests for caller level retry and fallback."""

    def _dispatcher(self, recording_adapter, whatsapp_outcomes=(), sms_outcomes=(), email_outcomes=(), **kwargs):
        from garage_comms.channels import NotificationDispatcher
        from garage_comms.communication import ServiceType
        from garage_comms.config import FallbackSettings, RetryConfig

        whatsapp = recording_adapter(outcomes=whatsapp_outcomes)
        sms = recording_adapter(service=ServiceType.SMS, outcomes=sms_outcomes, available=kwargs.pop("sms_available", True))
        email = recording_adapter(service=ServiceType.EMAIL, outcomes=email_outcomes)
        dispatcher = NotificationDispatcher(
            whatsapp=whatsapp,
            sms=sms,
            email=email,
            whatsapp_retry=RetryConfig(max_retries=2),
            sms_retry=RetryConfig(max_retries=0),
            email_retry=RetryConfig(max_retries=0),
            fallback=kwargs.pop("fallback", FallbackSettings(sms_enabled=True, email_enabled=True)),
            sleep=_no_sleep,
        )
        return dispatcher, whatsapp, sms, email

    @staticmethod
    def _failure(service, error_type, retryable, **metadata):
        from garage_comms.communication import failure_result

        return failure_result(service, f"{service.value} failed", error_type=error_type, retryable=retryable, **metadata)

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self, recording_adapter):
        from garage_comms.communication import ErrorType, ServiceType

        failure = self._failure(ServiceType.WHATSAPP, ErrorType.SERVICE_UNAVAILABLE, True)
        dispatcher, whatsapp, sms, _ = self._dispatcher(recording_adapter, [failure, failure])

        result = await dispatcher.send_welcome_message("9876543210", "+91", "Asha")

        assert result.success is True
        assert result.retry_count == 2
        assert result.total_attempts == 3
        assert len(whatsapp.sent) == 3
        assert sms.sent == []
        assert result.metadata.fallback_used is None

    @pytest.mark.asyncio
    async def test_backoff_delays(self, recording_adapter):
        from garage_comms.channels import NotificationDispatcher, OutboundMessage
        from garage_comms.communication import ErrorType, ServiceType
        from garage_comms.config import RetryConfig

        delays = []

        async def record_sleep(seconds):
            delays.append(seconds)

        failure = self._failure(ServiceType.WHATSAPP, ErrorType.NETWORK, True)
        whatsapp = recording_adapter(outcomes=[failure] * 4)
        dispatcher = NotificationDispatcher(whatsapp=whatsapp, sleep=record_sleep)

        result = await dispatcher.deliver(
            whatsapp,
            OutboundMessage(to="+919876543210", body="hi"),
            RetryConfig(initial_delay=1.0, max_delay=3.0, max_retries=3, backoff_multiplier=2.0),
        )

        assert result.success is False
        assert result.total_attempts == 4
        assert delays == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_no_retry_for_permanent_failure(self, recording_adapter):
        from garage_comms.communication import ErrorType, ServiceType
        from garage_comms.config import FallbackSettings

        failure = self._failure(ServiceType.WHATSAPP, ErrorType.VALIDATION, False)
        dispatcher, whatsapp, sms, email = self._dispatcher(
            recording_adapter, [failure], fallback=FallbackSettings(sms_enabled=False, email_enabled=False)
        )

        result = await dispatcher.send_welcome_message("9876543210", "+91", "Asha", "asha@example.com")

        assert result.success is False
        assert result.total_attempts == 1
        assert result.metadata.final_failure is True
        assert result.metadata.fallback_attempted is False
        assert sms.sent == [] and email.sent == []

    @pytest.mark.asyncio
    async def test_open_circuit_not_retried(self, recording_adapter):
        from garage_comms.communication import ErrorType, ServiceType
        from garage_comms.config import FallbackSettings

        failure = self._failure(
            ServiceType.WHATSAPP, ErrorType.SERVICE_UNAVAILABLE, True, circuit_breaker_open=True
        )
        dispatcher, whatsapp, _, _ = self._dispatcher(
            recording_adapter, [failure], fallback=FallbackSettings(sms_enabled=False, email_enabled=False)
        )

        result = await dispatcher.send_welcome_message("9876543210", "+91", "Asha")

        assert result.total_attempts == 1
        assert result.circuit_open is True

    @pytest.mark.asyncio
    async def test_falls_back_to_sms(self, recording_adapter):
        from garage_comms.communication import ErrorType, ServiceType

        failure = self._failure(ServiceType.WHATSAPP, ErrorType.POLICY_VIOLATION, False)
        dispatcher, whatsapp, sms, email = self._dispatcher(recording_adapter, [failure])

        result = await dispatcher.send_welcome_message("9876543210", "+91", "Asha", "asha@example.com")

        assert result.success is True
        assert result.service == ServiceType.SMS
        assert result.metadata.fallback_used == "sms"
        assert result.metadata.original_error == "whatsapp failed"
        assert sms.sent[0].to == "+919876543210"
        assert email.sent == []

    @pytest.mark.asyncio
    async def test_falls_back_to_email(self, recording_adapter):
        from garage_comms.communication import ErrorType, ServiceType

        failure = self._failure(ServiceType.WHATSAPP, ErrorType.POLICY_VIOLATION, False)
        dispatcher, _, sms, email = self._dispatcher(recording_adapter, [failure], sms_available=False)

        result = await dispatcher.send_welcome_message("9876543210", "+91", "Asha", "asha@example.com")

        assert result.success is True
        assert result.metadata.fallback_used == "email"
        assert sms.sent == []
        message = email.sent[0]
        assert message.to == "asha@example.com"
        assert message.subject == "Welcome - Ronak Motor Garage"
        assert "Hi Asha!" in message.html

    @pytest.mark.asyncio
    async def test_every_channel_fails(self, recording_adapter):
        from garage_comms.communication import ErrorType, ServiceType

        dispatcher, _, sms, email = self._dispatcher(
            recording_adapter,
            [self._failure(ServiceType.WHATSAPP, ErrorType.POLICY_VIOLATION, False)],
            [self._failure(ServiceType.SMS, ErrorType.VALIDATION, False)],
            [self._failure(ServiceType.EMAIL, ErrorType.AUTHENTICATION, False)],
        )

        result = await dispatcher.send_welcome_message("9876543210", "+91", "Asha", "asha@example.com")

        assert result.success is False
        assert result.service == ServiceType.WHATSAPP
        assert result.message == "whatsapp failed"
        assert result.metadata.final_failure is True
        assert result.metadata.fallback_attempted is True
        assert len(sms.sent) == 1 and len(email.sent) == 1

    @pytest.mark.asyncio
    async def test_invalid_number_skips_phone_channels(self, recording_adapter):
        from garage_comms.communication import ErrorType

        dispatcher, whatsapp, sms, email = self._dispatcher(recording_adapter)

        result = await dispatcher.send_welcome_message("123", "+91", "Asha", "asha@example.com")

        assert whatsapp.sent == [] and sms.sent == []
        assert result.metadata.fallback_used == "email"
        assert result.metadata.original_error

        result = await dispatcher.send_welcome_message("123", "+91", "Asha")
        assert result.error_type == ErrorType.VALIDATION
        assert result.metadata.final_failure is True

    @pytest.mark.asyncio
    async def test_from_settings_in_development(self):
        import httpx
        from garage_comms.channels import NotificationDispatcher
        from garage_comms.circuit_breaker import BreakerRegistry
        from garage_comms.config import Settings

        def handler(request):
            raise AssertionError("development mode must not call the provider")

        settings = Settings(
            environment="development",
            twilio=_twilio_settings(account_sid=None, auth_token=None),
            sendgrid=_sendgrid_settings(api_key=None),
        )
        registry = BreakerRegistry()
        dispatcher = NotificationDispatcher.from_settings(
            settings, registry, transport=httpx.MockTransport(handler)
        )

        result = await dispatcher.send_welcome_message("9876543210", "+91", "Asha")
        await dispatcher.aclose()

        assert result.success is True
        assert result.metadata.development_mode is True
        assert "whatsapp" in registry
        assert dispatcher.email.available is False

    def test_message_type_is_keyword_only(self, recording_adapter):
        from garage_comms.channels import MessageType

        dispatcher, *_ = self._dispatcher(recording_adapter)

        with pytest.raises(TypeError):
            dispatcher.send_whatsapp("9876543210", "+91", "hi", MessageType.WELCOME)

    @pytest.mark.asyncio
    async def test_email_fallback_uses_given_rendition(self, recording_adapter):
        from garage_comms.channels import MessageType
        from garage_comms.communication import ErrorType, ServiceType

        failure = self._failure(ServiceType.WHATSAPP, ErrorType.POLICY_VIOLATION, False)
        dispatcher, _, _, email = self._dispatcher(recording_adapter, [failure], sms_available=False)

        result = await dispatcher.send_whatsapp(
            "9876543210",
            "+91",
            "*Service due*",
            message_type=MessageType.PROMOTIONAL,
            fallback_email="asha@example.com",
            email_subject="Service due",
            email_text="Your car is due for a service",
        )

        assert result.metadata.fallback_used == "email"
        message = email.sent[0]
        assert message.subject == "Service due"
        assert message.body == "Your car is due for a service"
        assert message.html is None

    @pytest.mark.asyncio
    async def test_appointment_fallback_email_is_dedicated(self, recording_adapter):
        from garage_comms.channels import AppointmentConfirmation
        from garage_comms.communication import ErrorType, ServiceType

        failure = self._failure(ServiceType.WHATSAPP, ErrorType.POLICY_VIOLATION, False)
        dispatcher, _, _, email = self._dispatcher(recording_adapter, [failure], sms_available=False)
        data = AppointmentConfirmation(
            customer_name="Asha",
            booking_id="BK-1",
            service_name="Oil change",
            date_time="15 Jan, 10:00",
            location="Main workshop",
            car_details="Maruti Swift",
        )

        result = await dispatcher.send_appointment_confirmation("9876543210", "+91", data, "asha@example.com")

        assert result.success is True
        assert email.sent[0].subject == "Appointment Confirmed - Oil change"
        assert "Booking ID: BK-1" in email.sent[0].body

    @pytest.mark.asyncio
    async def test_preferred_whatsapp_delivered(self, recording_adapter):
        from garage_comms.channels import Recipient

        dispatcher, whatsapp, _, email = self._dispatcher(recording_adapter)
        recipient = Recipient(name="Asha", phone="9876543210", email="asha@example.com")

        result = await dispatcher.send_promotional_message(recipient, "20% off brake pads")

        assert result.success is True
        assert result.metadata.channel_used == "whatsapp"
        assert result.metadata.fallback_used is None
        assert whatsapp.sent[0].to == "+919876543210"
        assert whatsapp.sent[0].body == "20% off brake pads"
        assert email.sent == []

    @pytest.mark.asyncio
    async def test_preferred_email_delivered(self, recording_adapter):
        from garage_comms.channels import NotificationChannel, Recipient

        dispatcher, whatsapp, _, email = self._dispatcher(recording_adapter)
        recipient = Recipient(
            name="Asha",
            phone="9876543210",
            email="asha@example.com",
            preferred_channel=NotificationChannel.EMAIL,
        )

        result = await dispatcher.send_promotional_message(recipient, "20% off brake pads")

        assert result.metadata.channel_used == "email"
        assert whatsapp.sent == []
        message = email.sent[0]
        assert message.subject == "Special Offer from Ronak Motor Garage"
        assert "Hello Asha," in message.body
        assert "20% off brake pads" in message.html

    @pytest.mark.asyncio
    async def test_preferred_channel_falls_back_to_alternate(self, recording_adapter):
        from garage_comms.channels import Recipient, StatusUpdate
        from garage_comms.communication import ErrorType, ServiceType

        failure = self._failure(ServiceType.WHATSAPP, ErrorType.POLICY_VIOLATION, False)
        dispatcher, _, sms, email = self._dispatcher(recording_adapter, [failure])
        recipient = Recipient(name="Asha", phone="9876543210", email="asha@example.com")

        result = await dispatcher.notify_status_update(
            recipient, StatusUpdate("Asha", "BK-1", "Oil change", "completed")
        )

        assert result.success is True
        assert result.service == ServiceType.EMAIL
        assert result.metadata.channel_used == "email"
        assert result.metadata.fallback_used == "email"
        assert result.metadata.original_error == "whatsapp failed"
        assert email.sent[0].subject == "Appointment Update - Oil change"
        assert sms.sent == []

    @pytest.mark.asyncio
    async def test_missing_contact_detail_moves_to_alternate(self, recording_adapter):
        from garage_comms.channels import BidStatusUpdate, NotificationChannel, Recipient

        dispatcher, whatsapp, _, email = self._dispatcher(recording_adapter)
        recipient = Recipient(
            name="Asha", phone="9876543210", preferred_channel=NotificationChannel.EMAIL
        )

        result = await dispatcher.send_bid_status_update(
            recipient, BidStatusUpdate("BID-7", "Maruti Swift", 450000, accepted=True)
        )

        assert result.metadata.channel_used == "whatsapp"
        assert result.metadata.original_error == "Recipient missing email address"
        assert whatsapp.sent[0].body.startswith("Good news! Your bid of ₹450,000 on Maruti Swift")
        assert email.sent == []

    @pytest.mark.asyncio
    async def test_both_preferred_channels_fail(self, recording_adapter):
        from garage_comms.channels import Recipient
        from garage_comms.communication import ErrorType, ServiceType

        email_failure = self._failure(ServiceType.EMAIL, ErrorType.VALIDATION, False)
        dispatcher, whatsapp, _, _ = self._dispatcher(recording_adapter, email_outcomes=[email_failure])
        recipient = Recipient(name="Asha", email="asha@example.com")

        result = await dispatcher.send_promotional_message(recipient, "Monsoon check-up offer")

        assert result.success is False
        assert result.service == ServiceType.EMAIL
        assert result.message == "Failed to send via both whatsapp and email"
        assert result.metadata.original_error == "Recipient missing phone number"
        assert result.metadata.final_failure is True
        assert whatsapp.sent == []

    @pytest.mark.asyncio
    async def test_email_only_senders(self, recording_adapter):
        from garage_comms.channels import AppointmentConfirmation, AuctionBidUpdate

        dispatcher, whatsapp, _, email = self._dispatcher(recording_adapter)
        data = AppointmentConfirmation(
            customer_name="Asha",
            booking_id="BK-1",
            service_name="Oil change",
            date_time="16 Jan, 10:00",
            location="Main workshop",
            car_details="Maruti Swift",
        )

        await dispatcher.send_appointment_reminder("asha@example.com", data)
        await dispatcher.send_auction_bid_update(
            "asha@example.com", AuctionBidUpdate("Asha", "Honda City", 500000, 550000)
        )

        assert [m.subject for m in email.sent] == [
            "Reminder: Appointment Tomorrow - Oil change",
            "Bid Update - Honda City",
        ]
        assert whatsapp.sent == []


class TestEmailTemplates:
    """Tests for the email renditions of notifications."""

    def test_appointment_confirmation_email(self):
        from garage_comms.channels import AppointmentConfirmation, templates

        subject, text, html = templates.render_appointment_confirmation_email(
            AppointmentConfirmation(
                customer_name="<Asha>",
                booking_id="BK-1",
                service_name="Oil change",
                date_time="15 Jan, 10:00",
                location="Main workshop",
                car_details="Maruti Swift",
                price=2500,
            )
        )

        assert subject == "Appointment Confirmed - Oil change"
        assert "Estimated Price: ₹2,500" in text
        assert "Mechanic" not in text
        assert "Hello <Asha>," in text
        assert "&lt;Asha&gt;" in html
        assert "<Asha>" not in html

    def test_status_update_email(self):
        from garage_comms.channels import StatusUpdate, templates

        subject, text, html = templates.render_status_update_email(
            StatusUpdate("Asha", "BK-1", "Oil change", "in-progress", car_details="Maruti Swift")
        )

        assert subject == "Appointment Update - Oil change"
        assert text.startswith("Your vehicle service is now in progress.")
        assert "Status: IN-PROGRESS" in text
        assert "Vehicle: Maruti Swift" in text
        assert "Thank you for choosing" not in text

    def test_unknown_status_email(self):
        from garage_comms.channels import StatusUpdate, templates

        _, text, _ = templates.render_status_update_email(
            StatusUpdate("Asha", "BK-1", "Oil change", "awaiting-parts")
        )

        assert text.startswith("Appointment status updated to: awaiting-parts.")

    def test_auction_bid_email(self):
        from garage_comms.channels import AuctionBidUpdate, templates

        _, highest, _ = templates.render_auction_bid_email(
            AuctionBidUpdate("Asha", "Honda City", 550000, 550000)
        )
        _, outbid, _ = templates.render_auction_bid_email(
            AuctionBidUpdate("Asha", "Honda City", 500000, 550000)
        )

        assert "You're the highest bidder with ₹550,000!" in highest
        assert "You've been outbid. Current highest: ₹550,000" in outbid

    def test_bid_status_email(self):
        from garage_comms.channels import BidStatusUpdate, templates

        rejected = BidStatusUpdate("BID-7", "Maruti Swift", 450000, accepted=False)
        subject, text, _ = templates.render_bid_status_email(rejected)

        assert subject == "Bid Update - Maruti Swift"
        assert text.startswith("Your bid of ₹450,000 on Maruti Swift was not accepted.")

        accepted = BidStatusUpdate("BID-7", "Maruti Swift", 450000, accepted=True)
        assert templates.render_bid_status_email(accepted)[0] == "Bid Accepted - Maruti Swift"

    def test_promotional_email_subject(self):
        from garage_comms.channels import templates

        assert templates.render_promotional_email("Asha", "Offer")[0] == (
            "Special Offer from Ronak Motor Garage"
        )
        assert templates.render_promotional_email("Asha", "Offer", "Monsoon deal")[0] == "Monsoon deal"
