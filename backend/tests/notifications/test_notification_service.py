import smtplib
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from atelier.notifications.dependencies import get_notification_service
from atelier.notifications.exceptions import EmailConfigurationException, EmailSendingException
from atelier.notifications.sender import LogOnlyEmailSender, SmtpEmailSender
from atelier.notifications.service import NotificationService


@pytest.fixture
def mock_email_sender():
    """Fixture pour un mock de l'email sender."""
    sender = AsyncMock()
    sender.send_email.return_value = True
    return sender


@pytest.fixture
def notification_service(mock_email_sender):
    return NotificationService(email_sender=mock_email_sender)


@pytest.fixture
def smtp_sender():
    return SmtpEmailSender(
        smtp_host="smtp.test.com",
        smtp_port=587,
        smtp_user="pedidos@atelier.co",
        smtp_password="test_password",
        default_sender="pedidos@atelier.co",
    )


@pytest.mark.asyncio
async def test_notify_order_status_renders_template(notification_service, mock_email_sender):
    result = await notification_service.notify_order_status(
        email="ana@example.com",
        order_number="ORD-250314-0001",
        status="PAID",
        message="Votre paiement a été confirmé.",
        customer_name="Ana <Compradora>",
        status_label="Paiement confirmé",
    )

    assert result is True
    mock_email_sender.send_email.assert_awaited_once()
    call_args = mock_email_sender.send_email.call_args.kwargs
    assert call_args["recipient_email"] == "ana@example.com"
    assert "ORD-250314-0001" in call_args["subject"]
    assert "Paiement confirmé" in call_args["subject"]
    assert "ORD-250314-0001" in call_args["html_content"]
    # Autoescape actif sur le HTML
    assert "Ana &lt;Compradora&gt;" in call_args["html_content"]


@pytest.mark.asyncio
async def test_notify_without_email_is_skipped(notification_service, mock_email_sender):
    result = await notification_service.notify_order_status(
        email=None, order_number="ORD-250314-0001", status="PENDING", message="En attente"
    )

    assert result is False
    mock_email_sender.send_email.assert_not_awaited()


@pytest.mark.asyncio
async def test_sending_failure_never_propagates(notification_service, mock_email_sender):
    mock_email_sender.send_email.side_effect = EmailSendingException("SMTP indisponible")

    result = await notification_service.notify_order_status(
        email="ana@example.com", order_number="ORD-250314-0001", status="SHIPPED", message="Expédiée"
    )

    assert result is False


def test_smtp_sender_requires_complete_configuration():
    with pytest.raises(EmailConfigurationException):
        SmtpEmailSender(smtp_host="", smtp_password=None)


@pytest.mark.asyncio
async def test_smtp_send_email_success(smtp_sender):
    with patch("smtplib.SMTP") as mock_smtp:
        mock_server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = mock_server

        result = await smtp_sender.send_email(
            recipient_email="ana@example.com", subject="Commande", html_content="<h1>Test</h1>"
        )

    assert result is True
    mock_server.starttls.assert_called_once()
    mock_server.login.assert_called_once_with("pedidos@atelier.co", "test_password")
    mock_server.sendmail.assert_called_once()
    assert mock_server.sendmail.call_args[0][1] == ["ana@example.com"]


@pytest.mark.asyncio
async def test_smtp_refused_recipient_returns_false(smtp_sender):
    with patch("smtplib.SMTP") as mock_smtp:
        mock_server = MagicMock()
        mock_server.sendmail.side_effect = smtplib.SMTPRecipientsRefused({"ana@example.com": (550, b"unknown")})
        mock_smtp.return_value.__enter__.return_value = mock_server

        result = await smtp_sender.send_email(
            recipient_email="ana@example.com", subject="Commande", html_content="<h1>Test</h1>"
        )

    assert result is False


@pytest.mark.asyncio
async def test_smtp_authentication_error_raises(smtp_sender):
    with patch("smtplib.SMTP") as mock_smtp:
        mock_server = MagicMock()
        mock_server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        mock_smtp.return_value.__enter__.return_value = mock_server

        with pytest.raises(EmailSendingException):
            await smtp_sender.send_email(
                recipient_email="ana@example.com", subject="Commande", html_content="<h1>Test</h1>"
            )


@pytest.mark.asyncio
async def test_log_only_sender_reports_not_sent():
    assert await LogOnlyEmailSender().send_email("ana@example.com", "Commande", "<p></p>") is False


def test_get_notification_service():
    sender = LogOnlyEmailSender()
    service = get_notification_service(email_sender=sender)

    assert isinstance(service, NotificationService)
    assert service.email_sender is sender
