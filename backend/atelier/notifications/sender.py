import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from atelier.config import settings
from atelier.notifications.exceptions import EmailConfigurationException, EmailSendingException

logger = logging.getLogger(__name__)


class AbstractEmailSender(ABC):
    """Interface abstraite pour un service d'envoi d'e-mails."""

    @abstractmethod
    async def send_email(self, recipient_email: str, subject: str, html_content: str) -> bool:
        """Envoie un email HTML.

        Returns:
            True si l'envoi a réussi, False si le destinataire a été refusé.

        Raises:
            EmailSendingException: Si une erreur majeure empêche l'envoi.
        """
        raise NotImplementedError


class SmtpEmailSender(AbstractEmailSender):
    """Implémentation de l'envoi d'email via SMTP (STARTTLS)."""

    def __init__(self,
                 smtp_host: str = settings.SMTP_HOST,
                 smtp_port: int = settings.SMTP_PORT,
                 smtp_user: Optional[str] = settings.SENDER_EMAIL,
                 smtp_password: Optional[str] = settings.SENDER_PASSWORD,
                 default_sender: Optional[str] = settings.SENDER_EMAIL,
                 timeout: float = 15.0):
        if not all([smtp_host, smtp_port, smtp_user, smtp_password, default_sender]):
            logger.error("[SmtpEmailSender] Configuration SMTP incomplète.")
            raise EmailConfigurationException("Configuration SMTP (host, port, user, password, sender) incomplète.")

        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.default_sender = default_sender
        self.timeout = timeout
        logger.info(f"[SmtpEmailSender] Initialisé pour {smtp_host}:{smtp_port}")

    def _send_sync(self, msg: MIMEMultipart, recipient_email: str) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.sendmail(self.default_sender, [recipient_email], msg.as_string())

    async def send_email(self, recipient_email: str, subject: str, html_content: str) -> bool:
        msg = MIMEMultipart("related")
        msg["From"] = self.default_sender
        msg["To"] = recipient_email
        msg["Subject"] = subject
        msg.attach(MIMEText(html_content, "html"))

        try:
            logger.info(f"[SmtpEmailSender] Envoi de l'email à {recipient_email} (Sujet: {subject})")
            # smtplib est bloquant: exécuté hors de la boucle d'événements
            await asyncio.to_thread(self._send_sync, msg, recipient_email)
            logger.info(f"[SmtpEmailSender] Email envoyé avec succès à {recipient_email}")
            return True
        except smtplib.SMTPRecipientsRefused as e:
            logger.error(f"[SmtpEmailSender] Destinataire refusé: {recipient_email}. Détails: {e.recipients}")
            return False
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"[SmtpEmailSender] Échec authentification SMTP: {e}", exc_info=True)
            raise EmailSendingException("Échec authentification SMTP.", original_exception=e)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"[SmtpEmailSender] Erreur SMTP lors de l'envoi à {recipient_email}: {e}", exc_info=True)
            raise EmailSendingException(f"Erreur SMTP: {e}", original_exception=e)


class LogOnlyEmailSender(AbstractEmailSender):
    """Expéditeur de repli quand SMTP n'est pas configuré: l'email est seulement journalisé."""

    async def send_email(self, recipient_email: str, subject: str, html_content: str) -> bool:
        logger.info(f"[LogOnlyEmailSender] Email non envoyé (SMTP non configuré) à {recipient_email}: {subject}")
        return False
