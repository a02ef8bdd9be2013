import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from atelier.notifications.exceptions import EmailConfigurationException
from atelier.notifications.sender import AbstractEmailSender, LogOnlyEmailSender, SmtpEmailSender
from atelier.notifications.service import NotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_email_sender() -> AbstractEmailSender:
    try:
        return SmtpEmailSender()
    except EmailConfigurationException:
        logger.warning("SMTP non configuré: les notifications seront seulement journalisées.")
        return LogOnlyEmailSender()


def get_notification_service(
    email_sender: Annotated[AbstractEmailSender, Depends(get_email_sender)]
) -> NotificationService:
    return NotificationService(email_sender=email_sender)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
