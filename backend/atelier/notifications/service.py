import logging
from pathlib import Path
from typing import Optional

import jinja2

from atelier.config import settings
from atelier.notifications.sender import AbstractEmailSender

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=jinja2.select_autoescape(["html", "xml"]),
)


class NotificationService:
    """Notifications acheteur sur le cycle de vie des commandes.

    Les envois sont « fire-and-forget »: une erreur est journalisée et ne remonte
    jamais à l'appelant, la transition de commande étant déjà validée.
    """

    def __init__(self, email_sender: AbstractEmailSender):
        self.email_sender = email_sender

    def _render_template(self, template_name: str, context: dict) -> str:
        template = env.get_template(template_name)
        return template.render(context)

    async def notify_order_status(
        self,
        email: Optional[str],
        order_number: str,
        status: str,
        message: str,
        customer_name: Optional[str] = None,
        status_label: Optional[str] = None,
    ) -> bool:
        if not email:
            logger.debug(f"[NotificationService] Pas d'email pour la commande {order_number}, notification ignorée.")
            return False

        subject = f"Commande {order_number}: {status_label or status} - {settings.STORE_NAME}"
        try:
            html_content = self._render_template("order_status_update.html", {
                "store_name": settings.STORE_NAME,
                "customer_name": customer_name or "Client",
                "order_number": order_number,
                "status": status,
                "status_label": status_label or status,
                "message": message,
            })
            sent = await self.email_sender.send_email(
                recipient_email=email, subject=subject, html_content=html_content
            )
        except Exception as e:
            logger.error(f"[NotificationService] Échec notification commande {order_number} ({status}) à {email}: {e}", exc_info=True)
            return False

        if sent:
            logger.info(f"[NotificationService] Notification {status} envoyée pour la commande {order_number}.")
        else:
            logger.warning(f"[NotificationService] Notification {status} non envoyée pour la commande {order_number}.")
        return sent
