"""
Utilitaires du module Payments: vérification de la signature des webhooks.
"""
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def _resolve_path(data: Any, path: str) -> Any:
    value = data
    for key in path.split("."):
        if not isinstance(value, dict) or key not in value:
            return None
        value = value[key]
    return value


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def compute_event_checksum(event: Dict[str, Any], secret: str) -> str:
    """
    Calcule la somme de contrôle attendue d'un événement.

    Args:
        event: Corps JSON de l'événement
        secret: Secret d'événements de la passerelle

    Returns:
        str: sha256 hexadécimal de (valeurs des propriétés signées + timestamp + secret)
    """
    signature = event.get("signature") or {}
    data = event.get("data") or {}
    values = "".join(_as_text(_resolve_path(data, prop)) for prop in signature.get("properties") or [])
    payload = f"{values}{_as_text(event.get('timestamp'))}{secret}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def validate_webhook_signature(event: Dict[str, Any], secret: Optional[str], allow_unsigned: bool) -> bool:
    """Vérifie la signature d'un webhook en temps constant.

    Sans secret configuré, l'événement n'est accepté que si `allow_unsigned` est vrai.
    """
    if not secret:
        if allow_unsigned:
            logger.warning("[Signature] Secret d'événements non configuré: validation de signature ignorée.")
            return True
        logger.error("[Signature] Secret d'événements non configuré: webhook rejeté.")
        return False

    signature = event.get("signature")
    if not isinstance(signature, dict) or not isinstance(signature.get("checksum"), str):
        logger.warning("[Signature] Événement sans signature exploitable.")
        return False

    expected = compute_event_checksum(event, secret)
    return hmac.compare_digest(expected, signature["checksum"].lower())
