"""
Exceptions HTTP du module d'authentification.

Contrairement aux exceptions métier, elles sont levées directement depuis des
dépendances FastAPI et sont donc des HTTPException.
"""
from fastapi import HTTPException, status

ERROR_TOKEN_INVALID = "Token d'authentification invalide"
ERROR_TOKEN_MISSING = "Token d'authentification manquant"
ERROR_PERMISSION_DENIED = "Permission refusée"

HEADER_WWW_AUTHENTICATE = "WWW-Authenticate"
HEADER_WWW_AUTHENTICATE_VALUE = "Bearer"


class TokenInvalidException(HTTPException):
    """Exception pour un token JWT invalide ou un utilisateur inconnu."""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=ERROR_TOKEN_INVALID,
            headers={HEADER_WWW_AUTHENTICATE: HEADER_WWW_AUTHENTICATE_VALUE},
        )


class TokenMissingException(HTTPException):
    """Exception pour un token JWT manquant."""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=ERROR_TOKEN_MISSING,
            headers={HEADER_WWW_AUTHENTICATE: HEADER_WWW_AUTHENTICATE_VALUE},
        )


class PermissionDeniedException(HTTPException):
    """Exception pour un accès admin refusé."""
    def __init__(self):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=ERROR_PERMISSION_DENIED)
