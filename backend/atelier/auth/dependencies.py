"""
Dépendances FastAPI pour l'authentification.

Fournit l'utilisateur courant à partir du token JWT et la vérification des droits admin.
"""
import logging
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.auth.exceptions import PermissionDeniedException, TokenInvalidException, TokenMissingException
from atelier.auth.security import decode_access_token
from atelier.database import get_db_session
from atelier.users.models import UserRead
from atelier.users.repositories import SQLAlchemyUserRepository

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> UserRead:
    """Vérifie le token JWT et retourne l'utilisateur courant."""
    if token is None:
        logger.warning("Token manquant dans la requête.")
        raise TokenMissingException()

    user_id = decode_access_token(token)
    if user_id is None:
        raise TokenInvalidException()

    user = await SQLAlchemyUserRepository(db).get_by_id(user_id)
    if user is None:
        logger.warning(f"Token valide mais utilisateur {user_id} introuvable.")
        raise TokenInvalidException()

    logger.debug(f"Utilisateur authentifié: ID {user.id}")
    return user


async def get_current_admin_user(
    current_user: Annotated[UserRead, Depends(get_current_user)]
) -> UserRead:
    """Vérifie que l'utilisateur courant est un administrateur."""
    if not current_user.is_admin:
        logger.warning(f"Tentative d'accès à une ressource admin par un utilisateur non-admin: ID {current_user.id}")
        raise PermissionDeniedException()
    return current_user


CurrentUser = Annotated[UserRead, Depends(get_current_user)]
CurrentAdmin = Annotated[UserRead, Depends(get_current_admin_user)]
