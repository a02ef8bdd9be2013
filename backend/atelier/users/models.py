"""
Modèles SQLModel pour l'entité User.

Les comptes sont créés par le service d'authentification externe; ce module
ne fait que les lire (identité de l'acheteur, droits admin, email de notification).
"""
from datetime import datetime
from typing import Optional

from pydantic import EmailStr
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from atelier.core.schemas import utc_now


class UserBase(SQLModel):
    """Champs communs d'un utilisateur."""
    email: EmailStr = Field(unique=True, index=True, max_length=255, nullable=False)
    name: Optional[str] = Field(default=None, max_length=100)
    is_admin: bool = Field(default=False, nullable=False)


class User(UserBase, table=True):
    """Modèle de table SQLModel pour les utilisateurs."""
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)


class UserRead(UserBase):
    """Schéma de lecture d'un utilisateur."""
    id: int
