"""Taxonomie commune des exceptions métier.

Chaque module déclare ses propres exceptions en héritant de l'une de ces classes,
ce qui permet aux routeurs de les traduire en codes HTTP sans connaître le détail.
"""


class DomainException(Exception):
    """Classe de base pour les exceptions métier."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Ressource inconnue (404)."""
    pass


class BadRequestException(DomainException):
    """Opération refusée par les règles métier (400)."""
    pass


class UnauthorizedException(DomainException):
    """Requête non authentifiée ou signature invalide (401)."""
    pass
