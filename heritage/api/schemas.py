# Schémas Pydantic des corps de requête d'action (modération, compte).
# Les corps de création / mise à jour restent des dictionnaires libres: leurs alias sont
# résolus par les DTO du domaine.

from pydantic import BaseModel


class ReasonRequest(BaseModel):
    """Motif d'un refus.

    Champs:
    - reason: str | None (obligatoire côté service, non vide)
    """

    reason: str | None = None


class SuspendRequest(BaseModel):
    """Suspension d'un compte.

    Champs:
    - duration_days: int | None (1 à SUSPENSION_MAX_DAYS)
    - reason: str | None (motif obligatoire côté service)
    """

    duration_days: int | None = None
    reason: str | None = None


class FeatureRequest(BaseModel):
    """Mise en avant d'une œuvre publiée."""

    featured: bool = True


class PasswordChangeRequest(BaseModel):
    """Changement de mot de passe par le titulaire du compte."""

    current_password: str = ""
    new_password: str = ""


class CredentialsRequest(BaseModel):
    """Identifiants de connexion.

    Champs:
    - email: str
    - password: str
    """

    email: str
    password: str
