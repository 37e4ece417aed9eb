"""
Hachage et vérification des mots de passe des comptes du catalogue.

L'émission et la validation des jetons de session sont assurées en amont (proxy d'authentification,
qui transmet `X-User-Id`); ce module se limite au stockage sûr des secrets. Une empreinte produite
par un schéma déprécié est recalculée à la connexion suivante.
"""

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(p: str) -> str:
    """Hache un mot de passe en utilisant PBKDF2."""
    return pwd_context.hash(p)


def verify_password(p: str | None, h: str | None) -> bool:
    """Vrai si `p` correspond à l'empreinte `h`; une empreinte absente ou illisible ne correspond
    à aucun mot de passe."""
    return verify_and_update(p, h)[0]


def verify_and_update(p: str | None, h: str | None) -> tuple[bool, str | None]:
    """Vérifie `p` et retourne, si besoin, une nouvelle empreinte à enregistrer (schéma déprécié)."""
    if not p or not h:
        return False, None
    try:
        return pwd_context.verify_and_update(p, h)
    except ValueError:
        # empreinte d'un format inconnu
        return False, None
