"""SQLAlchemy models for the catalog persistence layer.

Tables: users, work_types, categories, tags, oeuvres and the two join tables
`oeuvre_categories` / `oeuvre_tags` (cascade on delete of either side).

Translatable fields are stored as JSON maps `{lang: text}` holding every supported language.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from heritage.domain.translatable import EMPTY
from heritage.domain.workflow import OeuvreStatus, UserType, ValidationStatus


def utcnow() -> datetime:
    """Horodatage UTC naïf (stockage homogène quel que soit le moteur)."""
    return datetime.now(UTC).replace(tzinfo=None)


def _empty_translation() -> dict[str, str]:
    return EMPTY.to_dict()


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


oeuvre_categories = Table(
    "oeuvre_categories",
    Base.metadata,
    Column("oeuvre_id", Integer, ForeignKey("oeuvres.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True
    ),
)

oeuvre_tags = Table(
    "oeuvre_tags",
    Base.metadata,
    Column("oeuvre_id", Integer, ForeignKey("oeuvres.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """Compte utilisateur: identité, profil multilingue, validation et suspension."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(JSON, nullable=False, default=_empty_translation)
    last_name = Column(JSON, nullable=False, default=_empty_translation)
    biography = Column(JSON, nullable=False, default=_empty_translation)
    user_type = Column(String(32), nullable=False, default=UserType.VISITOR.value, index=True)
    phone = Column(String(32), nullable=True)
    organization = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)
    photo_url = Column(String(512), nullable=True)
    accepts_terms = Column(Boolean, nullable=False, default=False)
    accepts_newsletter = Column(Boolean, nullable=False, default=False)

    validation_status = Column(
        String(16), nullable=False, default=ValidationStatus.PENDING.value, index=True
    )
    validated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    validated_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    is_suspended = Column(Boolean, nullable=False, default=False)
    suspended_at = Column(DateTime, nullable=True)
    suspension_days = Column(Integer, nullable=True)
    suspension_reason = Column(Text, nullable=True)
    suspended_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reactivated_at = Column(DateTime, nullable=True)
    reactivated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN.value


class WorkType(Base):
    """Type d'œuvre (livre, film, album, ...)."""

    __tablename__ = "work_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(64), nullable=False, unique=True)
    name = Column(JSON, nullable=False, default=_empty_translation)


class Category(Base):
    """Catégorie thématique associable aux œuvres."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(64), nullable=True, unique=True)
    name = Column(JSON, nullable=False, default=_empty_translation)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Tag(Base):
    """Mot-clé libre associable aux œuvres."""

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(JSON, nullable=False, default=_empty_translation)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Oeuvre(Base):
    """Œuvre du catalogue et son cycle de publication."""

    __tablename__ = "oeuvres"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(JSON, nullable=False, default=_empty_translation)
    description = Column(JSON, nullable=False, default=_empty_translation)
    summary = Column(JSON, nullable=False, default=_empty_translation)
    work_type_id = Column(Integer, ForeignKey("work_types.id"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    validator_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    creation_year = Column(Integer, nullable=True)
    isbn = Column(String(32), nullable=True)
    publisher = Column(String(255), nullable=True)
    pages = Column(Integer, nullable=True)
    duration = Column(Integer, nullable=True)  # minutes
    price = Column(Float, nullable=True)
    currency = Column(String(8), nullable=False, default="DZD")
    image_url = Column(String(512), nullable=True)
    cover_url = Column(String(512), nullable=True)

    status = Column(String(16), nullable=False, default=OeuvreStatus.DRAFT.value, index=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    view_count = Column(Integer, nullable=False, default=0)
    submitted_at = Column(DateTime, nullable=True)
    validated_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    work_type = relationship(WorkType, lazy="selectin")
    owner = relationship(User, foreign_keys=[owner_id], lazy="selectin")
    validator = relationship(User, foreign_keys=[validator_id], lazy="select")
    categories = relationship(
        Category,
        secondary=oeuvre_categories,
        lazy="selectin",
        passive_deletes=True,
        order_by=Category.id,
    )
    tags = relationship(
        Tag, secondary=oeuvre_tags, lazy="selectin", passive_deletes=True, order_by=Tag.id
    )
