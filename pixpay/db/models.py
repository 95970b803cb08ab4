"""Modelos SQLModel: pagamentos PIX e as tabelas mínimas dos colaboradores (perfil, grupo)."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

PENDING = "pending"
PAID = "paid"
EXPIRED = "expired"
CANCELLED = "cancelled"
PAYMENT_STATUSES = (PENDING, PAID, EXPIRED, CANCELLED)
TERMINAL_STATUSES = (PAID, CANCELLED)


def utcnow() -> datetime:
    """Agora em UTC (com tzinfo)."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    DateTime sempre em UTC com tzinfo.
    O SQLite não guarda offset: grava em UTC e devolve o valor lido marcado como UTC.
    Valor sem tzinfo na escrita é tratado como UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class Payment(SQLModel, table=True):
    """Cobrança PIX de um plano (premium, featured, boost) para um grupo."""

    __tablename__ = "payment"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=32)
    external_id: str = Field(unique=True, index=True, max_length=256)
    user_id: str = Field(index=True, max_length=64)
    group_id: str = Field(index=True, max_length=64)
    plan_type: str = Field(max_length=16)
    duration_days: int = Field()
    amount: int = Field()  # centavos
    currency: str = Field(default="brl", max_length=8)
    provider: str = Field(default="pushinpay", max_length=32)
    pix_code: str = Field()
    qr_code_image: str = Field(default="")
    status: str = Field(default=PENDING, max_length=16)  # pending, paid, expired, cancelled
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    expires_at: datetime = Field(sa_type=UTCDateTime)
    paid_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Expiração derivada: pendente e com prazo vencido. Nunca persistida."""
        return self.status == PENDING and (now or utcnow()) > self.expires_at


class Profile(SQLModel, table=True):
    """Perfil do usuário (dados do pagador)."""

    __tablename__ = "profile"

    id: str = Field(primary_key=True, max_length=64)
    email: str = Field(default="", max_length=256)
    full_name: Optional[str] = Field(default=None, max_length=256)
    is_admin: bool = Field(default=False)


class Group(SQLModel, table=True):
    """Grupo anunciado; alvo dos benefícios premium/featured."""

    __tablename__ = "group_listing"

    id: str = Field(primary_key=True, max_length=64)
    title: str = Field(max_length=256)
    is_premium: bool = Field(default=False)
    is_featured: bool = Field(default=False)
    premium_expires_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
