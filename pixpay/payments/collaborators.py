"""
Colaboradores externos do núcleo de pagamentos: perfil do usuário, cadastro de
grupos e atualização dos benefícios do grupo. Contratos simples de get/set,
com implementação padrão sobre as tabelas SQLModel.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy.engine import Engine
from sqlmodel import Session

from pixpay.db.models import Group, Profile
from pixpay.db.session import get_session

logger = logging.getLogger(__name__)


@dataclass
class PayerInfo:
    email: str
    name: str
    is_admin: bool = False


class ProfileDirectory(Protocol):
    def get_payer(self, user_id: str) -> Optional[PayerInfo]:
        ...


class ListingDirectory(Protocol):
    def get_title(self, group_id: str) -> Optional[str]:
        ...


class EntitlementUpdater(Protocol):
    def apply(
        self, session: Session, group_id: str, plan_type: str, expires_at: datetime
    ) -> None:
        """Aplica os benefícios dentro da transação recebida (sem commit)."""
        ...


class SqlProfileDirectory:
    def __init__(self, engine: Engine):
        self._engine = engine

    def get_payer(self, user_id: str) -> Optional[PayerInfo]:
        with get_session(self._engine) as session:
            profile = session.get(Profile, user_id)
            if profile is None:
                return None
            return PayerInfo(
                email=profile.email or "",
                name=profile.full_name or "Cliente",
                is_admin=profile.is_admin,
            )


class SqlListingDirectory:
    def __init__(self, engine: Engine):
        self._engine = engine

    def get_title(self, group_id: str) -> Optional[str]:
        with get_session(self._engine) as session:
            group = session.get(Group, group_id)
            return group.title if group else None


class SqlEntitlementUpdater:
    """premium e featured ativam is_premium; featured também is_featured; boost só estende o prazo."""

    def apply(
        self, session: Session, group_id: str, plan_type: str, expires_at: datetime
    ) -> None:
        group = session.get(Group, group_id)
        if group is None:
            logger.warning("Grupo %s não encontrado ao aplicar plano %s", group_id, plan_type)
            return
        group.premium_expires_at = expires_at
        if plan_type in ("premium", "featured"):
            group.is_premium = True
        if plan_type == "featured":
            group.is_featured = True
        session.add(group)
        logger.info(
            "Grupo %s atualizado: plano=%s expira em %s", group_id, plan_type, expires_at.isoformat()
        )
