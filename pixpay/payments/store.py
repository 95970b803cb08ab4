"""
Persistência do ciclo de vida do pagamento.

Única transição persistida pelo fluxo normal: pending -> paid, uma vez, via
UPDATE condicional (compare-and-set na coluna status). Expiração é derivada na
leitura e nunca escrita aqui; cancelled só vem do caminho administrativo.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from pixpay.db.models import CANCELLED, PAID, PENDING, Payment
from pixpay.db.session import get_session
from pixpay.errors import ValidationError

logger = logging.getLogger(__name__)

OnPaid = Callable[[Session, Payment], None]


class PaymentStore:
    def __init__(self, engine: Engine):
        self._engine = engine

    def create(self, payment: Payment) -> Payment:
        if payment.status != PENDING or payment.paid_at is not None:
            raise ValidationError("Pagamento deve ser criado como pending, sem paid_at")
        if not payment.external_id:
            raise ValidationError("Pagamento sem identificador externo")
        with get_session(self._engine) as session:
            session.add(payment)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ValidationError(
                    f"Já existe pagamento com external_id {payment.external_id}"
                )
            session.refresh(payment)
            return payment

    def get(self, payment_id: str) -> Optional[Payment]:
        with get_session(self._engine) as session:
            return session.get(Payment, payment_id)

    def get_by_external_id(self, external_id: str) -> Optional[Payment]:
        """Busca exata; sem correspondência retorna None (nunca aproxima)."""
        if not external_id:
            return None
        with get_session(self._engine) as session:
            return session.exec(
                select(Payment).where(Payment.external_id == external_id)
            ).first()

    def find_by_reference(self, user_id: str, group_id: str) -> list[Payment]:
        with get_session(self._engine) as session:
            return list(
                session.exec(
                    select(Payment)
                    .where(Payment.user_id == user_id, Payment.group_id == group_id)
                    .order_by(Payment.created_at)
                )
            )

    def _transition(
        self,
        payment_id: str,
        values: dict,
        on_change: Optional[OnPaid] = None,
    ) -> bool:
        with get_session(self._engine) as session:
            result = session.exec(
                update(Payment)
                .where(Payment.id == payment_id, Payment.status == PENDING)
                .values(**values)
            )
            if result.rowcount != 1:
                session.rollback()
                return False
            if on_change is not None:
                payment = session.get(Payment, payment_id)
                on_change(session, payment)
            session.commit()
            return True

    def mark_paid(
        self,
        payment_id: str,
        paid_at: datetime,
        on_paid: Optional[OnPaid] = None,
    ) -> bool:
        """
        pending -> paid se (e somente se) ainda estiver pending.
        on_paid roda na mesma transação; se levantar, nada é gravado.
        Retorna False (no-op silencioso) quando o registro já não está pending.
        """
        changed = self._transition(payment_id, {"status": PAID, "paid_at": paid_at}, on_paid)
        if changed:
            logger.info("Pagamento %s marcado como pago", payment_id)
        else:
            logger.info("Pagamento %s não estava pending; transição ignorada", payment_id)
        return changed

    def cancel(self, payment_id: str) -> bool:
        """Override administrativo: pending -> cancelled. Fora do fluxo webhook/polling."""
        changed = self._transition(payment_id, {"status": CANCELLED})
        if changed:
            logger.info("Pagamento %s cancelado manualmente", payment_id)
        return changed
