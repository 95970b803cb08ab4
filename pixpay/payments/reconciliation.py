"""Leitura do status para o polling do cliente. Somente leitura: o webhook é o único escritor de paid."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from pixpay.db.models import utcnow
from pixpay.errors import NotFoundError, ValidationError
from pixpay.payments.gateway.base import ChargeStatus, PaymentGatewayProtocol
from pixpay.payments.store import PaymentStore


@dataclass
class StatusView:
    payment_id: str
    user_id: str
    status: str
    paid_at: Optional[datetime]
    expires_at: datetime
    expired: bool

    def as_dict(self) -> dict:
        return {
            "status": self.status,
            "paidAt": self.paid_at.isoformat() if self.paid_at else None,
            "expiresAt": self.expires_at.isoformat(),
            "expired": self.expired,
        }


class ReconciliationReader:
    def __init__(
        self,
        store: PaymentStore,
        gateway: Optional[PaymentGatewayProtocol] = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._gateway = gateway
        self._clock = clock

    def get_status(self, payment_id: str) -> StatusView:
        """
        Status persistido + expiração derivada no momento da leitura.
        Não altera status nem expires_at, mesmo com o prazo vencido.
        """
        payment = self._store.get(payment_id)
        if payment is None:
            raise NotFoundError("Pagamento não encontrado")
        return StatusView(
            payment_id=payment.id,
            user_id=payment.user_id,
            status=payment.status,
            paid_at=payment.paid_at,
            expires_at=payment.expires_at,
            expired=payment.is_expired(self._clock()),
        )

    def get_provider_status(self, payment_id: str) -> ChargeStatus:
        """Visão do provedor para diagnóstico; nada é persistido."""
        if self._gateway is None:
            raise ValidationError("Gateway não configurado para consulta")
        payment = self._store.get(payment_id)
        if payment is None:
            raise NotFoundError("Pagamento não encontrado")
        return self._gateway.get_status(payment.external_id)
