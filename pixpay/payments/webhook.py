"""
Processamento idempotente das notificações da PushInPay.

Entregas são at-least-once: a transição pending -> paid é um compare-and-set
e os benefícios do grupo rodam na mesma transação, então uma entrega duplicada
nunca reaplica efeitos.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional

from sqlmodel import Session

from pixpay.db.models import PAID, Payment, utcnow
from pixpay.errors import AuthError, NotFoundError
from pixpay.payments.collaborators import EntitlementUpdater
from pixpay.payments.gateway.normalize import normalize_status_value, pick, to_cents
from pixpay.payments.store import PaymentStore

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-pushinpay-signature"
TRANSACTION_ID_ALIASES = ("transactionId", "transaction_id", "id")
# Só estes valores confirmam o pagamento no webhook
PAID_SIGNALS = ("paid", "approved")


def webhook_status(value: Any) -> str:
    """
    Status canônico de uma notificação. Apenas PAID_SIGNALS viram "paid";
    outros sinônimos de pago da API de status (confirmed, completed...) ficam
    como vieram e são apenas reconhecidos.
    """
    text = str(value or "").strip().lower()
    if text in PAID_SIGNALS:
        return PAID
    normalized = normalize_status_value(text)
    return text if normalized == PAID else normalized


@dataclass
class Notification:
    transaction_id: str
    status: str
    amount_cents: int = 0
    external_reference: Optional[str] = None

    def __post_init__(self):
        self.status = webhook_status(self.status)

    @classmethod
    def from_payload(cls, body: Mapping[str, Any]) -> "Notification":
        raw_id = pick(body, TRANSACTION_ID_ALIASES)
        return cls(
            transaction_id=str(raw_id).strip() if raw_id is not None else "",
            status=pick(body, ("status",)),
            amount_cents=to_cents(pick(body, ("amount", "value"))),
            external_reference=pick(body, ("externalReference", "external_reference")),
        )


@dataclass
class WebhookResult:
    received: bool = True
    processed: bool = False
    group_id: Optional[str] = None
    plan_type: Optional[str] = None

    def as_dict(self) -> dict:
        data = {"received": self.received, "processed": self.processed}
        if self.processed:
            data["groupId"] = self.group_id
            data["planType"] = self.plan_type
        return data


def sign(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> None:
    """HMAC-SHA256 hex do corpo bruto; aceita prefixo 'sha256='."""
    if not signature:
        raise AuthError("Assinatura do webhook ausente")
    provided = signature.strip()
    if provided.startswith("sha256="):
        provided = provided[len("sha256="):]
    if not hmac.compare_digest(sign(secret, body), provided.lower()):
        raise AuthError("Assinatura do webhook inválida")


class WebhookProcessor:
    def __init__(
        self,
        store: PaymentStore,
        entitlements: EntitlementUpdater,
        *,
        secret: str = "",
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._entitlements = entitlements
        self._secret = secret
        self._clock = clock

    def verify(self, body: bytes, headers: Mapping[str, str]) -> None:
        """Pré-condição: sem segredo configurado a verificação é ignorada."""
        if not self._secret:
            return
        verify_signature(self._secret, body, headers.get(SIGNATURE_HEADER))

    def handle(self, notification: Notification) -> WebhookResult:
        logger.info(
            "Webhook PushInPay recebido: transação=%s status=%s valor=%s",
            notification.transaction_id,
            notification.status,
            notification.amount_cents,
        )
        if notification.status != PAID:
            return WebhookResult(processed=False)

        payment = self._store.get_by_external_id(notification.transaction_id)
        if payment is None:
            logger.error("Pagamento não encontrado: %s", notification.transaction_id)
            raise NotFoundError("Payment not found")

        if payment.status == PAID:
            logger.info("Pagamento já processado: %s", notification.transaction_id)
            return WebhookResult(processed=False)

        if notification.amount_cents and notification.amount_cents != payment.amount:
            logger.warning(
                "Valor divergente no webhook da transação %s: recebido=%s esperado=%s",
                notification.transaction_id,
                notification.amount_cents,
                payment.amount,
            )

        now = self._clock()

        def apply_entitlements(session: Session, paid: Payment) -> None:
            # Prazo conta a partir da confirmação, não da criação da cobrança
            expires_at = now + timedelta(days=paid.duration_days)
            self._entitlements.apply(session, paid.group_id, paid.plan_type, expires_at)

        if not self._store.mark_paid(payment.id, now, on_paid=apply_entitlements):
            logger.info("Entrega concorrente já confirmou %s", notification.transaction_id)
            return WebhookResult(processed=False)

        return WebhookResult(processed=True, group_id=payment.group_id, plan_type=payment.plan_type)
