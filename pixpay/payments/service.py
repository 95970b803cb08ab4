"""Serviço de domínio: criação de cobranças PIX para planos de grupos (tudo ou nada)."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from pixpay.db.models import PENDING, Payment, utcnow
from pixpay.errors import NotFoundError, PaymentError, ValidationError
from pixpay.payments.collaborators import ListingDirectory, ProfileDirectory
from pixpay.payments.gateway.base import (
    DEFAULT_EXPIRES_IN_SECONDS,
    CreateChargeRequest,
    Payer,
    PaymentGatewayProtocol,
)
from pixpay.payments.pricing import resolve_amount
from pixpay.payments.qr import pix_qr_data_url
from pixpay.payments.store import PaymentStore

logger = logging.getLogger(__name__)


@dataclass
class CreatedPayment:
    """Dados devolvidos ao cliente para exibir o PIX."""

    payment_id: str
    external_id: str
    pix_code: str
    qr_code_image: str
    amount: int
    expires_at: datetime
    status: str = PENDING


def external_reference(user_id: str, group_id: str, timestamp_ms: int) -> str:
    """Referência determinística para rastreio do lado do provedor."""
    return f"{user_id}-{group_id}-{timestamp_ms}"


class PaymentService:
    def __init__(
        self,
        gateway: PaymentGatewayProtocol,
        store: PaymentStore,
        profiles: ProfileDirectory,
        listings: ListingDirectory,
        *,
        callback_url: Optional[str] = None,
        expires_in_seconds: int = DEFAULT_EXPIRES_IN_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._gateway = gateway
        self._store = store
        self._profiles = profiles
        self._listings = listings
        self._callback_url = callback_url
        self._expires_in_seconds = expires_in_seconds
        self._clock = clock

    def create_payment(
        self,
        user_id: str,
        group_id: str,
        plan_type: str,
        duration_days: int,
    ) -> CreatedPayment:
        """
        Cria a cobrança no gateway e persiste o Payment pending.
        Qualquer falha do gateway propaga tipada e nenhum registro é criado.
        """
        if not user_id or not group_id:
            raise ValidationError("groupId, planType e duration são obrigatórios")
        amount = resolve_amount(plan_type, duration_days)

        title = self._listings.get_title(group_id)
        if title is None:
            raise NotFoundError(f"Grupo com ID {group_id} não existe")
        payer = self._profiles.get_payer(user_id)

        now = self._clock()
        request = CreateChargeRequest(
            amount_cents=amount,
            description=f"{plan_type.upper()} - {title} - {duration_days} dias",
            payer=Payer(
                email=payer.email if payer else "",
                name=(payer.name if payer else "") or "Cliente",
            ),
            external_reference=external_reference(
                user_id, group_id, int(time.time() * 1000)
            ),
            expires_in_seconds=self._expires_in_seconds,
            callback_url=self._callback_url,
        )
        logger.info(
            "Criando cobrança: usuário=%s grupo=%s plano=%s/%s valor=%s",
            user_id,
            group_id,
            plan_type,
            duration_days,
            amount,
        )
        try:
            charge = self._gateway.create_charge(request)
        except PaymentError as e:
            logger.error(
                "Falha ao criar cobrança (%s) para grupo=%s: %s", e.kind, group_id, e.message
            )
            raise

        qr_code_image = charge.qr_code_image or pix_qr_data_url(charge.pix_code)
        expires_at = charge.expires_at or (now + timedelta(seconds=self._expires_in_seconds))

        payment = self._store.create(
            Payment(
                external_id=charge.charge_id,
                user_id=user_id,
                group_id=group_id,
                plan_type=plan_type,
                duration_days=duration_days,
                amount=amount,
                provider=getattr(self._gateway, "name", "pushinpay"),
                pix_code=charge.pix_code,
                qr_code_image=qr_code_image,
                status=PENDING,
                created_at=now,
                expires_at=expires_at,
            )
        )
        logger.info("Pagamento %s criado (transação %s)", payment.id, payment.external_id)
        return CreatedPayment(
            payment_id=payment.id,
            external_id=payment.external_id,
            pix_code=payment.pix_code,
            qr_code_image=payment.qr_code_image,
            amount=payment.amount,
            expires_at=payment.expires_at,
        )
