"""Gateway de exemplo (stub) do PIX, sem API externa."""

import uuid
from datetime import timedelta

from pixpay.db.models import utcnow
from pixpay.payments.gateway.base import ChargeStatus, CreateChargeRequest, CreateChargeResult


class ExampleGateway:
    """Gateway stub: retorna dados fictícios para desenvolver/testar o fluxo."""

    name = "example"

    def __init__(self):
        self.requests: list[CreateChargeRequest] = []

    def create_charge(self, request: CreateChargeRequest) -> CreateChargeResult:
        request.validate()
        self.requests.append(request)
        charge_id = f"example-{uuid.uuid4().hex[:16]}"
        now = utcnow()
        return CreateChargeResult(
            charge_id=charge_id,
            pix_code=f"00020126580014br.gov.bcb.pix0136{charge_id}",
            qr_code_image=None,
            amount_cents=request.amount_cents,
            expires_at=now + timedelta(seconds=request.expires_in_seconds),
            created_at=now,
        )

    def get_status(self, external_id: str) -> ChargeStatus:
        # Para testes: id que termina com "-paid" é considerado pago
        if external_id.endswith("-paid"):
            return ChargeStatus(status="paid", paid_at=utcnow(), charge_id=external_id)
        return ChargeStatus(status="pending", charge_id=external_id)
