"""
Cliente PushInPay (API de pagamentos PIX).

Documentação: https://docs.pushinpay.com.br
Instanciado explicitamente a partir de Settings e injetado no PaymentService.
"""

import logging
import time
from decimal import Decimal
from typing import Optional
from urllib.parse import quote

import httpx

from pixpay.config import Settings, mask_secret
from pixpay.errors import ConfigError, ValidationError
from pixpay.payments.gateway.base import ChargeStatus, CreateChargeRequest, CreateChargeResult
from pixpay.payments.gateway.normalize import normalize_charge, normalize_status
from pixpay.payments.gateway.probing import probe_endpoints

logger = logging.getLogger(__name__)

CREATE_PATHS = (
    "/v1/pix/create",
    "/api/v1/pix/create",
    "/pix/create",
    "/api/pix/create",
)

STATUS_PATHS = (
    "/v1/pix/{id}",
    "/api/v1/pix/{id}",
    "/pix/{id}",
    "/api/pix/{id}",
    "/transactions/{id}",
    "/api/transactions/{id}",
)


def build_charge_body(request: CreateChargeRequest) -> dict:
    """Body da criação; a API recebe o valor em reais."""
    payer = {"email": request.payer.email, "name": request.payer.name}
    if request.payer.document:
        payer["document"] = request.payer.document
    if request.payer.phone:
        payer["phone"] = request.payer.phone
    body = {
        "amount": float(Decimal(request.amount_cents) / 100),
        "description": request.description,
        "externalReference": request.external_reference or f"payment-{int(time.time() * 1000)}",
        "payer": payer,
        "expiresIn": request.expires_in_seconds,
    }
    if request.callback_url:
        body["callbackUrl"] = request.callback_url
    return body


class PushInPayGateway:
    """Gateway PushInPay com sondagem de endpoints e normalização de respostas."""

    name = "pushinpay"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not api_key or not api_key.strip():
            raise ConfigError("API Key da PushInPay não fornecida")
        self._base_url = base_url.rstrip("/")
        logger.info(
            "[PushInPay] Cliente inicializado (API Key %s, base %s)",
            mask_secret(api_key),
            self._base_url,
        )
        self._client = httpx.Client(
            base_url=self._base_url,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PushInPayGateway":
        return cls(settings.api_key, settings.api_url, timeout=settings.timeout_seconds)

    def close(self) -> None:
        self._client.close()

    def create_charge(self, request: CreateChargeRequest) -> CreateChargeResult:
        request.validate()
        body = build_charge_body(request)
        logger.info(
            "[PushInPay] Criando cobrança: valor=%s referência=%s",
            body["amount"],
            body["externalReference"],
        )
        data = probe_endpoints(
            lambda path: self._client.post(path, json=body),
            CREATE_PATHS,
            operation="criar cobrança",
        )
        result = normalize_charge(data)
        logger.info("[PushInPay] Cobrança criada: %s", result.charge_id)
        return result

    def get_status(self, external_id: str) -> ChargeStatus:
        external_id = (external_id or "").strip()
        if not external_id:
            raise ValidationError("Identificador da transação é obrigatório")
        paths = [path.format(id=quote(external_id, safe="")) for path in STATUS_PATHS]
        data = probe_endpoints(self._client.get, paths, operation="consultar status")
        return normalize_status(data)
