"""Gateway de pagamento PIX (interface base + implementações)."""

from pixpay.payments.gateway.base import (
    ChargeStatus,
    CreateChargeRequest,
    CreateChargeResult,
    Payer,
    PaymentGatewayProtocol,
)
from pixpay.payments.gateway.example import ExampleGateway
from pixpay.payments.gateway.factory import build_gateway
from pixpay.payments.gateway.pushinpay import PushInPayGateway

__all__ = [
    "ChargeStatus",
    "CreateChargeRequest",
    "CreateChargeResult",
    "ExampleGateway",
    "Payer",
    "PaymentGatewayProtocol",
    "PushInPayGateway",
    "build_gateway",
]
