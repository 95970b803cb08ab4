"""Factory do gateway de pagamento (retorna implementação conforme config)."""

from pixpay.config import Settings
from pixpay.payments.gateway.base import PaymentGatewayProtocol
from pixpay.payments.gateway.example import ExampleGateway
from pixpay.payments.gateway.pushinpay import PushInPayGateway


def build_gateway(settings: Settings) -> PaymentGatewayProtocol:
    """
    Retorna a implementação do gateway conforme PAYMENT_GATEWAY.
    'pushinpay' (padrão) usa a API real; 'example' é o stub offline.
    """
    if settings.gateway == "example":
        return ExampleGateway()
    return PushInPayGateway.from_settings(settings)
