"""Taxonomia de erros do núcleo de pagamentos (kind permite decidir retry sem comparar strings)."""

from typing import Any, Optional


class PaymentError(Exception):
    """Erro base; `kind` identifica a categoria para quem chama."""

    kind = "payment_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.data = data


class ValidationError(PaymentError):
    """Entrada inválida do chamador ou payload rejeitado pelo provedor (400)."""

    kind = "validation"


class AuthError(PaymentError):
    """Credencial rejeitada pelo provedor ou assinatura de webhook inválida."""

    kind = "auth"


class UnavailableError(PaymentError):
    """Todos os endpoints falharam, timeout ou resposta impossível de normalizar."""

    kind = "unavailable"


class NotFoundError(PaymentError):
    """Pagamento (ou grupo) desconhecido."""

    kind = "not_found"


class ConfigError(Exception):
    """Configuração ausente ou inválida na inicialização do processo."""
