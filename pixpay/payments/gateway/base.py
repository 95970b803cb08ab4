"""Interface base do gateway de pagamento PIX (desacoplada)."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol

from pixpay.errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DEFAULT_EXPIRES_IN_SECONDS = 3600


@dataclass
class Payer:
    email: str
    name: str
    document: Optional[str] = None  # CPF/CNPJ
    phone: Optional[str] = None


@dataclass
class CreateChargeRequest:
    """Pedido de cobrança PIX; valor em centavos."""

    amount_cents: int
    description: str
    payer: Payer
    external_reference: Optional[str] = None
    expires_in_seconds: int = DEFAULT_EXPIRES_IN_SECONDS
    callback_url: Optional[str] = None

    def validate(self) -> None:
        """Levanta ValidationError antes de qualquer chamada de rede."""
        if not isinstance(self.amount_cents, int) or self.amount_cents <= 0:
            raise ValidationError("Valor do pagamento deve ser maior que zero")
        if not self.description or not self.description.strip():
            raise ValidationError("Descrição do pagamento é obrigatória")
        if not self.payer.email or not self.payer.name or not self.payer.name.strip():
            raise ValidationError("Email e nome do pagador são obrigatórios")
        if not EMAIL_RE.match(self.payer.email):
            raise ValidationError("Email inválido")
        if self.expires_in_seconds <= 0:
            raise ValidationError("Tempo de expiração deve ser maior que zero")


@dataclass
class CreateChargeResult:
    """Resultado normalizado da criação de uma cobrança PIX."""

    charge_id: str
    pix_code: str
    qr_code_image: Optional[str] = None
    amount_cents: int = 0
    status: str = "pending"
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    raw: dict = field(default_factory=dict, repr=False)


@dataclass
class ChargeStatus:
    """Status de uma cobrança (consulta ou webhook)."""

    status: str  # pending, paid, cancelled, expired
    paid_at: Optional[datetime] = None
    charge_id: str = ""
    amount_cents: int = 0
    expires_at: Optional[datetime] = None


class PaymentGatewayProtocol(Protocol):
    """Protocolo do gateway de pagamento PIX."""

    name: str

    def create_charge(self, request: CreateChargeRequest) -> CreateChargeResult:
        """Cria uma cobrança PIX e retorna dados para pagamento (código/QR)."""
        ...

    def get_status(self, external_id: str) -> ChargeStatus:
        """Consulta o status atual da cobrança, sem efeitos colaterais."""
        ...
