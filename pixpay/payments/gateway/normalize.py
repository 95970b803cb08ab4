"""
Normalização das respostas da PushInPay.

O provedor usa nomes diferentes para o mesmo campo conforme endpoint/versão;
cada campo canônico tem uma lista de aliases, consultada em ordem.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from pixpay.errors import UnavailableError
from pixpay.payments.gateway.base import ChargeStatus, CreateChargeResult

ID_ALIASES = ("id", "transactionId", "transaction_id", "paymentId", "payment_id")
PIX_CODE_ALIASES = ("pixCode", "pix_code", "pix_copia_e_cola", "code", "qr_code", "pix")
QR_IMAGE_ALIASES = (
    "qrCodeImage",
    "qr_code_image",
    "qrCodeBase64",
    "qr_code_base64",
    "qrCode",
)
EXPIRES_AT_ALIASES = ("expiresAt", "expires_at", "expirationDate", "expiration_date")
CREATED_AT_ALIASES = ("createdAt", "created_at", "createdDate")
PAID_AT_ALIASES = ("paidAt", "paid_at", "paidDate")
STATUS_ALIASES = ("status", "state", "situation")
AMOUNT_ALIASES = ("amount", "value")

STATUS_VALUES = {
    "pending": "pending",
    "created": "pending",
    "waiting_payment": "pending",
    "processing": "pending",
    "active": "pending",
    "paid": "paid",
    "approved": "paid",
    "confirmed": "paid",
    "completed": "paid",
    "concluida": "paid",
    "expired": "expired",
    "cancelled": "cancelled",
    "canceled": "cancelled",
    "refunded": "cancelled",
}


def unwrap(data: dict) -> dict:
    """Algumas versões devolvem o objeto dentro de `data`."""
    inner = data.get("data")
    if isinstance(inner, dict):
        return inner
    return data


def pick(data: dict, aliases: Sequence[str]) -> Any:
    """Primeiro valor não vazio entre os aliases."""
    for key in aliases:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    ISO 8601 (com ou sem Z) ou epoch em s/ms; retorna UTC com tzinfo, ou None.
    Sem offset, o valor é lido como UTC. Epoch fora do intervalo suportado vira None.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > 1e12 else value
        try:
            parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_cents(value: Any) -> int:
    """Inteiros já estão em centavos; decimais/strings com ponto estão em reais."""
    if value in (None, "") or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        amount = Decimal(str(value).replace(",", "."))
    except InvalidOperation:
        return 0
    if not amount.is_finite():
        return 0
    if isinstance(value, str) and "." not in value and "," not in value:
        return int(amount)
    return int((amount * 100).to_integral_value())


def normalize_status_value(value: Any) -> str:
    if not value:
        return "pending"
    return STATUS_VALUES.get(str(value).strip().lower(), "pending")


def normalize_qr_image(value: Any, pix_code: str) -> Optional[str]:
    """Imagem do QR como data URL (ou URL http). Base64 puro ganha o prefixo PNG."""
    if not value or not isinstance(value, str) or value == pix_code:
        return None
    if value.startswith(("data:image", "http://", "https://")):
        return value
    return f"data:image/png;base64,{value}"


def normalize_charge(data: Any) -> CreateChargeResult:
    """
    Mapeia uma resposta de criação para o formato canônico.
    Sem identificador ou sem código PIX a cobrança não pode ser exibida: UnavailableError.
    """
    if not isinstance(data, dict):
        raise UnavailableError("Resposta da PushInPay em formato inesperado")
    body = unwrap(data)
    charge_id = pick(body, ID_ALIASES)
    pix_code = pick(body, PIX_CODE_ALIASES)
    if not charge_id or not pix_code:
        missing = "identificador da transação" if not charge_id else "código PIX"
        raise UnavailableError(f"Resposta da PushInPay sem {missing}", data=data)
    pix_code = str(pix_code)
    return CreateChargeResult(
        charge_id=str(charge_id),
        pix_code=pix_code,
        qr_code_image=normalize_qr_image(pick(body, QR_IMAGE_ALIASES), pix_code),
        amount_cents=to_cents(pick(body, AMOUNT_ALIASES)),
        status=normalize_status_value(pick(body, STATUS_ALIASES)),
        expires_at=parse_datetime(pick(body, EXPIRES_AT_ALIASES)),
        created_at=parse_datetime(pick(body, CREATED_AT_ALIASES)),
        paid_at=parse_datetime(pick(body, PAID_AT_ALIASES)),
        raw=data,
    )


def normalize_status(data: Any) -> ChargeStatus:
    if not isinstance(data, dict):
        raise UnavailableError("Resposta de status da PushInPay em formato inesperado")
    body = unwrap(data)
    status = normalize_status_value(pick(body, STATUS_ALIASES))
    paid_at = parse_datetime(pick(body, PAID_AT_ALIASES)) if status == "paid" else None
    return ChargeStatus(
        status=status,
        paid_at=paid_at,
        charge_id=str(pick(body, ID_ALIASES) or ""),
        amount_cents=to_cents(pick(body, AMOUNT_ALIASES)),
        expires_at=parse_datetime(pick(body, EXPIRES_AT_ALIASES)),
    )
