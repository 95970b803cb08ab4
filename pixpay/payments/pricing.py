"""Tabela de preços por plano e duração (centavos)."""

from pixpay.errors import ValidationError

PLAN_TYPES = ("premium", "featured", "boost")

PRICING: dict[str, dict[int, int]] = {
    "premium": {
        7: 1999,    # R$ 19,99
        30: 4999,   # R$ 49,99
        90: 11999,  # R$ 119,99
    },
    "featured": {
        7: 2999,    # R$ 29,99
        30: 7999,   # R$ 79,99
    },
    "boost": {
        1: 999,     # R$ 9,99
        3: 2499,    # R$ 24,99
        7: 1990,    # R$ 19,90
    },
}


def resolve_amount(plan_type: str, duration_days: int) -> int:
    """Valor em centavos do par (plano, duração); par desconhecido é ValidationError."""
    plan = PRICING.get(plan_type)
    if plan is None:
        raise ValidationError("Plano inválido: deve ser premium, featured ou boost")
    amount = plan.get(duration_days)
    if amount is None:
        raise ValidationError(
            f"Duração {duration_days} não disponível para o plano {plan_type}"
        )
    return amount
