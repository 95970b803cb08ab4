"""Configuração do processo (lida uma vez na inicialização, a partir do ambiente/.env)."""

import os
from dataclasses import dataclass

from pixpay.errors import ConfigError

DEFAULT_API_URL = "https://app.pushinpay.com.br/app"
DEFAULT_DATABASE_URL = "sqlite:///./data/pixpay.db"

KNOWN_API_URLS = (
    "https://app.pushinpay.com.br/app",
    "https://app.pushinpay.com.br",
    "https://api.pushinpay.com.br",
    "https://pushinpay.com.br/api",
)


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} deve ser numérico (recebido: {raw!r})")
    if value <= 0:
        raise ConfigError(f"{name} deve ser maior que zero")
    return value


def mask_secret(value: str) -> str:
    """Prévia segura de um segredo: primeiros e últimos 4 caracteres."""
    if len(value) > 8:
        return f"{value[:4]}...{value[-4:]}"
    return "***"


@dataclass(frozen=True)
class Settings:
    api_key: str
    api_url: str = DEFAULT_API_URL
    timeout_seconds: float = 30.0
    webhook_secret: str = ""
    gateway: str = "pushinpay"
    app_url: str = ""
    database_url: str = DEFAULT_DATABASE_URL
    host: str = "0.0.0.0"
    port: int = 8080

    @property
    def callback_url(self) -> str | None:
        if not self.app_url:
            return None
        return f"{self.app_url.rstrip('/')}/payments/webhook"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Monta Settings a partir das variáveis de ambiente.
        PUSHINPAY_API_KEY ausente é erro fatal (ConfigError), não erro por requisição.
        """
        gateway = (os.getenv("PAYMENT_GATEWAY") or "pushinpay").strip().lower()
        api_key = (os.getenv("PUSHINPAY_API_KEY") or "").strip()
        if not api_key and gateway != "example":
            raise ConfigError("PUSHINPAY_API_KEY não configurada nas variáveis de ambiente")

        api_url = (os.getenv("PUSHINPAY_API_URL") or DEFAULT_API_URL).strip().rstrip("/")
        if not api_url.startswith(("http://", "https://")):
            raise ConfigError(
                f"URL inválida da PushInPay: {api_url}. Deve começar com http:// ou https://"
            )

        raw_port = (os.getenv("WEBHOOK_PORT") or "8080").strip()
        try:
            port = int(raw_port)
        except ValueError:
            raise ConfigError(f"WEBHOOK_PORT inválida: {raw_port!r}")

        return cls(
            api_key=api_key,
            api_url=api_url,
            timeout_seconds=_float_env("PUSHINPAY_TIMEOUT", 30.0),
            webhook_secret=(os.getenv("PUSHINPAY_WEBHOOK_SECRET") or "").strip(),
            gateway=gateway,
            app_url=(os.getenv("APP_URL") or "").strip(),
            database_url=(os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL).strip(),
            host=(os.getenv("WEBHOOK_HOST") or "0.0.0.0").strip(),
            port=port,
        )

    def report(self) -> dict:
        """Resumo da configuração sem expor dados sensíveis (diagnóstico)."""
        host = self.api_url.split("://", 1)[-1].split("/")[0]
        known = any(host == url.split("://", 1)[-1].split("/")[0] for url in KNOWN_API_URLS)
        recommendations = []
        if not self.api_key:
            recommendations.append({
                "type": "error",
                "message": "PUSHINPAY_API_KEY não configurada",
                "action": "Adicione PUSHINPAY_API_KEY no arquivo .env",
            })
        if not known:
            recommendations.append({
                "type": "info",
                "message": "URL não está nas URLs conhecidas da PushInPay",
                "action": "Verifique se a URL está correta na documentação oficial",
                "knownUrls": list(KNOWN_API_URLS),
            })
        if not self.webhook_secret:
            recommendations.append({
                "type": "warning",
                "message": "PUSHINPAY_WEBHOOK_SECRET não configurado",
                "action": "Sem segredo, a assinatura do webhook não é verificada",
            })
        if not self.app_url:
            recommendations.append({
                "type": "warning",
                "message": "APP_URL não configurada",
                "action": "Sem APP_URL a cobrança é criada sem callbackUrl",
            })
        return {
            "config": {
                "apiKey": {
                    "present": bool(self.api_key),
                    "length": len(self.api_key),
                    "preview": mask_secret(self.api_key) if self.api_key else None,
                },
                "baseUrl": {"value": self.api_url, "known": known},
                "appUrl": {"present": bool(self.app_url), "value": self.app_url or None},
                "gateway": self.gateway,
                "timeoutSeconds": self.timeout_seconds,
                "webhookSignature": bool(self.webhook_secret),
                "status": {"configured": bool(self.api_key) or self.gateway == "example"},
            },
            "recommendations": recommendations,
        }
