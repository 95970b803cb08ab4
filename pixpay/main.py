"""Entrypoint: carrega configuração, monta os serviços e sobe a API de pagamentos."""

import logging

from dotenv import load_dotenv

from pixpay.api import build_services, create_app
from pixpay.config import Settings, mask_secret
from pixpay.errors import ConfigError

load_dotenv()

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

# Não emite logs de requisição HTTP do httpx (cada sondagem de endpoint geraria uma linha)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def main() -> None:
    try:
        settings = Settings.from_env()
        logger.info(
            "Configuração: gateway=%s api_key=%s base_url=%s",
            settings.gateway,
            mask_secret(settings.api_key) if settings.api_key else "ausente",
            settings.api_url,
        )
        app = create_app(build_services(settings))
    except ConfigError as e:
        raise SystemExit(f"Configuração inválida: {e}")

    import uvicorn
    logger.info("API de pagamentos iniciada (porta %s)", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="warning")


if __name__ == "__main__":
    main()
