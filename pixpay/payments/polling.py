"""
Polling do lado do cliente: consulta o status a cada 5 segundos até um status
terminal ou até o prazo local do PIX vencer. Falhas de leitura contam como
"ainda pendente" (erro transitório não é falha de pagamento).
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

import httpx

from pixpay.db.models import EXPIRED, PENDING, TERMINAL_STATUSES, utcnow
from pixpay.errors import PaymentError

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 5.0


class HttpStatusFetcher:
    """
    Fetcher para GET /payments/{id}/status da própria API.
    Sem client injetado, abre um httpx.Client próprio e o fecha em close().
    """

    def __init__(
        self,
        base_url: str,
        payment_id: str,
        user_id: str,
        *,
        client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self._payment_id = payment_id
        self._user_id = user_id
        self._owns_client = client is None
        self._http = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def __call__(self) -> dict:
        response = self._http.get(
            f"/payments/{self._payment_id}/status",
            headers={"X-User-Id": self._user_id},
        )
        response.raise_for_status()
        return response.json()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> "HttpStatusFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def poll_payment_status(
    fetch: Callable[[], dict],
    expires_at: datetime,
    *,
    interval: float = POLL_INTERVAL_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], datetime] = utcnow,
) -> str:
    """Retorna paid, cancelled ou expired. O chamador pode abandonar a qualquer momento."""
    while True:
        try:
            data = fetch()
        except (httpx.HTTPError, PaymentError, ValueError) as e:
            logger.warning("Falha ao consultar status, mantendo pendente: %s", e)
            data = {"status": PENDING}

        status = data.get("status") or PENDING
        if status in TERMINAL_STATUSES:
            return status
        if status == EXPIRED or data.get("expired"):
            return EXPIRED
        if clock() >= expires_at:
            return EXPIRED
        sleep(interval)
