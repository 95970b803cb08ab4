"""
Sondagem sequencial de endpoints candidatos.

A documentação da PushInPay e o roteamento real divergem, então cada operação
tenta uma lista ordenada de caminhos. Cada resposta passa por classify_response:
SUCCESS encerra a sondagem, SKIP segue para o próximo candidato e FATAL
interrompe na hora (tentar outros caminhos não resolve credencial nem body inválido).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence

import httpx

from pixpay.errors import AuthError, PaymentError, UnavailableError, ValidationError

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    SUCCESS = "success"
    SKIP = "skip"
    FATAL = "fatal"


@dataclass
class Probe:
    outcome: Outcome
    error: Optional[PaymentError] = None
    data: Any = None


def provider_message(data: Any, default: str) -> str:
    """Mensagem do provedor (message/error/details) quando existir."""
    if isinstance(data, dict):
        for key in ("message", "error", "details"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return default


def _json_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def classify_response(response: httpx.Response) -> Probe:
    """Decide o destino da sondagem a partir de uma resposta HTTP."""
    status = response.status_code
    data = _json_body(response)

    if 200 <= status < 300:
        if isinstance(data, dict) and data:
            return Probe(Outcome.SUCCESS, data=data)
        # 2xx sem JSON (página HTML, corpo vazio): rota errada que responde 200
        return Probe(
            Outcome.SKIP,
            UnavailableError(f"Resposta vazia ou não-JSON (HTTP {status})", status_code=status),
        )
    if status in (404, 405):
        return Probe(
            Outcome.SKIP,
            UnavailableError(f"Rota inexistente (HTTP {status})", status_code=status),
        )
    if status in (401, 403):
        message = provider_message(data, "Erro de autenticação. Verifique sua API Key.")
        return Probe(Outcome.FATAL, AuthError(message, status_code=status, data=data))
    if status == 400:
        message = provider_message(data, "Dados inválidos")
        return Probe(
            Outcome.FATAL,
            ValidationError(f"Erro na requisição: {message}", status_code=status, data=data),
        )
    message = provider_message(data, f"Erro HTTP {status}")
    return Probe(Outcome.SKIP, UnavailableError(message, status_code=status, data=data))


def classify_transport_error(exc: httpx.HTTPError) -> Probe:
    """Timeout e falha de rede são transitórios: segue para o próximo candidato."""
    if isinstance(exc, httpx.TimeoutException):
        return Probe(Outcome.SKIP, UnavailableError("Tempo esgotado ao chamar a PushInPay"))
    return Probe(Outcome.SKIP, UnavailableError("Erro de conexão com a API PushInPay"))


def probe_endpoints(
    send: Callable[[str], httpx.Response],
    paths: Sequence[str],
    *,
    operation: str,
) -> Any:
    """
    Chama send(path) para cada candidato, em ordem, e retorna o JSON do primeiro sucesso.
    Esgotados os candidatos, levanta UnavailableError com a última falha observada.
    """
    last_error: Optional[PaymentError] = None
    for path in paths:
        logger.info("[PushInPay] %s: tentando endpoint %s", operation, path)
        try:
            response = send(path)
        except httpx.HTTPError as exc:
            logger.warning("[PushInPay] %s: falha de rede em %s: %s", operation, path, exc)
            probe = classify_transport_error(exc)
        else:
            probe = classify_response(response)

        if probe.outcome is Outcome.SUCCESS:
            logger.info("[PushInPay] %s: sucesso via %s", operation, path)
            return probe.data
        if probe.outcome is Outcome.FATAL:
            logger.error(
                "[PushInPay] %s: erro fatal em %s (HTTP %s): %s",
                operation,
                path,
                probe.error.status_code,
                probe.error.message,
            )
            raise probe.error
        logger.info("[PushInPay] %s: %s em %s, tentando próximo...", operation, probe.error.message, path)
        last_error = probe.error

    summary = last_error.message if last_error else "nenhum endpoint configurado"
    raise UnavailableError(
        f"Nenhum endpoint da API PushInPay funcionou ({summary})",
        status_code=last_error.status_code if last_error else None,
        data=last_error.data if last_error else None,
    )
