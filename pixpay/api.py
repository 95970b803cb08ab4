"""App FastAPI: criação de cobrança PIX, status para polling e webhook da PushInPay."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from pixpay.config import Settings
from pixpay.db.session import build_engine, create_all_tables
from pixpay.errors import AuthError, NotFoundError, PaymentError, ValidationError
from pixpay.payments.collaborators import (
    ProfileDirectory,
    SqlEntitlementUpdater,
    SqlListingDirectory,
    SqlProfileDirectory,
)
from pixpay.payments.gateway.base import PaymentGatewayProtocol
from pixpay.payments.gateway.factory import build_gateway
from pixpay.payments.reconciliation import ReconciliationReader
from pixpay.payments.service import PaymentService
from pixpay.payments.store import PaymentStore
from pixpay.payments.webhook import Notification, WebhookProcessor

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    engine: Engine
    gateway: PaymentGatewayProtocol
    store: PaymentStore
    profiles: ProfileDirectory
    payments: PaymentService
    webhooks: WebhookProcessor
    reader: ReconciliationReader


def build_services(
    settings: Settings,
    *,
    engine: Optional[Engine] = None,
    gateway: Optional[PaymentGatewayProtocol] = None,
) -> Services:
    """Monta o grafo de dependências a partir da configuração (sem singletons de módulo)."""
    engine = engine or build_engine(settings.database_url)
    create_all_tables(engine)
    gateway = gateway or build_gateway(settings)
    store = PaymentStore(engine)
    profiles = SqlProfileDirectory(engine)
    if not settings.webhook_secret:
        logger.warning("PUSHINPAY_WEBHOOK_SECRET não configurado: assinatura do webhook não será verificada")
    return Services(
        settings=settings,
        engine=engine,
        gateway=gateway,
        store=store,
        profiles=profiles,
        payments=PaymentService(
            gateway,
            store,
            profiles,
            SqlListingDirectory(engine),
            callback_url=settings.callback_url,
        ),
        webhooks=WebhookProcessor(store, SqlEntitlementUpdater(), secret=settings.webhook_secret),
        reader=ReconciliationReader(store, gateway),
    )


def _error(status_code: int, error: str, details: Any = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


def get_services(request: Request) -> Services:
    return request.app.state.services


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Identidade do chamador, resolvida pelo colaborador de autenticação (fora deste núcleo)."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Não autorizado")
    return x_user_id.strip()


def _is_admin(services: Services, user_id: str) -> bool:
    payer = services.profiles.get_payer(user_id)
    return bool(payer and payer.is_admin)


def create_app(services: Services) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        close = getattr(services.gateway, "close", None)
        if close:
            close()

    app = FastAPI(title="PixPay Payments", lifespan=lifespan)
    app.state.services = services

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "JSON inválido", "O corpo da requisição deve ser um JSON válido")

    @app.get("/payments/config")
    def payments_config(svc: Services = Depends(get_services)) -> dict:
        """Diagnóstico da configuração, sem dados sensíveis."""
        return svc.settings.report()

    @app.post("/payments", status_code=201)
    def create_payment(
        body: dict[str, Any] = Body(default={}),
        user_id: str = Depends(current_user_id),
        svc: Services = Depends(get_services),
    ):
        group_id = body.get("groupId") if isinstance(body, dict) else None
        plan_type = body.get("planType") if isinstance(body, dict) else None
        duration = body.get("duration") if isinstance(body, dict) else None
        if not group_id or not plan_type or not duration:
            return _error(
                400,
                "Dados incompletos",
                "groupId, planType e duration são obrigatórios",
            )
        if not isinstance(duration, int) or isinstance(duration, bool):
            return _error(400, "Duração inválida", "duration deve ser um número inteiro de dias")
        try:
            created = svc.payments.create_payment(user_id, str(group_id), str(plan_type), duration)
        except ValidationError as e:
            return _error(400, "Dados inválidos", e.message)
        except NotFoundError as e:
            return _error(404, "Grupo não encontrado", e.message)
        except AuthError:
            logger.error("Credencial rejeitada pela PushInPay ao criar cobrança")
            return _error(
                500,
                "Erro ao criar pagamento PIX",
                "Falha de autenticação com o provedor de pagamento",
            )
        except PaymentError as e:
            return _error(500, "Erro ao criar pagamento PIX", e.message)
        return {
            "paymentId": created.payment_id,
            "externalId": created.external_id,
            "pixCode": created.pix_code,
            "qrCodeImage": created.qr_code_image,
            "amount": created.amount,
            "expiresAt": created.expires_at.isoformat(),
            "status": created.status,
        }

    @app.get("/payments/{payment_id}/status")
    def payment_status(
        payment_id: str,
        user_id: str = Depends(current_user_id),
        svc: Services = Depends(get_services),
    ):
        try:
            view = svc.reader.get_status(payment_id)
        except NotFoundError:
            return _error(404, "Pagamento não encontrado")
        if view.user_id != user_id and not _is_admin(svc, user_id):
            return _error(403, "Acesso negado")
        return view.as_dict()

    @app.get("/payments/{payment_id}/provider-status")
    def provider_status(
        payment_id: str,
        user_id: str = Depends(current_user_id),
        svc: Services = Depends(get_services),
    ):
        """Consulta a PushInPay sem persistir nada (somente admin)."""
        if not _is_admin(svc, user_id):
            return _error(403, "Acesso negado")
        try:
            status = svc.reader.get_provider_status(payment_id)
        except NotFoundError:
            return _error(404, "Pagamento não encontrado")
        except PaymentError as e:
            return _error(502, "Erro ao consultar status na PushInPay", e.message)
        return {
            "transactionId": status.charge_id,
            "status": status.status,
            "paidAt": status.paid_at.isoformat() if status.paid_at else None,
            "expiresAt": status.expires_at.isoformat() if status.expires_at else None,
            "amount": status.amount_cents,
        }

    @app.post("/payments/webhook")
    async def payments_webhook(request: Request, svc: Services = Depends(get_services)):
        """
        Recebe notificação da PushInPay.
        Body esperado: {"transactionId": "...", "status": "paid", "amount": 49.99, "externalReference": "..."}
        """
        raw = await request.body()
        try:
            svc.webhooks.verify(raw, request.headers)
        except AuthError as e:
            logger.warning("Webhook rejeitado: %s", e.message)
            return _error(401, "Assinatura inválida", e.message)
        try:
            body = json.loads(raw or b"{}")
        except ValueError:
            return _error(400, "JSON inválido")
        if not isinstance(body, dict):
            return _error(400, "JSON inválido")

        try:
            notification = Notification.from_payload(body)
            result = await asyncio.to_thread(svc.webhooks.handle, notification)
        except NotFoundError:
            return _error(404, "Payment not found")
        except Exception as e:
            logger.exception("Erro ao processar webhook: %s", body.get("transactionId"))
            return _error(500, "Webhook processing failed", str(e))
        return result.as_dict()

    return app
