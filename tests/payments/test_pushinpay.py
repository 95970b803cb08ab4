"""PushInPayGateway sobre httpx.MockTransport: fallback de endpoints, erros fatais e body."""

import json

import httpx
import pytest

from pixpay.errors import AuthError, ConfigError, UnavailableError, ValidationError
from pixpay.payments.gateway.base import CreateChargeRequest, Payer
from pixpay.payments.gateway.pushinpay import (
    CREATE_PATHS,
    PushInPayGateway,
    build_charge_body,
)

BASE_URL = "https://provider.test/app"
API_KEY = "pk_live_1234567890abcdef"

CHARGE_JSON = {
    "id": "tx-123",
    "pix_copia_e_cola": "00020126580014br.gov.bcb.pix",
    "qr_code_base64": "iVBORw0KGgo=",
    "status": "created",
}


def _request(**kwargs) -> CreateChargeRequest:
    params = dict(
        amount_cents=4999,
        description="PREMIUM - Grupo - 30 dias",
        payer=Payer(email="fulano@example.com", name="Fulano"),
        external_reference="u1-g1-1736510400000",
        callback_url="https://app.test/payments/webhook",
    )
    params.update(kwargs)
    return CreateChargeRequest(**params)


def _gateway(handler):
    calls = []

    def recording(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    gateway = PushInPayGateway(API_KEY, BASE_URL, timeout=5, transport=httpx.MockTransport(recording))
    return gateway, calls


def _paths(calls):
    return [request.url.path.replace("/app", "", 1) for request in calls]


def test_fallback_succeeds_on_third_candidate_and_stops():
    def handler(request):
        if request.url.path.endswith("/pix/create") and request.url.path != "/app/pix/create":
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(201, json=CHARGE_JSON)

    gateway, calls = _gateway(handler)
    result = gateway.create_charge(_request())

    assert _paths(calls) == list(CREATE_PATHS[:3])
    assert result.charge_id == "tx-123"
    assert result.pix_code == "00020126580014br.gov.bcb.pix"
    assert result.qr_code_image == "data:image/png;base64,iVBORw0KGgo="


def test_auth_failure_short_circuits_on_first_candidate():
    gateway, calls = _gateway(lambda request: httpx.Response(401, json={"message": "Unauthenticated"}))

    with pytest.raises(AuthError):
        gateway.create_charge(_request())
    assert _paths(calls) == [CREATE_PATHS[0]]


def test_bad_request_short_circuits_with_provider_message():
    def handler(request):
        if request.url.path == "/app/v1/pix/create":
            return httpx.Response(404)
        return httpx.Response(400, json={"message": "O valor mínimo é R$ 0,50"})

    gateway, calls = _gateway(handler)
    with pytest.raises(ValidationError) as exc_info:
        gateway.create_charge(_request())
    assert "O valor mínimo é R$ 0,50" in exc_info.value.message
    assert len(calls) == 2


def test_all_candidates_failing_is_unavailable_without_leaking_secrets():
    def handler(request):
        raise httpx.ConnectTimeout("timeout", request=request)

    gateway, calls = _gateway(handler)
    with pytest.raises(UnavailableError) as exc_info:
        gateway.create_charge(_request())
    assert len(calls) == len(CREATE_PATHS)
    message = exc_info.value.message
    assert API_KEY not in message
    assert "/v1/pix/create" not in message


def test_success_without_pix_code_stops_probing():
    gateway, calls = _gateway(lambda request: httpx.Response(200, json={"id": "tx-1"}))

    with pytest.raises(UnavailableError):
        gateway.create_charge(_request())
    assert len(calls) == 1


def test_malformed_expiry_and_amount_are_ignored():
    body = {**CHARGE_JSON, "expiresAt": 9e11, "amount": "Infinity"}
    gateway, calls = _gateway(lambda request: httpx.Response(201, json=body))

    result = gateway.create_charge(_request())
    assert result.charge_id == "tx-123"
    assert result.expires_at is None
    assert result.amount_cents == 0
    assert len(calls) == 1


def test_invalid_request_makes_no_network_call():
    gateway, calls = _gateway(lambda request: httpx.Response(201, json=CHARGE_JSON))

    with pytest.raises(ValidationError):
        gateway.create_charge(_request(payer=Payer(email="sem-arroba", name="Fulano")))
    with pytest.raises(ValidationError):
        gateway.create_charge(_request(amount_cents=0))
    with pytest.raises(ValidationError):
        gateway.create_charge(_request(description="  "))
    with pytest.raises(ValidationError):
        gateway.create_charge(_request(payer=Payer(email="a@b.co", name="")))
    assert calls == []


def test_request_carries_bearer_and_body_in_reais():
    gateway, calls = _gateway(lambda request: httpx.Response(201, json=CHARGE_JSON))
    gateway.create_charge(_request())

    sent = calls[0]
    assert sent.headers["Authorization"] == f"Bearer {API_KEY}"
    body = json.loads(sent.content)
    assert body["amount"] == 49.99
    assert body["externalReference"] == "u1-g1-1736510400000"
    assert body["expiresIn"] == 3600
    assert body["callbackUrl"] == "https://app.test/payments/webhook"
    assert body["payer"] == {"email": "fulano@example.com", "name": "Fulano"}


def test_build_charge_body_defaults():
    body = build_charge_body(_request(external_reference=None, callback_url=None))
    assert body["externalReference"].startswith("payment-")
    assert "callbackUrl" not in body


def test_get_status_probes_status_paths():
    def handler(request):
        if request.url.path == "/app/transactions/tx-123":
            return httpx.Response(200, json={"id": "tx-123", "status": "paid", "paidAt": "2025-01-10T12:05:00Z"})
        return httpx.Response(404)

    gateway, calls = _gateway(handler)
    status = gateway.get_status("tx-123")

    assert status.status == "paid"
    assert status.paid_at is not None
    assert _paths(calls)[-1] == "/transactions/tx-123"
    assert len(calls) == 5
    assert all(request.method == "GET" for request in calls)


def test_get_status_auth_failure_is_fatal():
    gateway, calls = _gateway(lambda request: httpx.Response(403))
    with pytest.raises(AuthError):
        gateway.get_status("tx-123")
    assert len(calls) == 1


def test_missing_api_key_is_config_error():
    with pytest.raises(ConfigError):
        PushInPayGateway("  ", BASE_URL)
