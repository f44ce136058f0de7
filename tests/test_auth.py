import httpx
import pytest

from crm.core.errors import AuthFault
from crm.core.security import IdentityProviderVerifier, SharedSecretVerifier
from tests.conftest import make_token


@pytest.mark.anyio
async def test_routes_require_a_bearer_token(anonymous_client):
    response = await anonymous_client.get("/clients")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"

    response = await anonymous_client.delete("/orders/1")
    assert response.status_code == 401


@pytest.mark.anyio
async def test_invalid_or_expired_token_is_forbidden(anonymous_client):
    response = await anonymous_client.get("/orders", headers={"Authorization": f"Bearer {make_token('wrong')}"})
    assert response.status_code == 403

    expired = make_token(expires_in=-60)
    response = await anonymous_client.get("/orders", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 403


@pytest.mark.anyio
async def test_public_routes_do_not_require_auth(anonymous_client):
    assert (await anonymous_client.get("/health")).json() == {"status": "ok"}
    assert (await anonymous_client.get("/")).status_code == 200


@pytest.mark.anyio
async def test_shared_secret_verifier_checks_audience():
    verifier = SharedSecretVerifier("s3cret", ["HS256"], audience="authenticated")
    with pytest.raises(AuthFault):
        await verifier.verify(make_token("s3cret", aud="someone-else"))
    claims = await verifier.verify(make_token("s3cret", aud="authenticated"))
    assert claims["sub"] == "user-1"


@pytest.mark.anyio
async def test_identity_provider_verifier():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["apikey"] == "anon"
        if request.headers["Authorization"] == "Bearer good":
            return httpx.Response(200, json={"id": "user-1"})
        return httpx.Response(401, json={"msg": "invalid JWT"})

    verifier = IdentityProviderVerifier(
        "https://idp.example.com/auth/v1/user",
        api_key="anon",
        transport=httpx.MockTransport(handler),
    )
    try:
        assert await verifier.verify("good") == {"id": "user-1"}
        with pytest.raises(AuthFault) as excinfo:
            await verifier.verify("bad")
        assert excinfo.value.status_code == 403
    finally:
        await verifier.aclose()


@pytest.mark.anyio
async def test_identity_provider_unreachable_is_unauthorized():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    verifier = IdentityProviderVerifier("https://idp.example.com/user", transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(AuthFault) as excinfo:
            await verifier.verify("token")
        assert excinfo.value.status_code == 401
    finally:
        await verifier.aclose()


@pytest.mark.anyio
async def test_identity_provider_accepts_non_json_success_body():
    verifier = IdentityProviderVerifier(
        "https://idp.example.com/user",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="OK")),
    )
    try:
        assert await verifier.verify("good") == {}
    finally:
        await verifier.aclose()
