"""
Tests: Bearer-token identity, tenant context and the public health surface.
"""

import jwt as pyjwt
import pytest

from proposalhub.services import jwt_service


def test_token_roundtrip_converts_subject_to_int(tenant):
    payload = jwt_service.decode_access_token(jwt_service.generate_access_token(tenant.id, "admin"))
    assert payload["sub"] == tenant.id
    assert payload["role"] == "admin"
    assert payload["type"] == "access"


def test_decode_rejects_non_access_token(app):
    token = pyjwt.encode({"sub": "1", "type": "refresh"}, app.config["JWT_SECRET_KEY"], algorithm="HS256")
    with pytest.raises(pyjwt.InvalidTokenError):
        jwt_service.decode_access_token(token)


def test_decode_rejects_non_numeric_subject(app):
    token = pyjwt.encode({"sub": "abc"}, app.config["JWT_SECRET_KEY"], algorithm="HS256")
    with pytest.raises(pyjwt.InvalidTokenError):
        jwt_service.decode_access_token(token)


def test_missing_token_is_401(client):
    res = client.get("/api/v1/proposals")
    assert res.status_code == 401
    assert res.get_json()["code"] == "ERR_UNAUTHORIZED"


def test_expired_token_is_401(client, tenant):
    token = jwt_service.generate_access_token(tenant.id, expires_in=-10)
    res = client.get("/api/v1/proposals", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_token_signed_with_other_secret_is_401(client, tenant):
    token = pyjwt.encode({"sub": str(tenant.id), "type": "access"}, "not-the-secret", algorithm="HS256")
    res = client.get("/api/v1/proposals", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_malformed_header_is_401(client):
    res = client.get("/api/v1/proposals", headers={"Authorization": "Token abc"})
    assert res.status_code == 401


def test_unknown_tenant_is_401(client):
    token = jwt_service.generate_access_token(424242)
    res = client.get("/api/v1/proposals", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_inactive_tenant_is_403(client, make_tenant, auth_headers):
    t = make_tenant(is_active=False)
    res = client.get("/api/v1/proposals", headers=auth_headers(t))
    assert res.status_code == 403
    assert res.get_json()["code"] == "ERR_FORBIDDEN"


def test_valid_token_reaches_route(client, tenant, auth_headers):
    res = client.get("/api/v1/proposals", headers=auth_headers(tenant))
    assert res.status_code == 200


def test_admin_role_claim_grants_admin(client, make_tenant, auth_headers):
    t = make_tenant(role="user")
    res = client.get("/api/v1/admin/proposals", headers=auth_headers(t, role="admin"))
    assert res.status_code == 200


def test_admin_tenant_row_grants_admin(client, make_tenant, auth_headers):
    t = make_tenant(role="admin")
    res = client.get("/api/v1/admin/proposals", headers=auth_headers(t, role="user"))
    assert res.status_code == 200


@pytest.mark.parametrize("path", ["/api/v1/health", "/api/v1/health/ready", "/api/v1/health/live"])
def test_health_is_public(client, path):
    res = client.get(path)
    assert res.status_code == 200


def test_live_reports_plan_catalog(client):
    body = client.get("/api/v1/health/live").get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["plans"]["count"] == 4


def test_request_id_is_echoed(client):
    res = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
    assert res.headers["X-Request-ID"] == "abc123"
    assert "X-Request-Duration-Ms" in res.headers


def test_request_id_is_generated(client):
    res = client.get("/api/v1/health")
    assert len(res.headers["X-Request-ID"]) == 12


def test_unknown_api_route_is_json_404(client):
    res = client.get("/api/v1/nope")
    assert res.status_code == 404
    assert res.is_json


def test_oversized_body_is_413(client, tenant, auth_headers):
    res = client.post("/api/v1/proposals", data=b"x" * (2 * 1024 * 1024 + 1),
                      content_type="application/json", headers=auth_headers(tenant))
    assert res.status_code == 413


def test_request_body_cap_is_two_megabytes(app):
    assert app.config["MAX_CONTENT_LENGTH"] == 2 * 1024 * 1024


def test_small_invalid_body_is_a_validation_error(client, tenant, auth_headers):
    res = client.post("/api/v1/proposals", data=b"x" * 1024,
                      content_type="application/json", headers=auth_headers(tenant))
    assert res.status_code == 400
