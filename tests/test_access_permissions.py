from app.core import roles
from app.core.permissions import PERMISSION_DENIED_MESSAGE, PENDING_ORDERS


def _grant(module: str = PENDING_ORDERS, role: str = roles.EMPLOYEE, permission: str = "read") -> dict:
    return {"name": f"{role} {module}", "module": module, "role": role, "permission": permission}


def test_company_override_grants_and_restores(test_context, seed, headers_for):
    client, _ = test_context
    company = seed.company()
    owner = seed.user(company_id=company.id)
    order = seed.pending_order(owner, company_id=company.id)
    company_admin = seed.user(role=roles.COMPANY_ADMINISTRATOR, company_id=company.id)
    employee = seed.user(role=roles.EMPLOYEE, company_id=company.id)
    admin_headers = headers_for(company_admin)
    employee_headers = headers_for(employee)

    assert client.get(f"/api/pending-orders/{order.id}", headers=employee_headers).status_code == 403

    res = client.post(f"/api/companies/{company.id}/access-permissions", json=_grant(), headers=admin_headers)
    assert res.status_code == 201, res.text
    permission = res.json()["accessPermission"]
    assert permission["companyId"] == company.id
    assert permission["permission"] == "read"

    assert client.get(f"/api/pending-orders/{order.id}", headers=employee_headers).status_code == 200
    res = client.put(
        f"/api/pending-orders/{order.id}",
        json={"pendingOrder": {"note": "nope"}},
        headers=employee_headers,
    )
    assert res.status_code == 403

    res = client.delete(f"/api/access-permissions/{permission['id']}", headers=admin_headers)
    assert res.status_code == 204
    assert client.get(f"/api/pending-orders/{order.id}", headers=employee_headers).status_code == 403

    res = client.post(
        f"/api/companies/{company.id}/access-permissions",
        json=_grant(permission="readwrite"),
        headers=admin_headers,
    )
    assert res.status_code == 200, res.text
    assert res.json()["statusCode"] == 200
    assert res.json()["accessPermission"]["id"] == permission["id"]
    assert res.json()["accessPermission"]["permission"] == "readwrite"

    listed = client.get(f"/api/companies/{company.id}/access-permissions", headers=admin_headers).json()
    assert [item["id"] for item in listed["accessPermissions"]] == [permission["id"]]
    assert listed["meta"]["total"] == 1


def test_update_access_permission(test_context, seed, headers_for):
    client, _ = test_context
    company = seed.company()
    company_admin = seed.user(role=roles.COMPANY_ADMINISTRATOR, company_id=company.id)
    grant = seed.access_permission(company.id, role=roles.EMPLOYEE, module=PENDING_ORDERS, permission="read")

    res = client.put(
        f"/api/access-permissions/{grant.id}",
        json={"permission": "none"},
        headers=headers_for(company_admin),
    )
    assert res.status_code == 200, res.text
    assert res.json()["accessPermission"]["permission"] == "none"

    res = client.put(
        f"/api/access-permissions/{grant.id}",
        json={"permission": "write"},
        headers=headers_for(company_admin),
    )
    assert res.status_code == 422


def test_delegation_is_limited_to_managed_modules(test_context, seed, headers_for):
    client, _ = test_context
    company = seed.company()
    company_admin = seed.user(role=roles.COMPANY_ADMINISTRATOR, company_id=company.id)
    manager = seed.user(role=roles.CAMPAIGN_MANAGER, company_id=company.id)
    url = f"/api/companies/{company.id}/access-permissions"

    res = client.post(url, json=_grant(module="apiKeys"), headers=headers_for(company_admin))
    assert res.status_code == 403
    assert res.json()["errors"]["message"] == PERMISSION_DENIED_MESSAGE

    res = client.post(url, json=_grant(role=roles.ADMIN), headers=headers_for(company_admin))
    assert res.status_code == 403

    res = client.post(url, json=_grant(), headers=headers_for(manager))
    assert res.status_code == 403

    res = client.post(url, json=_grant(module="invoices"), headers=headers_for(company_admin))
    assert res.status_code == 422


def test_company_owner_delegates_like_company_administrator(test_context, seed, headers_for):
    client, _ = test_context
    owner = seed.user()
    company = seed.company(owner_id=owner.id)

    res = client.post(
        f"/api/companies/{company.id}/access-permissions",
        json=_grant(module="campaigns", role=roles.USER),
        headers=headers_for(owner),
    )
    assert res.status_code == 201, res.text

    res = client.post(
        f"/api/companies/{company.id}/access-permissions",
        json=_grant(module="apiKeys"),
        headers=headers_for(owner),
    )
    assert res.status_code == 403


def test_default_matrix_and_admin_endpoints(test_context, seed, headers_for):
    client, _ = test_context
    company = seed.company()
    company_admin = seed.user(role=roles.COMPANY_ADMINISTRATOR, company_id=company.id)
    loner = seed.user()
    admin = seed.user(role=roles.ADMIN)

    res = client.get("/api/access-permissions/default", headers=headers_for(company_admin))
    assert res.status_code == 200, res.text
    matrix = res.json()["accessPermissions"]
    assert {"module": "campaigns", "role": "User", "permission": "read"} in matrix
    assert client.get("/api/access-permissions/default", headers=headers_for(loner)).status_code == 403

    res = client.get("/api/access-permissions", headers=headers_for(company_admin))
    assert res.status_code == 403
    assert res.json()["errors"]["message"] == "Only an admin can perform this action"

    res = client.post(
        "/api/access-permissions",
        json={**_grant(), "companyId": "missing"},
        headers=headers_for(admin),
    )
    assert res.status_code == 404

    res = client.post("/api/access-permissions", json=_grant(), headers=headers_for(admin))
    assert res.status_code == 201, res.text
    assert res.json()["accessPermission"]["companyId"] is None

    listed = client.get("/api/access-permissions", headers=headers_for(admin)).json()
    assert listed["meta"]["total"] == 1


def test_privacy_rules_restore_on_recreate(test_context, seed, headers_for):
    client, _ = test_context
    company = seed.company()
    company_admin = seed.user(role=roles.COMPANY_ADMINISTRATOR, company_id=company.id)
    employee = seed.user(role=roles.EMPLOYEE, company_id=company.id)
    headers = headers_for(company_admin)
    url = f"/api/companies/{company.id}/privacy-rules"
    body = {"module": "orders", "role": "campaignmanager"}

    res = client.post(url, json=body, headers=headers)
    assert res.status_code == 201, res.text
    rule = res.json()["privacyRule"]
    assert rule["role"] == roles.CAMPAIGN_MANAGER
    assert rule["isEnabled"] is True

    assert client.post(url, json=body, headers=headers_for(employee)).status_code == 403

    assert client.delete(f"/api/privacy-rules/{rule['id']}", headers=headers).status_code == 204
    assert client.get(url, headers=headers).json()["privacyRules"] == []

    res = client.post(url, json=body, headers=headers)
    assert res.status_code == 200
    assert res.json()["privacyRule"]["id"] == rule["id"]


def test_api_key_scopes_requests(test_context, seed, headers_for):
    client, _ = test_context
    company = seed.company()
    campaign = seed.campaign(company.id)
    owner = seed.user(company_id=company.id)
    order = seed.pending_order(owner, company_id=company.id, campaign_id=campaign.id)
    bearer = headers_for(owner)

    res = client.post(
        "/api/api-keys",
        json={"name": "ERP sync", "permissions": [{"module": "pendingOrders", "permission": "read"}]},
        headers=bearer,
    )
    assert res.status_code == 201, res.text
    created = res.json()["apiKey"]
    raw_key = created["apiKey"]
    assert raw_key.startswith("gdk_live_")
    assert created["keyPrefix"] == raw_key[:20]
    assert created["permissions"] == [{"module": "pendingOrders", "permission": "read", "isEnabled": True}]
    key_headers = {"X-Api-Key": raw_key}

    assert client.get(f"/api/pending-orders/{order.id}", headers=key_headers).status_code == 200
    res = client.delete(f"/api/pending-orders/{order.id}", headers=key_headers)
    assert res.status_code == 403
    assert res.json()["errors"]["message"] == PERMISSION_DENIED_MESSAGE
    assert client.get("/api/api-keys", headers=key_headers).status_code == 403

    listed = client.get("/api/api-keys", headers=bearer).json()["apiKeys"]
    assert [item["id"] for item in listed] == [created["id"]]
    assert listed[0]["lastUsedAt"] is not None
    assert "apiKey" not in listed[0]

    stranger = seed.user(company_id=company.id)
    res = client.delete(f"/api/api-keys/{created['id']}", headers=headers_for(stranger))
    assert res.status_code == 403
    assert res.json()["errors"]["message"] == "Only the owner or admin can perform this action"

    assert client.delete(f"/api/api-keys/{created['id']}", headers=bearer).status_code == 204
    res = client.get(f"/api/pending-orders/{order.id}", headers=key_headers)
    assert res.status_code == 401
    assert client.delete(f"/api/api-keys/{created['id']}", headers=bearer).status_code == 404


def test_api_key_without_scopes_is_denied(test_context, seed, headers_for):
    client, _ = test_context
    owner = seed.user()
    order = seed.pending_order(owner)

    res = client.post("/api/api-keys", json={"name": "Empty"}, headers=headers_for(owner))
    assert res.status_code == 201, res.text
    key_headers = {"X-Api-Key": res.json()["apiKey"]["apiKey"]}

    assert client.get(f"/api/pending-orders/{order.id}", headers=key_headers).status_code == 403
    assert client.get("/api/pending-orders", headers={"X-Api-Key": "gdk_live_unknown"}).status_code == 401


def test_user_management(test_context, seed, headers_for):
    client, _ = test_context
    company = seed.company()
    user = seed.user()
    other = seed.user()
    admin = seed.user(role=roles.ADMIN)

    assert client.get(f"/api/users/{user.id}", headers=headers_for(user)).status_code == 200
    res = client.get(f"/api/users/{user.id}", headers=headers_for(other))
    assert res.status_code == 403
    assert res.json()["errors"]["message"] == "Only the owner or admin can perform this action"

    res = client.patch(f"/api/users/{user.id}/role", json={"role": "employee"}, headers=headers_for(other))
    assert res.status_code == 403

    res = client.patch(f"/api/users/{user.id}/role", json={"role": "employee"}, headers=headers_for(admin))
    assert res.status_code == 200, res.text
    assert res.json()["user"]["role"] == roles.EMPLOYEE

    res = client.patch(f"/api/users/{user.id}/role", json={"role": "Owner"}, headers=headers_for(admin))
    assert res.status_code == 422

    res = client.patch(f"/api/users/{user.id}/company", json={"companyId": "missing"}, headers=headers_for(admin))
    assert res.status_code == 404

    res = client.patch(f"/api/users/{user.id}/company", json={"companyId": company.id}, headers=headers_for(admin))
    assert res.status_code == 200, res.text
    assert res.json()["user"]["companyId"] == company.id

    res = client.patch("/api/users/missing/company", json={"companyId": None}, headers=headers_for(admin))
    assert res.status_code == 404
