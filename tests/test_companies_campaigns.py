from app.core import roles
from app.core.config import settings


def test_company_creation_and_access(test_context, seed, headers_for):
    client, _ = test_context
    founder = seed.user()
    outsider = seed.user(role=roles.COMPANY_ADMINISTRATOR, company_id=seed.company().id)

    res = client.post(
        "/api/companies",
        json={"name": "Acme GmbH", "email": "Office@Acme-Gifts.com"},
        headers=headers_for(founder),
    )
    assert res.status_code == 201, res.text
    company = res.json()["company"]
    assert company["ownerId"] == founder.id
    assert company["email"] == "office@acme-gifts.com"

    res = client.post(
        "/api/companies",
        json={"name": "Acme Again", "email": "office@acme-gifts.com"},
        headers=headers_for(founder),
    )
    assert res.status_code == 409

    assert client.get(f"/api/companies/{company['id']}", headers=headers_for(founder)).status_code == 200
    res = client.get(f"/api/companies/{company['id']}", headers=headers_for(outsider))
    assert res.status_code == 403
    assert res.json()["errors"]["message"] == "Only the owner, admin or employee can perform this action"

    res = client.put(
        f"/api/companies/{company['id']}",
        json={"phone": "+49 30 123456"},
        headers=headers_for(founder),
    )
    assert res.status_code == 200, res.text
    assert res.json()["company"]["phone"] == "+49 30 123456"
    assert res.json()["company"]["name"] == "Acme GmbH"


def test_employee_reads_but_cannot_edit_company(test_context, seed, headers_for):
    client, _ = test_context
    company = seed.company()
    employee = seed.user(role=roles.EMPLOYEE, company_id=company.id)

    assert client.get(f"/api/companies/{company.id}", headers=headers_for(employee)).status_code == 200
    res = client.put(f"/api/companies/{company.id}", json={"name": "Renamed"}, headers=headers_for(employee))
    assert res.status_code == 403


def test_campaign_restore_and_listing(test_context, seed, headers_for, published):
    client, session_local = test_context
    company = seed.company()
    company_admin = seed.user(role=roles.COMPANY_ADMINISTRATOR, company_id=company.id)
    headers = headers_for(company_admin)
    url = f"/api/companies/{company.id}/campaigns"

    res = client.post(url, json={"name": "Welcome Pack", "type": "onboarding", "quota": 50}, headers=headers)
    assert res.status_code == 201, res.text
    campaign = res.json()["campaign"]

    res = client.post(url, json={"name": "Welcome Pack", "type": "onboarding", "quota": 80}, headers=headers)
    assert res.status_code == 200
    assert res.json()["campaign"]["id"] == campaign["id"]
    assert res.json()["campaign"]["quota"] == 80

    client.post(url, json={"name": "Secret", "type": "other", "isHidden": True}, headers=headers)
    listed = client.get(url, headers=headers).json()
    assert [item["name"] for item in listed["campaigns"]] == ["Welcome Pack"]

    res = client.put(f"/api/campaigns/{campaign['id']}", json={"quota": 120}, headers=headers)
    assert res.status_code == 200, res.text
    assert res.json()["campaign"]["quota"] == 120
    assert [(item.topic, item.attributes) for item in published] == [
        ("quota", {"campaignId": campaign["id"], "environment": settings.env})
    ]

    res = client.post(url, json={"name": "Bad", "type": "funeral"}, headers=headers)
    assert res.status_code == 422


def test_hidden_campaign_is_visible_to_admin_only(test_context, seed, headers_for):
    client, _ = test_context
    company = seed.company()
    campaign = seed.campaign(company.id, is_hidden=True)
    manager = seed.user(role=roles.CAMPAIGN_MANAGER, company_id=company.id)
    admin = seed.user(role=roles.ADMIN)

    res = client.get(f"/api/campaigns/{campaign.id}", headers=headers_for(manager))
    assert res.status_code == 403
    assert client.get(f"/api/campaigns/{campaign.id}", headers=headers_for(admin)).status_code == 200


def test_campaign_addresses_replace_by_type(test_context, seed, headers_for):
    client, _ = test_context
    company = seed.company()
    campaign = seed.campaign(company.id)
    manager = seed.user(role=roles.CAMPAIGN_MANAGER, company_id=company.id)
    headers = headers_for(manager)
    url = f"/api/campaigns/{campaign.id}/campaign-addresses"

    res = client.post(
        url,
        json={"campaignAddresses": [{"type": "billing", "city": "Berlin"}, {"type": "return", "city": "Bonn"}]},
        headers=headers,
    )
    assert res.status_code == 201, res.text
    first = {item["type"]: item for item in res.json()["campaignAddresses"]}

    res = client.post(url, json={"campaignAddresses": [{"type": "billing", "city": "Munich"}]}, headers=headers)
    replaced = res.json()["campaignAddresses"][0]
    assert replaced["id"] == first["billing"]["id"]
    assert replaced["city"] == "Munich"

    res = client.delete(f"/api/campaign-addresses/{first['return']['id']}", headers=headers)
    assert res.status_code == 204
    res = client.delete(f"/api/campaign-addresses/{first['return']['id']}", headers=headers)
    assert res.status_code == 404

    res = client.post(url, json={"campaignAddresses": [{"type": "shipping"}]}, headers=headers)
    assert res.status_code == 422
