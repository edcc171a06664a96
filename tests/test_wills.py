"""
Integration tests for will CRUD, ownership, locking and contacts
"""
import pytest

from tests.conftest import auth_headers


@pytest.fixture
async def owner(create_user):
    return await create_user("owner@example.com")


@pytest.fixture
async def stranger(create_user):
    return await create_user("stranger@example.com")


async def _create_will(client, user, **payload):
    response = await client.post("/api/wills", headers=auth_headers(user), json=payload)
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_will_defaults(client, owner):
    """
    A new will is a draft; choosing a template starts the wizard at the chat step.
    """
    blank = await _create_will(client, owner)
    assert blank["status"] == "draft"
    assert blank["title"] == "My Will"
    assert blank["currentStep"] == "template_selection"

    templated = await _create_will(client, owner, templateId="family", title="Family Will")
    assert templated["currentStep"] == "ai_chat"
    assert templated["templateId"] == "family"

    listing = await client.get("/api/wills", headers=auth_headers(owner))
    assert [w["id"] for w in listing.json()] == [templated["id"], blank["id"]]

    notifications = await client.get("/api/notifications", headers=auth_headers(owner))
    assert sum(n["title"] == "Will Created" for n in notifications.json()) == 2


@pytest.mark.asyncio
async def test_foreign_wills_are_not_found(client, owner, stranger):
    will = await _create_will(client, owner)
    headers = auth_headers(stranger)

    assert (await client.get(f"/api/wills/{will['id']}", headers=headers)).status_code == 404
    assert (await client.put(f"/api/wills/{will['id']}", headers=headers, json={"title": "Mine"})).status_code == 404
    assert (await client.delete(f"/api/wills/{will['id']}", headers=headers)).status_code == 404
    assert (await client.get("/api/wills", headers=headers)).json() == []


@pytest.mark.asyncio
async def test_partial_update_and_completion_rules(client, owner):
    will = await _create_will(client, owner, title="Draft")
    headers = auth_headers(owner)

    updated = await client.put(f"/api/wills/{will['id']}", headers=headers, json={"content": "I leave my house to Ana."})
    assert updated.status_code == 200
    assert updated.json()["title"] == "Draft"
    assert updated.json()["content"] == "I leave my house to Ana."

    empty = await _create_will(client, owner)
    rejected = await client.put(f"/api/wills/{empty['id']}", headers=headers, json={"status": "completed"})
    assert rejected.status_code == 400

    completed = await client.put(f"/api/wills/{will['id']}", headers=headers, json={"status": "completed"})
    assert completed.json()["status"] == "completed"

    blanked = await client.put(f"/api/wills/{will['id']}", headers=headers, json={"content": "   "})
    assert blanked.status_code == 400
    stored = await client.get(f"/api/wills/{will['id']}", headers=headers)
    assert stored.json()["content"] == "I leave my house to Ana."

    reopened = await client.put(f"/api/wills/{will['id']}", headers=headers, json={"status": "draft", "content": ""})
    assert reopened.status_code == 200
    assert reopened.json()["status"] == "draft"


@pytest.mark.asyncio
async def test_locked_will_rejects_changes(client, owner):
    """
    Locking blocks every mutation with 409 until the will is unlocked.
    """
    will = await _create_will(client, owner, content="My estate goes to my sister.")
    headers = auth_headers(owner)
    will_id = will["id"]

    locked = await client.post(f"/api/wills/{will_id}/lock", headers=headers)
    assert locked.json()["status"] == "locked"

    assert (await client.put(f"/api/wills/{will_id}", headers=headers, json={"title": "x"})).status_code == 409
    assert (await client.delete(f"/api/wills/{will_id}", headers=headers)).status_code == 409
    assert (await client.post(f"/api/wills/{will_id}/progress/advance", headers=headers)).status_code == 409
    assert (await client.post(f"/api/wills/{will_id}/contacts", headers=headers, json={"name": "Ana"})).status_code == 409

    # Reads still work
    assert (await client.get(f"/api/wills/{will_id}", headers=headers)).status_code == 200

    unlocked = await client.post(f"/api/wills/{will_id}/unlock", headers=headers)
    assert unlocked.json()["status"] == "draft"
    assert (await client.put(f"/api/wills/{will_id}", headers=headers, json={"title": "x"})).status_code == 200


@pytest.mark.asyncio
async def test_delete_will_cascades(client, owner):
    will = await _create_will(client, owner)
    headers = auth_headers(owner)
    await client.post(f"/api/wills/{will['id']}/contacts", headers=headers, json={"name": "Ana"})

    deleted = await client.delete(f"/api/wills/{will['id']}", headers=headers)
    assert deleted.status_code == 200
    assert (await client.get(f"/api/wills/{will['id']}", headers=headers)).status_code == 404
    assert (await client.get(f"/api/wills/{will['id']}/contacts", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_contacts_report_share_total(client, owner):
    """
    Beneficiary shares are summed for display; unbalanced totals are allowed.
    """
    will = await _create_will(client, owner)
    headers = auth_headers(owner)
    base = f"/api/wills/{will['id']}/contacts"

    first = await client.post(base, headers=headers, json={"name": "Ana", "role": "beneficiary", "sharePercentage": 60})
    await client.post(base, headers=headers, json={"name": "Ben", "role": "beneficiary", "sharePercentage": 30})
    await client.post(base, headers=headers, json={"name": "Cal", "role": "executor"})

    listing = (await client.get(base, headers=headers)).json()
    assert len(listing["contacts"]) == 3
    assert listing["shareTotal"] == 90
    assert listing["sharesBalanced"] is False

    updated = await client.put(f"{base}/{first.json()['id']}", headers=headers, json={"sharePercentage": 70})
    assert updated.json()["sharePercentage"] == 70
    assert updated.json()["name"] == "Ana"

    listing = (await client.get(base, headers=headers)).json()
    assert listing["sharesBalanced"] is True

    removed = await client.delete(f"{base}/{first.json()['id']}", headers=headers)
    assert removed.status_code == 200
    assert len((await client.get(base, headers=headers)).json()["contacts"]) == 2


@pytest.mark.asyncio
async def test_contact_validation(client, owner):
    will = await _create_will(client, owner)
    base = f"/api/wills/{will['id']}/contacts"
    too_much = await client.post(base, headers=auth_headers(owner), json={"name": "Ana", "sharePercentage": 150})
    assert too_much.status_code == 422
    bad_role = await client.post(base, headers=auth_headers(owner), json={"name": "Ana", "role": "pet"})
    assert bad_role.status_code == 422
