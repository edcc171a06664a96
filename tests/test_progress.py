"""
Tests for the will creation wizard: step order, resume and completion
"""
from types import SimpleNamespace

import pytest

from services import progress_tracker
from services.progress_tracker import WillCreationStep, IncompleteWillError, WillLockedError
from tests.conftest import auth_headers


def _will(**fields):
    defaults = {"id": 1, "content": "", "status": "draft", "current_step": "template_selection", "video_url": None}
    return SimpleNamespace(**{**defaults, **fields})


def test_steps_are_linear():
    assert progress_tracker.next_step(WillCreationStep.TEMPLATE_SELECTION) == WillCreationStep.AI_CHAT
    assert progress_tracker.next_step(WillCreationStep.FINAL_REVIEW) == WillCreationStep.COMPLETED
    assert progress_tracker.next_step(WillCreationStep.COMPLETED) == WillCreationStep.COMPLETED
    assert progress_tracker.previous_step(WillCreationStep.TEMPLATE_SELECTION) == WillCreationStep.TEMPLATE_SELECTION
    assert progress_tracker.step_path(WillCreationStep.CONTACT_INFO) == "/contact-information"


def test_unknown_step_resolves_to_start():
    assert progress_tracker.parse_step("bogus") == WillCreationStep.TEMPLATE_SELECTION
    assert progress_tracker.parse_step(None) == WillCreationStep.TEMPLATE_SELECTION


def test_resume_without_will_goes_to_template_selection():
    target = progress_tracker.resolve_resume(None)
    assert target["step"] == "template_selection"
    assert target["path"] == "/template-selection"
    assert target["will_id"] is None


def test_completion_requires_content_and_unlocked_will():
    with pytest.raises(IncompleteWillError):
        progress_tracker.plan_transition(_will(content="  "), WillCreationStep.COMPLETED)
    with pytest.raises(WillLockedError):
        progress_tracker.plan_transition(_will(status="locked"), WillCreationStep.AI_CHAT)

    updates = progress_tracker.plan_transition(_will(content="All to Ana."), WillCreationStep.COMPLETED)
    assert updates == {"current_step": "completed", "status": "completed"}


def test_leaving_completed_reopens_draft():
    done = _will(content="All to Ana.", status="completed", current_step="completed")
    assert progress_tracker.plan_transition(done, WillCreationStep.FINAL_REVIEW) == {
        "current_step": "final_review",
        "status": "draft",
    }
    assert progress_tracker.plan_transition(_will(), WillCreationStep.AI_CHAT) == {"current_step": "ai_chat"}


def test_trust_score_counts_checklist():
    score = progress_tracker.trust_score(_will(content="All to Ana.", video_url="1/1/video/v.webm"), 2, 0)
    assert score["score"] == 60
    assert score["checklist"]["documents"] is False


@pytest.mark.asyncio
async def test_advance_back_and_resume(client, create_user):
    """
    Progress is server-confirmed: advancing, stepping back and resuming
    all read the step stored on the will.
    """
    user = await create_user()
    headers = auth_headers(user)
    will = (await client.post("/api/wills", headers=headers, json={"templateId": "single"})).json()
    will_id = will["id"]

    advanced = await client.post(f"/api/wills/{will_id}/progress/advance", headers=headers)
    assert advanced.status_code == 200
    assert advanced.json()["step"] == "contact_info"
    assert advanced.json()["previousStep"] == "ai_chat"

    back = await client.post(f"/api/wills/{will_id}/progress/back", headers=headers)
    assert back.json()["step"] == "ai_chat"

    resumed = await client.get("/api/wills/resume", headers=headers, params={"willId": will_id})
    assert resumed.json()["path"] == "/create-will"
    assert resumed.json()["willId"] == will_id

    missing = await client.get("/api/wills/resume", headers=headers, params={"willId": 9999})
    assert missing.status_code == 200
    assert missing.json()["step"] == "template_selection"


@pytest.mark.asyncio
async def test_set_progress_to_completed(client, create_user):
    user = await create_user()
    headers = auth_headers(user)
    will = (await client.post("/api/wills", headers=headers, json={})).json()

    unknown = await client.put(f"/api/wills/{will['id']}/progress", headers=headers, json={"step": "nowhere"})
    assert unknown.status_code == 400

    empty = await client.put(f"/api/wills/{will['id']}/progress", headers=headers, json={"step": "completed"})
    assert empty.status_code == 400

    await client.put(f"/api/wills/{will['id']}", headers=headers, json={"content": "Everything to the cats' shelter."})
    done = await client.put(f"/api/wills/{will['id']}/progress", headers=headers, json={"step": "completed"})
    assert done.status_code == 200
    assert done.json()["status"] == "completed"
    assert done.json()["nextStep"] is None

    trust = await client.get(f"/api/wills/{will['id']}/trust-score", headers=headers)
    assert trust.json()["checklist"]["completed"] is True


@pytest.mark.asyncio
async def test_stepping_back_from_completed_reopens_will(client, create_user):
    """
    Going back from the completed step returns the will to draft, so
    finishing again sends a fresh "Will Completed" notification.
    """
    user = await create_user()
    headers = auth_headers(user)
    will = (await client.post("/api/wills", headers=headers, json={"content": "All to Ana."})).json()
    will_id = will["id"]

    await client.put(f"/api/wills/{will_id}/progress", headers=headers, json={"step": "completed"})
    back = await client.post(f"/api/wills/{will_id}/progress/back", headers=headers)
    assert back.json()["step"] == "final_review"
    assert back.json()["status"] == "draft"

    earlier = await client.put(f"/api/wills/{will_id}/progress", headers=headers, json={"step": "contact_info"})
    assert earlier.json()["status"] == "draft"

    await client.put(f"/api/wills/{will_id}/progress", headers=headers, json={"step": "final_review"})
    done = await client.post(f"/api/wills/{will_id}/progress/advance", headers=headers)
    assert done.json()["status"] == "completed"

    notifications = (await client.get("/api/notifications", headers=headers)).json()
    assert [n["title"] for n in notifications].count("Will Completed") == 2
