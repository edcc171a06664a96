"""
Will creation progress: the fixed, linear sequence of wizard steps.

The current step lives on the Will row. Clients never hold it as a source of
truth; every change is confirmed by the server and echoed back.
"""

from enum import Enum
from typing import Optional

from database_models import Will


class WillCreationStep(str, Enum):
    TEMPLATE_SELECTION = "template_selection"
    AI_CHAT = "ai_chat"
    CONTACT_INFO = "contact_info"
    DOCUMENT_UPLOAD = "document_upload"
    VIDEO_RECORDING = "video_recording"
    FINAL_REVIEW = "final_review"
    COMPLETED = "completed"


STEP_ORDER = list(WillCreationStep)

STEP_PATHS = {
    WillCreationStep.TEMPLATE_SELECTION: "/template-selection",
    WillCreationStep.AI_CHAT: "/create-will",
    WillCreationStep.CONTACT_INFO: "/contact-information",
    WillCreationStep.DOCUMENT_UPLOAD: "/document-upload",
    WillCreationStep.VIDEO_RECORDING: "/video-recording",
    WillCreationStep.FINAL_REVIEW: "/finalize",
    WillCreationStep.COMPLETED: "/completion",
}

STEP_DESCRIPTIONS = {
    WillCreationStep.TEMPLATE_SELECTION: "Select a will template",
    WillCreationStep.AI_CHAT: "Create your will with Skyler",
    WillCreationStep.CONTACT_INFO: "Add contact information",
    WillCreationStep.DOCUMENT_UPLOAD: "Upload supporting documents",
    WillCreationStep.VIDEO_RECORDING: "Record your video testimony",
    WillCreationStep.FINAL_REVIEW: "Review and finalize your will",
    WillCreationStep.COMPLETED: "Will completed",
}


class IncompleteWillError(Exception):
    """Raised when a will without content is advanced to completion."""


class WillLockedError(Exception):
    """Raised when a locked will is mutated."""


def parse_step(value: Optional[str]) -> WillCreationStep:
    """Unknown or missing values resolve to the first step."""
    try:
        return WillCreationStep(value)
    except ValueError:
        return WillCreationStep.TEMPLATE_SELECTION


def step_index(step: WillCreationStep) -> int:
    return STEP_ORDER.index(step)


def next_step(step: WillCreationStep) -> WillCreationStep:
    """The following step; COMPLETED is terminal."""
    index = step_index(step)
    return STEP_ORDER[min(index + 1, len(STEP_ORDER) - 1)]


def previous_step(step: WillCreationStep) -> WillCreationStep:
    """Manual back navigation; the first step stays put."""
    return STEP_ORDER[max(step_index(step) - 1, 0)]


def step_path(step: WillCreationStep) -> str:
    return STEP_PATHS[step]


def step_description(step: WillCreationStep) -> str:
    return STEP_DESCRIPTIONS[step]


def describe(step: WillCreationStep, will: Optional[Will] = None) -> dict:
    """Progress payload shared by every progress endpoint."""
    return {
        "will_id": will.id if will else None,
        "step": step.value,
        "step_index": step_index(step),
        "description": step_description(step),
        "path": step_path(step),
        "next_step": next_step(step).value if step != WillCreationStep.COMPLETED else None,
        "previous_step": previous_step(step).value if step != WillCreationStep.TEMPLATE_SELECTION else None,
        "status": will.status if will else None,
    }


def resolve_resume(will: Optional[Will]) -> dict:
    """
    Where a returning user should land.
    No resumable will sends them to template selection instead of failing.
    """
    if will is None:
        return describe(WillCreationStep.TEMPLATE_SELECTION)
    return describe(parse_step(will.current_step), will)


def ensure_unlocked(will: Will) -> None:
    if will.status == "locked":
        raise WillLockedError("This will is locked. Unlock it before making changes.")


def plan_transition(will: Will, target: WillCreationStep) -> dict:
    """
    Validate moving `will` to `target` and return the field updates to apply.

    Reaching COMPLETED requires non-empty content and promotes the status
    from draft to completed. Moving a completed will to any earlier step
    reopens it as a draft.

    Raises:
        WillLockedError: If the will is locked
        IncompleteWillError: If completing a will without content
    """
    ensure_unlocked(will)
    updates = {"current_step": target.value}
    if target == WillCreationStep.COMPLETED:
        if not (will.content or "").strip():
            raise IncompleteWillError("A will cannot be completed without content.")
        updates["status"] = "completed"
    elif will.status == "completed":
        updates["status"] = "draft"
    return updates


def trust_score(will: Will, contact_count: int, document_count: int) -> dict:
    """Completeness percentage over the will checklist. Presentational only."""
    checklist = {
        "will_content": bool((will.content or "").strip()),
        "contacts": contact_count > 0,
        "documents": document_count > 0,
        "video_testimony": bool(will.video_url),
        "completed": will.status in ("completed", "locked"),
    }
    score = round(100 * sum(checklist.values()) / len(checklist))
    return {"score": score, "checklist": checklist}
