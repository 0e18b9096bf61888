"""
Draft status / finality rules — pure decision functions.

No storage access and no side effects: every function reads only the
draft passed in and returns a bool.  Malformed input (unknown draft type,
unknown status) falls through to ``False``.

Turn-taking:
    Whoever *receives* a draft, and only they, may close the loop by
    marking it final.  An ADMIN_TO_USER draft is received by its owning
    user; a USER_TO_ADMIN draft is received by the admin.
"""

from dairy_portal.models.draft import (
    ADMIN_TO_USER,
    APPROVED,
    FINAL,
    PENDING_REVIEW,
    REJECTED,
    USER_TO_ADMIN,
    VALID_DRAFT_STATUSES,
)

# Statuses reachable through a plain status update.  FINAL is entered only
# through mark_final and is terminal.
STATUS_TRANSITIONS = {
    PENDING_REVIEW: {PENDING_REVIEW, APPROVED, REJECTED},
    APPROVED: {PENDING_REVIEW, APPROVED, REJECTED},
    REJECTED: {PENDING_REVIEW, APPROVED, REJECTED},
    FINAL: set(),
}


def can_respond(draft) -> bool:
    """A user may submit the next draft only against a pending admin draft."""
    return (
        getattr(draft, "draft_type", None) == ADMIN_TO_USER
        and getattr(draft, "status", None) == PENDING_REVIEW
    )


def can_mark_final(draft, acting_user_id, admin_user_id) -> bool:
    """True iff the draft is pending and ``acting_user_id`` is its recipient."""
    if getattr(draft, "status", None) != PENDING_REVIEW:
        return False
    if acting_user_id is None:
        return False

    draft_type = getattr(draft, "draft_type", None)
    if draft_type == USER_TO_ADMIN:
        return admin_user_id is not None and acting_user_id == admin_user_id
    if draft_type == ADMIN_TO_USER:
        return acting_user_id == getattr(draft, "user_id", None)
    return False


def can_transition(current: str, new: str) -> bool:
    """Validate a status update requested outside of finalization."""
    if new not in VALID_DRAFT_STATUSES:
        return False
    return new in STATUS_TRANSITIONS.get(current, set())
