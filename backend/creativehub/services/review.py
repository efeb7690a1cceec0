"""
Review and approval state on assets, expressed as MongoDB $set documents.

Review: absent -> allotted -> commented -> passed. Creation by an admin opens
the cycle; assign resets it to allotted from any state. Transitions are not
gated on the current state.

Approval: yellow <-> green, always reversible.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from creativehub.core.errors import ValidationError
from creativehub.models.asset import ApprovalStatus, ReviewStatus
from creativehub.models.user import SessionUser, UserRole


def default_approval() -> Dict[str, Any]:
    return {
        "status": ApprovalStatus.YELLOW.value,
        "approved_by_email": None,
        "approved_at": None,
    }


def initial_review(uploader_role: UserRole) -> Optional[Dict[str, Any]]:
    """Admin uploads enter the SME queue as allotted; others have no review"""
    if uploader_role == UserRole.ADMIN:
        return {"status": ReviewStatus.ALLOTTED.value}
    return None


def assign_update(assigned_to: Optional[str], assigned_to_name: Optional[str]) -> Dict[str, Any]:
    return {
        "review.status": ReviewStatus.ALLOTTED.value,
        "review.assigned_to": assigned_to,
        "review.assigned_to_name": assigned_to_name,
    }


def comment_update(reviewer: SessionUser, comment: Optional[str], now: datetime) -> Dict[str, Any]:
    return {
        "review.status": ReviewStatus.COMMENTED.value,
        "review.comment": comment,
        "review.reviewed_by": reviewer.email,
        "review.reviewed_by_name": reviewer.name,
        "review.reviewed_at": now,
    }


def pass_update(reviewer: SessionUser, now: datetime) -> Dict[str, Any]:
    # The comment from an earlier round is left in place
    return {
        "review.status": ReviewStatus.PASSED.value,
        "review.reviewed_by": reviewer.email,
        "review.reviewed_by_name": reviewer.name,
        "review.reviewed_at": now,
    }


def approval_update(status: Any, approver: SessionUser, now: datetime) -> Dict[str, Any]:
    if status == ApprovalStatus.GREEN.value:
        return {
            "approval.status": ApprovalStatus.GREEN.value,
            "approval.approved_by_email": approver.email,
            "approval.approved_at": now,
        }
    if status == ApprovalStatus.YELLOW.value:
        return {
            "approval.status": ApprovalStatus.YELLOW.value,
            "approval.approved_by_email": None,
            "approval.approved_at": None,
        }
    raise ValidationError("invalid status")
