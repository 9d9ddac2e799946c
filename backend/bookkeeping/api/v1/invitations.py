"""
Invitations API endpoints

Verify and accept are public: the invitee has no session yet.
"""

from fastapi import APIRouter, Depends, Response

from bookkeeping.api.responses import success
from bookkeeping.auth.adapters import AuthAdapter
from bookkeeping.auth.dependencies import (
    get_auth_adapter,
    get_current_profile,
    get_privileged_repository,
    get_repository,
)
from bookkeeping.repositories.base import Repository, Row
from bookkeeping.schemas.members import InvitationAccept, InvitationCreate
from bookkeeping.security.permissions import get_invitable_roles
from bookkeeping.services import invitations as invitation_service

router = APIRouter(prefix="/invitations", tags=["invitations"])

# Fields an unauthenticated caller may see
PUBLIC_FIELDS = ("email", "role", "company_name", "expires_at")


@router.get("")
def list_invitations(
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    invitations = invitation_service.get_invitations(repo, profile)
    return success(invitations, count=len(invitations))


@router.get("/roles")
def invitable_roles():
    """Roles an owner can assign, with display names"""
    return success(get_invitable_roles())


@router.post("")
def create_invitation(
    body: InvitationCreate,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    invitation = invitation_service.create_invitation(
        repo, profile, body.email, body.role, managed_store_ids=body.managed_store_ids
    )
    repo.commit()
    return success(invitation)


@router.get("/{token}/verify")
def verify_invitation(
    token: str,
    repo: Repository = Depends(get_privileged_repository),
):
    invitation = invitation_service.verify_invitation(repo, token)
    return success({key: invitation.get(key) for key in PUBLIC_FIELDS})


@router.post("/{token}/accept")
def accept_invitation(
    token: str,
    body: InvitationAccept,
    response: Response,
    repo: Repository = Depends(get_privileged_repository),
    adapter: AuthAdapter = Depends(get_auth_adapter),
):
    """Create the invitee's account, then sign them in when a session was issued"""
    user = invitation_service.accept_invitation(repo, adapter, token, body.username, body.password, body.full_name)
    repo.commit()
    if user.session_token:
        adapter.set_session(response, user)
    return success({"id": user.id, "username": user.username, "company_code": user.company_code})


@router.delete("/{invitation_id}")
def delete_invitation(
    invitation_id: str,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    invitation_service.delete_invitation(repo, profile, invitation_id)
    repo.commit()
    return success({"id": invitation_id})


@router.post("/{invitation_id}/resend")
def resend_invitation(
    invitation_id: str,
    profile: Row = Depends(get_current_profile),
    repo: Repository = Depends(get_repository),
):
    invitation = invitation_service.resend_invitation(repo, profile, invitation_id)
    repo.commit()
    return success(invitation)
