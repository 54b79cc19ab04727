# routes/profiles/builder.py
import logging
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import get_principal, require_admin, require_builder, require_rights
from config.security import Principal
from model.profiles.admin import Admin
from model.profiles.builder import Builder, BuilderTeamMember, BuilderDocument, BUILDER_STATUSES
from schema.auth import EmailIn, SendOtpIn, VerifyOtpIn, EmailOtpIn, LoginIn, ResetPasswordIn, ChangePasswordIn
from schema.auth import CheckEmailOut, OtpSentOut, OtpVerifiedOut
from schema.builder import (
    BuilderOut, BuilderAuthOut, TeamMemberAuthOut,
    BuilderRegisterIn, BuilderCreate, BuilderUpdate, BuilderProfileUpdate,
    BuilderCreatePasswordIn, BuilderCompleteRegistrationIn,
    DecisionIn, BuilderStatsOut, DocumentType, DocumentOut,
    TeamMemberCreate, TeamMemberUpdate, TeamMemberOut, TeamMemberLoginIn,
)
from schema.common import Page, MessageOut
from src import auth_flows
from src.builder_workflow import BuilderWorkflow, InvalidStatusTransitionError
from src.notification_service import notify_team_member_change
from src.route_helpers import get_or_404, paginate, commit_or_409, apply_updates
from src.storage import UploadRejected, check_document_upload, safe_filename, get_storage_backend
from src.token_service import generate_auth_tokens
from src.utils import hash_password, verify_password


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/builders", tags=["Builders"])

TEAM_EMAIL_TAKEN = "Team member email already taken"


def _workflow_error(e: InvalidStatusTransitionError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def require_team_manager(principal: Principal = Depends(get_principal)) -> Builder:
    """The builder account itself, or a team member allowed to manage users."""
    if principal.account_type != "builder":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    member = principal.team_member
    if member is not None and not member.perm_users:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return principal.account


# ============================================================================
# Auth
# ============================================================================
@router.post("/check-email", response_model=CheckEmailOut, tags=["Builder Auth"], openapi_extra={"security": []})
def check_email(body: EmailIn, db: Session = Depends(get_db)):
    return auth_flows.check_email(db, "builder", body.email)


@router.post(
    "/register",
    response_model=BuilderAuthOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Builder Auth"],
    responses={400: {"description": "Email already taken"}},
    openapi_extra={"security": []},
)
def register(body: BuilderRegisterIn, db: Session = Depends(get_db)):
    profile = body.model_dump(exclude={"email", "password"}, exclude_none=True)
    builder = auth_flows.register(db, "builder", body.email, body.password, **profile)
    return {"builder": builder, "tokens": generate_auth_tokens(db, "builder", builder)}


@router.post(
    "/register-with-otp",
    response_model=OtpSentOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Builder Auth"],
    openapi_extra={"security": []},
)
def register_with_otp(body: BuilderRegisterIn, db: Session = Depends(get_db)):
    profile = body.model_dump(exclude={"email", "password"}, exclude_none=True)
    builder = auth_flows.register_with_otp(db, "builder", body.email, body.password, **profile)
    return OtpSentOut(
        message="Registration successful. Please verify the OTP sent to your email",
        email=builder.email,
        user_id=builder.id,
        role="builder",
    )


@router.post("/verify-registration-otp", response_model=BuilderOut, tags=["Builder Auth"], openapi_extra={"security": []})
def verify_registration_otp(body: EmailOtpIn, db: Session = Depends(get_db)):
    return auth_flows.verify_registration_otp(db, "builder", body.email, body.otp)


@router.post("/create-password", response_model=BuilderOut, tags=["Builder Auth"], openapi_extra={"security": []})
def create_password(body: BuilderCreatePasswordIn, db: Session = Depends(get_db)):
    return auth_flows.create_password(db, "builder", body.email, body.password)


@router.post("/complete-registration", response_model=BuilderAuthOut, tags=["Builder Auth"], openapi_extra={"security": []})
def complete_registration(body: BuilderCompleteRegistrationIn, db: Session = Depends(get_db)):
    profile = body.model_dump(exclude={"builder_id"}, exclude_none=True)
    builder = auth_flows.complete_registration(db, "builder", body.builder_id, profile)
    return {"builder": builder, "tokens": generate_auth_tokens(db, "builder", builder)}


@router.post("/login", response_model=BuilderAuthOut, tags=["Builder Auth"], openapi_extra={"security": []})
def login(body: LoginIn, db: Session = Depends(get_db)):
    builder = auth_flows.login_with_password(db, "builder", body.email, body.password)
    return {"builder": builder, "tokens": generate_auth_tokens(db, "builder", builder)}


@router.post("/login-with-otp", response_model=OtpSentOut, tags=["Builder Auth"], openapi_extra={"security": []})
def login_with_otp(body: LoginIn, db: Session = Depends(get_db)):
    builder = auth_flows.start_otp_login(db, "builder", body.email, body.password)
    return OtpSentOut(message="OTP sent to your email", email=builder.email, user_id=builder.id)


@router.post("/complete-login-otp", response_model=BuilderAuthOut, tags=["Builder Auth"], openapi_extra={"security": []})
def complete_login_otp(body: EmailOtpIn, db: Session = Depends(get_db)):
    builder = auth_flows.complete_otp_login(db, "builder", body.email, body.otp)
    return {"builder": builder, "tokens": generate_auth_tokens(db, "builder", builder)}


@router.post("/forgot-password", response_model=OtpSentOut, tags=["Builder Auth"], openapi_extra={"security": []})
def forgot_password(body: EmailIn, db: Session = Depends(get_db)):
    builder = auth_flows.forgot_password(db, "builder", body.email)
    return OtpSentOut(message="Password reset OTP sent to your email", email=builder.email)


@router.post("/verify-forgot-password-otp", response_model=OtpVerifiedOut, tags=["Builder Auth"], openapi_extra={"security": []})
def verify_forgot_password_otp(body: EmailOtpIn, db: Session = Depends(get_db)):
    builder = auth_flows.verify_forgot_password_otp(db, "builder", body.email, body.otp)
    return OtpVerifiedOut(message="OTP verified. You can now reset your password", email=builder.email)


@router.post("/reset-password", response_model=MessageOut, tags=["Builder Auth"], openapi_extra={"security": []})
def reset_password(body: ResetPasswordIn, db: Session = Depends(get_db)):
    auth_flows.reset_password(db, "builder", body.email, body.otp, body.new_password)
    return MessageOut(message="Password reset successfully")


@router.post("/send-otp", response_model=OtpSentOut, tags=["Builder Auth"], openapi_extra={"security": []})
def send_otp(body: SendOtpIn, db: Session = Depends(get_db)):
    builder = auth_flows.send_otp(db, "builder", body.email, body.type)
    return OtpSentOut(message="OTP sent to your email", email=builder.email, user_id=builder.id)


@router.post("/verify-otp", response_model=OtpVerifiedOut, tags=["Builder Auth"], openapi_extra={"security": []})
def verify_otp(body: VerifyOtpIn, db: Session = Depends(get_db)):
    builder = auth_flows.verify_otp_code(db, "builder", body.email, body.otp, body.type)
    return OtpVerifiedOut(message="OTP verified successfully", email=builder.email, user_id=builder.id)


@router.post("/change-password", response_model=MessageOut, tags=["Builder Auth"])
def change_password(body: ChangePasswordIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    if principal.account_type != "builder":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    # a team member changes their own password, not the builder's
    account = principal.team_member or principal.account
    auth_flows.change_password(db, account, body.current_password, body.new_password)
    return MessageOut(message="Password changed successfully")


@router.post(
    "/team-members/login",
    response_model=TeamMemberAuthOut,
    tags=["Builder Auth"],
    responses={401: {"description": "Incorrect email or password / deactivated"}, 404: {"description": "Builder not found"}},
    openapi_extra={"security": []},
)
def team_member_login(body: TeamMemberLoginIn, db: Session = Depends(get_db)):
    builder = get_or_404(db, Builder, body.builder_id, "Builder not found")
    member = builder.find_team_member_by_email(body.email)
    if member is None or not verify_password(body.password, member.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
    if not member.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Team member account is deactivated")
    if not builder.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")

    member.last_login_at = datetime.utcnow()
    db.commit()
    logger.info("Team member %s of builder %s logged in", member.id, builder.id)
    return {
        "team_member": member,
        "builder": builder,
        "tokens": generate_auth_tokens(db, "builder", builder, team_member=member),
    }


# ============================================================================
# Own profile
# ============================================================================
@router.get("/me", response_model=BuilderOut)
def get_profile(builder: Builder = Depends(require_builder)):
    return builder


@router.patch("/me", response_model=BuilderOut)
def update_profile(body: BuilderProfileUpdate, db: Session = Depends(get_db), builder: Builder = Depends(require_builder)):
    apply_updates(builder, body.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(builder)
    return builder


# ----------------------------------------------------------------------------
# Team members
# ----------------------------------------------------------------------------
@router.get("/me/team-members", response_model=List[TeamMemberOut], tags=["Builder Team"])
def list_team_members(builder: Builder = Depends(require_builder)):
    return builder.team_members


@router.post(
    "/me/team-members",
    response_model=TeamMemberOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Builder Team"],
    responses={400: {"description": TEAM_EMAIL_TAKEN}},
)
def add_team_member(body: TeamMemberCreate, db: Session = Depends(get_db), builder: Builder = Depends(require_team_manager)):
    if builder.is_team_member_email_taken(body.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=TEAM_EMAIL_TAKEN)
    member = BuilderTeamMember(
        builder_id=builder.id,
        name=body.name,
        email=body.email.lower(),
        password_hash=hash_password(body.password),
        role=body.role,
    )
    member.set_navigation_permissions(body.navigation_permissions)
    db.add(member)
    commit_or_409(db, TEAM_EMAIL_TAKEN)
    db.refresh(member)

    notify_team_member_change(db, builder.id, member.name, added=True)
    return member


def _get_member(db: Session, builder: Builder, member_id: int) -> BuilderTeamMember:
    member = db.get(BuilderTeamMember, member_id)
    if member is None or member.builder_id != builder.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team member not found")
    return member


@router.get("/me/team-members/{member_id}", response_model=TeamMemberOut, tags=["Builder Team"])
def get_team_member(member_id: int, db: Session = Depends(get_db), builder: Builder = Depends(require_builder)):
    return _get_member(db, builder, member_id)


@router.patch("/me/team-members/{member_id}", response_model=TeamMemberOut, tags=["Builder Team"])
def update_team_member(
    member_id: int,
    body: TeamMemberUpdate,
    db: Session = Depends(get_db),
    builder: Builder = Depends(require_team_manager),
):
    member = _get_member(db, builder, member_id)
    data = body.model_dump(exclude_unset=True)

    if data.get("email"):
        data["email"] = data["email"].lower()
        if builder.is_team_member_email_taken(data["email"], exclude_member_id=member.id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=TEAM_EMAIL_TAKEN)
    if data.get("password"):
        member.password_hash = hash_password(data.pop("password"))
    if "navigation_permissions" in data:
        member.set_navigation_permissions(data.pop("navigation_permissions"))

    apply_updates(member, data, exclude=("password",))
    commit_or_409(db, TEAM_EMAIL_TAKEN)
    db.refresh(member)
    return member


@router.delete("/me/team-members/{member_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Builder Team"])
def remove_team_member(member_id: int, db: Session = Depends(get_db), builder: Builder = Depends(require_team_manager)):
    member = _get_member(db, builder, member_id)
    name = member.name
    db.delete(member)
    db.commit()
    notify_team_member_change(db, builder.id, name, added=False)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----------------------------------------------------------------------------
# Documents
# ----------------------------------------------------------------------------
@router.get("/me/documents", response_model=List[DocumentOut], tags=["Builder Documents"])
def list_documents(builder: Builder = Depends(require_builder)):
    return builder.documents


@router.post(
    "/me/documents",
    response_model=DocumentOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Builder Documents"],
    responses={400: {"description": "Invalid file type or file too large"}},
)
async def upload_document(
    file: UploadFile = File(...),
    document_type: DocumentType = Form("document"),
    db: Session = Depends(get_db),
    builder: Builder = Depends(require_builder),
):
    content = await file.read()
    try:
        check_document_upload(file.content_type, len(content))
    except UploadRejected as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await file.seek(0)
    storage = get_storage_backend()
    path, url = await storage.save(
        file.file,
        safe_filename(builder.public_id, file.filename),
        file.content_type,
        owner_id=builder.public_id,
        entity_field="documents",
    )
    doc = BuilderDocument(
        builder_id=builder.id,
        document_type=document_type,
        url=url,
        url_key=path,
        file_name=file.filename,
        content_type=file.content_type,
        size=len(content),
    )
    db.add(doc)
    db.commit()
    db.refresh(doc)
    logger.info("Builder %s uploaded document %s", builder.id, doc.id)
    return doc


@router.delete("/me/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Builder Documents"])
async def remove_document(document_id: int, db: Session = Depends(get_db), builder: Builder = Depends(require_builder)):
    doc = db.get(BuilderDocument, document_id)
    if doc is None or doc.builder_id != builder.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    if doc.url_key:
        await get_storage_backend().delete(doc.url_key)
    db.delete(doc)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Management (admin, or the builder itself where noted)
# ============================================================================
@router.get("/", response_model=Page[BuilderOut])
def list_builders(
    q: Optional[str] = None,
    status_: Optional[str] = Query(None, alias="status"),
    is_active: Optional[bool] = None,
    city: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_rights("getBuilders")),
):
    query = db.query(Builder)
    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            Builder.name.ilike(like),
            Builder.email.ilike(like),
            Builder.company.ilike(like),
            Builder.city.ilike(like),
            Builder.contact_person.ilike(like),
            Builder.rera_registration_id.ilike(like),
        ))
    if status_:
        query = query.filter(Builder.status == status_)
    if is_active is not None:
        query = query.filter(Builder.is_active == is_active)
    if city:
        query = query.filter(Builder.city.ilike(f"%{city}%"))
    return paginate(query.order_by(Builder.created_at.desc(), Builder.id.desc()), page, limit)


@router.post(
    "/",
    response_model=BuilderOut,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Email already taken"}},
)
def create_builder(body: BuilderCreate, db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    profile = body.model_dump(exclude={"email", "password"}, exclude_none=True)
    return auth_flows.register(db, "builder", body.email, body.password, **profile)


@router.get("/stats", response_model=BuilderStatsOut)
def builder_stats(db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    counts = dict(db.query(Builder.status, func.count(Builder.id)).group_by(Builder.status).all())
    base = db.query(Builder)
    return BuilderStatsOut(
        total=base.count(),
        active=base.filter(Builder.is_active.is_(True)).count(),
        inactive=base.filter(Builder.is_active.is_(False)).count(),
        by_status={s: int(counts.get(s, 0)) for s in BUILDER_STATUSES},
    )


@router.get("/{builder_id}", response_model=BuilderOut)
def get_builder(builder_id: int, db: Session = Depends(get_db), _: Principal = Depends(require_rights("getBuilders"))):
    return get_or_404(db, Builder, builder_id, "Builder not found")


@router.patch("/{builder_id}", response_model=BuilderOut)
def update_builder(
    builder_id: int,
    body: BuilderUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_rights("manageBuilders")),
):
    builder = get_or_404(db, Builder, builder_id, "Builder not found")
    data = body.model_dump(exclude_unset=True)
    if not principal.is_admin:
        data.pop("is_active", None)
    if data.get("email"):
        data["email"] = data["email"].lower()
        taken = db.query(Builder.id).filter(Builder.email == data["email"], Builder.id != builder.id).first()
        if taken:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already taken")
    apply_updates(builder, data)
    commit_or_409(db, "Email already taken")
    db.refresh(builder)
    return builder


@router.delete("/{builder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_builder(builder_id: int, db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    builder = get_or_404(db, Builder, builder_id, "Builder not found")
    db.delete(builder)
    db.commit()
    logger.info("Deleted builder %s", builder_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----------------------------------------------------------------------------
# Review workflow
# ----------------------------------------------------------------------------
@router.post("/{builder_id}/submit", response_model=BuilderOut, tags=["Builder Review"])
def submit_for_review(
    builder_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_rights("manageBuilders")),
):
    builder = get_or_404(db, Builder, builder_id, "Builder not found")
    try:
        return BuilderWorkflow.submit(db, builder)
    except InvalidStatusTransitionError as e:
        raise _workflow_error(e)


@router.post("/{builder_id}/reset-to-draft", response_model=BuilderOut, tags=["Builder Review"])
def reset_to_draft(
    builder_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_rights("manageBuilders")),
):
    builder = get_or_404(db, Builder, builder_id, "Builder not found")
    try:
        return BuilderWorkflow.reset_to_draft(db, builder)
    except InvalidStatusTransitionError as e:
        raise _workflow_error(e)


@router.post("/{builder_id}/approve", response_model=BuilderOut, tags=["Builder Review"])
def approve_builder(
    builder_id: int,
    body: Optional[DecisionIn] = None,
    db: Session = Depends(get_db),
    admin: Admin = Depends(require_admin),
):
    builder = get_or_404(db, Builder, builder_id, "Builder not found")
    try:
        return BuilderWorkflow.approve(db, builder, admin.id, (body.notes if body else None) or "")
    except InvalidStatusTransitionError as e:
        raise _workflow_error(e)


@router.post("/{builder_id}/reject", response_model=BuilderOut, tags=["Builder Review"])
def reject_builder(
    builder_id: int,
    body: DecisionIn,
    db: Session = Depends(get_db),
    admin: Admin = Depends(require_admin),
):
    builder = get_or_404(db, Builder, builder_id, "Builder not found")
    try:
        return BuilderWorkflow.reject(db, builder, admin.id, body.notes)
    except InvalidStatusTransitionError as e:
        raise _workflow_error(e)


def _set_active(db: Session, builder_id: int, active: bool) -> Builder:
    builder = get_or_404(db, Builder, builder_id, "Builder not found")
    builder.is_active = active
    db.commit()
    db.refresh(builder)
    return builder


@router.patch("/{builder_id}/activate", response_model=BuilderOut)
def activate_builder(builder_id: int, db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    return _set_active(db, builder_id, True)


@router.patch("/{builder_id}/deactivate", response_model=BuilderOut)
def deactivate_builder(builder_id: int, db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    return _set_active(db, builder_id, False)
