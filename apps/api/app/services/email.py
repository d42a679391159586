from __future__ import annotations

import asyncio
import logging
import re
import uuid
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..errors import InvalidDataError, LeadNotFoundError, ServiceUnavailableError, TemplateNotFoundError
from ..models import EmailLog, EmailStatus, EmailTemplate, EmailTemplateType, EmailTrigger, EmailTriggerAction, Lead
from ..schemas import (
    BulkSendStatsResponse,
    EmailTemplateUpdateRequest,
    EmailTemplateUpsertRequest,
    EmailTriggerUpsertRequest,
    LeadSignupRequest,
    PaginationMeta,
    UnsubscribeReasonCount,
)
from ..settings import settings
from .mailer import EmailDeliveryError, Mailer, OutgoingEmail
from .pagination import build_pagination, page_offset

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")
BULK_ERROR_LIMIT = 10

DEFAULT_TRIGGER_TEMPLATES: dict[EmailTriggerAction, EmailTemplateType] = {
    EmailTriggerAction.LEAD_SIGNUP: EmailTemplateType.LEAD_WELCOME,
    EmailTriggerAction.QUESTIONNAIRE_COMPLETE: EmailTemplateType.QUESTIONNAIRE_THANK_YOU,
}

DEFAULT_TEMPLATES: dict[EmailTemplateType, dict[str, Any]] = {
    EmailTemplateType.LEAD_WELCOME: {
        "name": "Lead Welcome",
        "subject": "Welcome to OneClickTag, {{name}}!",
        "html_content": (
            "<p>Hi {{name}},</p>"
            "<p>Thanks for joining the OneClickTag early access list. We will be in touch soon.</p>"
            '<p><a href="{{questionnaireUrl}}">Tell us about your tracking needs</a></p>'
            '<p style="font-size:12px"><a href="{{unsubscribeUrl}}">Unsubscribe</a></p>'
        ),
        "text_content": (
            "Hi {{name}},\n\nThanks for joining the OneClickTag early access list.\n"
            "Tell us about your tracking needs: {{questionnaireUrl}}\n\nUnsubscribe: {{unsubscribeUrl}}"
        ),
        "available_variables": {
            "name": "Recipient name",
            "email": "Recipient email",
            "questionnaireUrl": "Link to the onboarding questionnaire",
            "unsubscribeUrl": "One-click unsubscribe link",
        },
    },
    EmailTemplateType.QUESTIONNAIRE_THANK_YOU: {
        "name": "Questionnaire Thank You",
        "subject": "Thanks for your answers, {{name}}",
        "html_content": (
            "<p>Hi {{name}},</p>"
            "<p>We received your questionnaire. Our team will review it and reach out shortly.</p>"
            '<p><a href="{{contactUrl}}">Contact us</a></p>'
            '<p style="font-size:12px"><a href="{{unsubscribeUrl}}">Unsubscribe</a></p>'
        ),
        "text_content": (
            "Hi {{name}},\n\nWe received your questionnaire. Our team will review it and reach out shortly.\n"
            "Contact us: {{contactUrl}}\n\nUnsubscribe: {{unsubscribeUrl}}"
        ),
        "available_variables": {
            "name": "Recipient name",
            "email": "Recipient email",
            "contactUrl": "Link to the contact page",
            "unsubscribeUrl": "One-click unsubscribe link",
        },
    },
}


@dataclass
class SendOptions:
    to: str
    to_name: str | None = None
    subject: str | None = None
    variables: dict[str, Any] = field(default_factory=dict)
    lead_id: uuid.UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class SendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None
    skipped: bool = False


@dataclass
class BulkSendResult:
    sent: int
    failed: int
    total: int
    errors: list[str]


def render_template(content: str, variables: Mapping[str, Any]) -> str:
    def _replace(match: re.Match[str]) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, content)


def build_variables(options: SendOptions) -> dict[str, Any]:
    name = options.to_name or options.to.split("@")[0]
    return {"email": options.to, "name": name, **options.variables}


def lead_email_variables(lead: Lead) -> dict[str, Any]:
    site_url = settings.site_url.rstrip("/")
    return {
        "name": lead.name,
        "email": lead.email,
        "siteUrl": site_url,
        "logoUrl": f"{site_url}/email-logo.png",
        "linkedinUrl": settings.linkedin_url,
        "unsubscribeUrl": f"{site_url}/unsubscribe?id={lead.id}",
        "questionnaireUrl": f"{site_url}/thank-you?id={lead.id}",
        "contactUrl": f"{site_url}/contact",
    }


def lead_send_options(lead: Lead, subject: str | None = None) -> SendOptions:
    return SendOptions(
        to=lead.email,
        to_name=lead.name,
        subject=subject,
        variables=lead_email_variables(lead),
        lead_id=lead.id,
    )


def get_active_template(db: Session, template_type: EmailTemplateType) -> EmailTemplate | None:
    return db.scalar(
        select(EmailTemplate).where(EmailTemplate.type == template_type, EmailTemplate.is_active.is_(True))
    )


async def send_templated_email(
    db: Session,
    template_type: EmailTemplateType,
    options: SendOptions,
    mailer: Mailer,
) -> SendResult:
    """Render the active template for ``template_type`` and send it.

    Every attempt is logged as an EmailLog row that starts PENDING and ends
    SENT or FAILED. Transport failures come back as ``SendResult(success=False)``;
    this function does not raise for them.
    """
    if not mailer.is_configured:
        logger.warning("email not sent to %s: transport not configured", options.to)
        return SendResult(success=False, error="Email service not configured")

    template = get_active_template(db, template_type)
    if template is None:
        logger.warning("email not sent to %s: no active %s template", options.to, template_type.value)
        return SendResult(success=False, error=f"Template not found: {template_type.value}")

    variables = build_variables(options)
    subject = render_template(options.subject or template.subject, variables)
    html = render_template(template.html_content, variables)
    text = render_template(template.text_content, variables) if template.text_content else None

    log = EmailLog(
        template_type=template_type,
        recipient=options.to,
        subject=subject,
        status=EmailStatus.PENDING,
        lead_id=options.lead_id,
        metadata_json=dict(options.metadata),
    )
    db.add(log)
    db.commit()

    message = OutgoingEmail(to=options.to, to_name=options.to_name, subject=subject, html=html, text=text)
    try:
        message_id = await asyncio.to_thread(mailer.send, message)
    except EmailDeliveryError as exc:
        log.status = EmailStatus.FAILED
        log.error_message = str(exc)
        db.commit()
        logger.error("email %s to %s failed: %s", template_type.value, options.to, exc)
        return SendResult(success=False, error=str(exc))

    log.status = EmailStatus.SENT
    log.sent_at = datetime.now(UTC)
    log.metadata_json = {**log.metadata_json, "message_id": message_id}
    db.commit()
    return SendResult(success=True, message_id=message_id)


async def send_triggered_email(
    db: Session,
    action: EmailTriggerAction,
    options: SendOptions,
    mailer: Mailer,
) -> SendResult:
    trigger = db.scalar(select(EmailTrigger).where(EmailTrigger.action == action))
    if trigger is None or not trigger.is_active:
        logger.info("email trigger %s inactive, skipping %s", action.value, options.to)
        return SendResult(success=True, skipped=True)
    return await send_templated_email(db, trigger.template_type, options, mailer)


def list_templates(db: Session, active_only: bool = False) -> list[EmailTemplate]:
    stmt = select(EmailTemplate).order_by(EmailTemplate.type)
    if active_only:
        stmt = stmt.where(EmailTemplate.is_active.is_(True))
    return list(db.scalars(stmt).all())


def get_template(db: Session, template_id: uuid.UUID) -> EmailTemplate:
    template = db.get(EmailTemplate, template_id)
    if template is None:
        raise TemplateNotFoundError(template_id)
    return template


def upsert_template(db: Session, payload: EmailTemplateUpsertRequest) -> tuple[EmailTemplate, bool]:
    template = db.scalar(select(EmailTemplate).where(EmailTemplate.type == payload.type))
    created = template is None
    if template is None:
        template = EmailTemplate(type=payload.type, is_active=True if payload.is_active is None else payload.is_active)
        db.add(template)
    elif payload.is_active is not None:
        template.is_active = payload.is_active
    template.name = payload.name
    template.subject = payload.subject
    template.html_content = payload.html_content
    template.text_content = payload.text_content
    template.available_variables = payload.available_variables
    db.flush()
    return template, created


def update_template(db: Session, template_id: uuid.UUID, payload: EmailTemplateUpdateRequest) -> EmailTemplate:
    template = get_template(db, template_id)
    changes = payload.model_dump(exclude_unset=True)
    for key in ("name", "subject", "html_content", "is_active"):
        if changes.get(key) is not None:
            setattr(template, key, changes[key])
    for key in ("text_content", "available_variables"):
        if key in changes:
            setattr(template, key, changes[key])
    db.flush()
    return template


def delete_template(db: Session, template_id: uuid.UUID) -> None:
    template = get_template(db, template_id)
    db.delete(template)
    db.flush()


def initialize_default_templates(db: Session) -> list[EmailTemplate]:
    created: list[EmailTemplate] = []
    for template_type, defaults in DEFAULT_TEMPLATES.items():
        exists = db.scalar(select(EmailTemplate.id).where(EmailTemplate.type == template_type))
        if exists is not None:
            continue
        template = EmailTemplate(type=template_type, is_active=True, **defaults)
        db.add(template)
        created.append(template)
    for action, template_type in DEFAULT_TRIGGER_TEMPLATES.items():
        if db.scalar(select(EmailTrigger.id).where(EmailTrigger.action == action)) is None:
            db.add(EmailTrigger(action=action, template_type=template_type, is_active=True))
    db.flush()
    return created


def list_triggers(db: Session) -> list[tuple[EmailTriggerAction, EmailTrigger | None]]:
    configured = {row.action: row for row in db.scalars(select(EmailTrigger)).all()}
    return [(action, configured.get(action)) for action in EmailTriggerAction]


def upsert_trigger(db: Session, payload: EmailTriggerUpsertRequest) -> tuple[EmailTrigger, bool]:
    trigger = db.scalar(select(EmailTrigger).where(EmailTrigger.action == payload.action))
    created = trigger is None
    if trigger is None:
        trigger = EmailTrigger(action=payload.action)
        db.add(trigger)
    trigger.template_type = payload.template_type
    trigger.is_active = payload.is_active
    db.flush()
    return trigger, created


def list_email_logs(
    db: Session,
    *,
    status: EmailStatus | None = None,
    template_type: EmailTemplateType | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[EmailLog], PaginationMeta]:
    conditions: list[Any] = []
    if status is not None:
        conditions.append(EmailLog.status == status)
    if template_type is not None:
        conditions.append(EmailLog.template_type == template_type)
    total = db.scalar(select(func.count()).select_from(EmailLog).where(*conditions)) or 0
    rows = db.scalars(
        select(EmailLog)
        .where(*conditions)
        .order_by(desc(EmailLog.created_at), desc(EmailLog.id))
        .offset(page_offset(page, limit))
        .limit(limit)
    ).all()
    return list(rows), build_pagination(page, limit, total)


def capture_lead(db: Session, payload: LeadSignupRequest) -> tuple[Lead, bool]:
    lead = db.scalar(select(Lead).where(Lead.email == payload.email))
    created = lead is None
    if lead is None:
        lead = Lead(email=payload.email, name=payload.name)
        db.add(lead)
    lead.name = payload.name
    if payload.purpose is not None:
        lead.purpose = payload.purpose
    if payload.source is not None:
        lead.source = payload.source
    if payload.marketing_consent:
        lead.marketing_consent = True
        lead.unsubscribed = False
        lead.unsubscribed_at = None
        lead.unsubscribe_reason = None
    db.flush()
    return lead, created


def unsubscribe_lead(db: Session, lead_id: uuid.UUID, reason: str | None = None) -> Lead:
    lead = db.get(Lead, lead_id)
    if lead is None:
        raise LeadNotFoundError(lead_id)
    if not lead.unsubscribed:
        lead.unsubscribed = True
        lead.unsubscribed_at = datetime.now(UTC)
    if reason:
        lead.unsubscribe_reason = reason
    db.flush()
    return lead


def marketing_recipients(db: Session) -> list[Lead]:
    return list(
        db.scalars(
            select(Lead)
            .where(Lead.marketing_consent.is_(True), Lead.unsubscribed.is_(False))
            .order_by(Lead.created_at, Lead.id)
        ).all()
    )


async def send_in_batches(
    db: Session,
    template_type: EmailTemplateType,
    recipients: Sequence[Lead],
    *,
    mailer: Mailer,
    subject: str | None = None,
    batch_size: int = 10,
    delay_seconds: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> BulkSendResult:
    """Send to ``recipients`` in fixed-size batches.

    Sends inside a batch run concurrently and the whole batch settles before
    the next one starts. ``sleep`` runs between batches, never after the last.
    """
    targets = [(lead.email, lead_send_options(lead, subject)) for lead in recipients]
    sent = 0
    failed = 0
    errors: list[str] = []
    for start in range(0, len(targets), batch_size):
        batch = targets[start : start + batch_size]
        results = await asyncio.gather(
            *(send_templated_email(db, template_type, options, mailer) for _, options in batch),
            return_exceptions=True,
        )
        for (email, _), result in zip(batch, results):
            if isinstance(result, SendResult) and result.success:
                sent += 1
                continue
            failed += 1
            if isinstance(result, SendResult):
                reason = result.error
            else:
                logger.exception("bulk send to %s raised", email, exc_info=result)
                reason = str(result)
            errors.append(f"Failed to send to {email}: {reason}")
        if start + batch_size < len(targets):
            await sleep(delay_seconds)

    logger.info("bulk email %s finished: %s sent, %s failed", template_type.value, sent, failed)
    return BulkSendResult(sent=sent, failed=failed, total=len(targets), errors=errors[:BULK_ERROR_LIMIT])


async def bulk_send(
    db: Session,
    template_type: EmailTemplateType,
    *,
    mailer: Mailer,
    subject: str | None = None,
    batch_size: int | None = None,
    delay_seconds: float | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> BulkSendResult:
    recipients = marketing_recipients(db)
    if not recipients:
        raise InvalidDataError("No subscribers to send emails to")
    return await send_in_batches(
        db,
        template_type,
        recipients,
        mailer=mailer,
        subject=subject,
        batch_size=batch_size or settings.email_batch_size,
        delay_seconds=settings.email_batch_delay_seconds if delay_seconds is None else delay_seconds,
        sleep=sleep,
    )


async def send_test_email(
    db: Session,
    template_type: EmailTemplateType,
    email: str,
    *,
    mailer: Mailer,
    subject: str | None = None,
) -> SendResult:
    lead = db.scalar(select(Lead).where(Lead.email == email))
    if lead is None:
        raise LeadNotFoundError(email)
    return await send_templated_email(db, template_type, lead_send_options(lead, subject), mailer)


def bulk_send_stats(db: Session) -> BulkSendStatsResponse:
    subscribers = (
        db.scalar(
            select(func.count())
            .select_from(Lead)
            .where(Lead.marketing_consent.is_(True), Lead.unsubscribed.is_(False))
        )
        or 0
    )
    total = db.scalar(select(func.count()).select_from(Lead)) or 0
    reasons = db.execute(
        select(Lead.unsubscribe_reason, func.count())
        .where(Lead.unsubscribed.is_(True), Lead.unsubscribe_reason.is_not(None))
        .group_by(Lead.unsubscribe_reason)
        .order_by(desc(func.count()))
    ).all()
    return BulkSendStatsResponse(
        subscribers_count=subscribers,
        total_leads=total,
        unsubscribed_count=total - subscribers,
        unsubscribe_reasons=[UnsubscribeReasonCount(reason=reason, count=count) for reason, count in reasons],
    )


def enqueue_bulk_send(template_type: EmailTemplateType, subject: str | None = None) -> str:
    try:
        from oneclicktag_worker.main import app as worker_app  # type: ignore

        result = worker_app.send_task("worker.email.bulk_send", args=[template_type.value, subject])
    except Exception as exc:
        logger.error("bulk email %s could not be queued: %s", template_type.value, exc)
        raise ServiceUnavailableError("Email queue unavailable") from exc
    return str(result.id)
