from __future__ import annotations

import asyncio
import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import InvalidDataError
from ..models import EmailLog, EmailStatus, EmailTemplate, EmailTemplateType
from ..schemas import (
    BulkSendRequest,
    BulkSendResponse,
    BulkSendStatsResponse,
    EmailLogListResponse,
    EmailLogResponse,
    EmailTemplateResponse,
    EmailTemplateUpdateRequest,
    EmailTemplateUpsertRequest,
    EmailTriggerResponse,
    EmailTriggerUpsertRequest,
)
from ..services import email as email_service
from ..services.audit import write_audit_log
from ..services.mailer import Mailer, get_mailer
from ..tenancy import RequestContext, get_admin_context

router = APIRouter(prefix="/api/admin", tags=["admin-email"])


def _serialize_template(row: EmailTemplate) -> EmailTemplateResponse:
    return EmailTemplateResponse(
        id=row.id,
        type=row.type,
        name=row.name,
        subject=row.subject,
        html_content=row.html_content,
        text_content=row.text_content,
        is_active=row.is_active,
        available_variables=row.available_variables,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _serialize_log(row: EmailLog) -> EmailLogResponse:
    return EmailLogResponse(
        id=row.id,
        template_type=row.template_type,
        recipient=row.recipient,
        subject=row.subject,
        status=row.status,
        sent_at=row.sent_at,
        error_message=row.error_message,
        lead_id=row.lead_id,
        created_at=row.created_at,
    )


@router.get("/email-templates", response_model=list[EmailTemplateResponse])
def list_email_templates(
    active_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    _: RequestContext = Depends(get_admin_context),
) -> list[EmailTemplateResponse]:
    return [_serialize_template(row) for row in email_service.list_templates(db, active_only=active_only)]


@router.post("/email-templates", response_model=EmailTemplateResponse)
def upsert_email_template(
    payload: EmailTemplateUpsertRequest,
    response: Response,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_admin_context),
) -> EmailTemplateResponse:
    template, created = email_service.upsert_template(db, payload)
    write_audit_log(
        db=db,
        context=context,
        action="email_template.created" if created else "email_template.updated",
        target_type="email_template",
        target_id=str(template.id),
        metadata_json={"type": template.type.value},
    )
    db.commit()
    db.refresh(template)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return _serialize_template(template)


@router.post("/email-templates/initialize-defaults", response_model=list[EmailTemplateResponse])
def initialize_default_templates(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_admin_context),
) -> list[EmailTemplateResponse]:
    created = email_service.initialize_default_templates(db)
    write_audit_log(
        db=db,
        context=context,
        action="email_template.defaults_initialized",
        target_type="email_template",
        target_id="defaults",
        metadata_json={"created": [row.type.value for row in created]},
    )
    db.commit()
    return [_serialize_template(row) for row in email_service.list_templates(db)]


@router.get("/email-templates/bulk-send", response_model=BulkSendStatsResponse)
def bulk_send_stats(
    db: Session = Depends(get_db),
    _: RequestContext = Depends(get_admin_context),
) -> BulkSendStatsResponse:
    return email_service.bulk_send_stats(db)


@router.post("/email-templates/bulk-send", response_model=BulkSendResponse)
def bulk_send(
    payload: BulkSendRequest,
    response: Response,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_admin_context),
    mailer: Mailer = Depends(get_mailer),
) -> BulkSendResponse:
    if payload.test_email:
        result = asyncio.run(
            email_service.send_test_email(
                db, payload.template_type, payload.test_email, mailer=mailer, subject=payload.subject
            )
        )
        return BulkSendResponse(
            sent=1 if result.success else 0,
            failed=0 if result.success else 1,
            total=1,
            errors=[] if result.success else [f"Failed to send to {payload.test_email}: {result.error}"],
            test_mode=True,
        )

    if payload.background:
        if not email_service.marketing_recipients(db):
            raise InvalidDataError("No subscribers to send emails to")
        task_id = email_service.enqueue_bulk_send(payload.template_type, payload.subject)
        write_audit_log(
            db=db,
            context=context,
            action="email.bulk_send.queued",
            target_type="email_template",
            target_id=payload.template_type.value,
            metadata_json={"task_id": task_id},
        )
        db.commit()
        response.status_code = status.HTTP_202_ACCEPTED
        return BulkSendResponse(queued=True, task_id=task_id)

    result = asyncio.run(email_service.bulk_send(db, payload.template_type, mailer=mailer, subject=payload.subject))
    write_audit_log(
        db=db,
        context=context,
        action="email.bulk_send.completed",
        target_type="email_template",
        target_id=payload.template_type.value,
        metadata_json={"sent": result.sent, "failed": result.failed, "total": result.total},
    )
    db.commit()
    return BulkSendResponse(sent=result.sent, failed=result.failed, total=result.total, errors=result.errors)


@router.get("/email-templates/{template_id}", response_model=EmailTemplateResponse)
def get_email_template(
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: RequestContext = Depends(get_admin_context),
) -> EmailTemplateResponse:
    return _serialize_template(email_service.get_template(db, template_id))


@router.put("/email-templates/{template_id}", response_model=EmailTemplateResponse)
def update_email_template(
    template_id: uuid.UUID,
    payload: EmailTemplateUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_admin_context),
) -> EmailTemplateResponse:
    template = email_service.update_template(db, template_id, payload)
    write_audit_log(
        db=db,
        context=context,
        action="email_template.updated",
        target_type="email_template",
        target_id=str(template.id),
        metadata_json={"fields": sorted(payload.model_fields_set)},
    )
    db.commit()
    db.refresh(template)
    return _serialize_template(template)


@router.delete("/email-templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_email_template(
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_admin_context),
) -> Response:
    email_service.delete_template(db, template_id)
    write_audit_log(
        db=db, context=context, action="email_template.deleted", target_type="email_template", target_id=str(template_id)
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/email-triggers", response_model=list[EmailTriggerResponse])
def list_email_triggers(
    db: Session = Depends(get_db),
    _: RequestContext = Depends(get_admin_context),
) -> list[EmailTriggerResponse]:
    rows: list[EmailTriggerResponse] = []
    for action, trigger in email_service.list_triggers(db):
        if trigger is None:
            rows.append(
                EmailTriggerResponse(
                    id=None,
                    action=action,
                    template_type=email_service.DEFAULT_TRIGGER_TEMPLATES[action],
                    is_active=False,
                    configured=False,
                )
            )
            continue
        rows.append(
            EmailTriggerResponse(
                id=trigger.id,
                action=trigger.action,
                template_type=trigger.template_type,
                is_active=trigger.is_active,
                configured=True,
            )
        )
    return rows


@router.put("/email-triggers", response_model=EmailTriggerResponse)
def upsert_email_trigger(
    payload: EmailTriggerUpsertRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_admin_context),
) -> EmailTriggerResponse:
    trigger, created = email_service.upsert_trigger(db, payload)
    write_audit_log(
        db=db,
        context=context,
        action="email_trigger.created" if created else "email_trigger.updated",
        target_type="email_trigger",
        target_id=trigger.action.value,
        metadata_json={"template_type": trigger.template_type.value, "is_active": trigger.is_active},
    )
    db.commit()
    return EmailTriggerResponse(
        id=trigger.id,
        action=trigger.action,
        template_type=trigger.template_type,
        is_active=trigger.is_active,
        configured=True,
    )


@router.get("/email-logs", response_model=EmailLogListResponse)
def list_email_logs(
    status_filter: EmailStatus | None = Query(default=None, alias="status"),
    template_type: EmailTemplateType | None = Query(default=None, alias="templateType"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
    _: RequestContext = Depends(get_admin_context),
) -> EmailLogListResponse:
    rows, pagination = email_service.list_email_logs(
        db, status=status_filter, template_type=template_type, page=page, limit=limit
    )
    return EmailLogListResponse(data=[_serialize_log(row) for row in rows], pagination=pagination)
