import asyncio
import logging
import os

from celery import Celery

from app.db import SessionLocal
from app.errors import InvalidDataError
from app.logging_config import configure_logging
from app.models import EmailTemplateType
from app.services.email import bulk_send
from app.services.mailer import get_mailer

broker_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
app = Celery("oneclicktag-worker", broker=broker_url, backend=broker_url)

configure_logging()
logger = logging.getLogger(__name__)


@app.task(name="worker.health.ping")
def ping() -> str:
    return "pong"


@app.task(name="worker.email.bulk_send")
def email_bulk_send(template_type: str, subject: str | None = None) -> dict[str, object]:
    with SessionLocal() as db:
        try:
            result = asyncio.run(bulk_send(db, EmailTemplateType(template_type), mailer=get_mailer(), subject=subject))
        except InvalidDataError as exc:
            logger.info("bulk email %s skipped: %s", template_type, exc.message)
            return {"sent": 0, "failed": 0, "total": 0, "errors": [exc.message]}
    return {"sent": result.sent, "failed": result.failed, "total": result.total, "errors": result.errors}
