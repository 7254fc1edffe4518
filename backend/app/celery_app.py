"""
Celery application: promotion expiry, subscription sweeps and outgoing mail
"""
from urllib.parse import urlparse, urlunparse, parse_qs, urlencode
from celery import Celery
from celery.signals import worker_process_init
from app.core.config import settings
from app.core.logging import setup_logging


def _ensure_rediss_ssl_cert_reqs(url: str, default: str = "CERT_NONE") -> str:
    """rediss:// URLs need ssl_cert_reqs or the Celery Redis backend refuses them."""
    if not url or not url.strip().lower().startswith("rediss://"):
        return url
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    if "ssl_cert_reqs" not in qs:
        qs["ssl_cert_reqs"] = [default]
    new_query = urlencode(qs, doseq=True)
    return urlunparse(parsed._replace(query=new_query))


# default to REDIS_URL so .env only needs one Redis address
_broker_url = _ensure_rediss_ssl_cert_reqs(settings.CELERY_BROKER_URL or settings.REDIS_URL)
_backend_url = _ensure_rediss_ssl_cert_reqs(settings.CELERY_RESULT_BACKEND or settings.REDIS_URL)

celery_app = Celery(
    "marketplace",
    broker=_broker_url,
    backend=_backend_url,
    include=["app.tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    worker_concurrency=2,
    task_ignore_result=True,
    # eta tasks can sit in the queue for up to a month (platinum placements)
    broker_transport_options={"visibility_timeout": 60 * 60 * 24 * 31},
    beat_schedule={
        "sweep-expired-promotions": {
            "task": "promotions.sweep_expired",
            "schedule": float(settings.PROMOTION_SWEEP_INTERVAL_SECONDS),
        },
        "expire-due-subscriptions": {
            "task": "subscriptions.expire_due",
            "schedule": float(settings.SUBSCRIPTION_SWEEP_INTERVAL_SECONDS),
        },
    },
)


@worker_process_init.connect
def _init_worker_logging(**kwargs):
    setup_logging()
