import logging
from datetime import datetime, timezone

from core.settings import settings

from .rabbitmq import rabbitmq

logger = logging.getLogger(__name__)


async def publish_event(event_name: str, data: dict) -> bool:
    """Publish a domain event after commit. Never raises: the commit already happened."""
    if not rabbitmq.enabled:
        logger.debug("Event bus disabled, dropping %s", event_name)
        return False

    payload = {**data, "timestamp": datetime.now(timezone.utc).isoformat()}
    try:
        await rabbitmq.publish_json(
            exchange_name=settings.RABBITMQ_MAIN_EXCHANGE,
            routing_key=event_name,
            data=payload,
        )
        return True
    except Exception:
        logger.exception("Failed to publish event %s", event_name)
        return False
