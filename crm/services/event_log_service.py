import logging

logger = logging.getLogger("crm.events")


def log_event(action: str, details: str) -> None:
    logger.info("%s: %s", action, details)
