"""Entity alert headers.

Clients read these headers to show notifications after a write. With
translation enabled the alert carries a message key
(``<app>.<entity>.created``); otherwise a plain English sentence.
"""

import logging
from urllib.parse import quote_plus

logger = logging.getLogger(__name__)


def create_alert(application_name: str, message: str, param: str) -> dict[str, str]:
    """Build the alert/params header pair."""
    return {
        f"X-{application_name}-alert": message,
        f"X-{application_name}-params": quote_plus(param),
    }


def create_entity_creation_alert(
    application_name: str,
    enable_translation: bool,
    entity_name: str,
    param: str
) -> dict[str, str]:
    if enable_translation:
        message = f"{application_name}.{entity_name}.created"
    else:
        message = f"A new {entity_name} is created with identifier {param}"
    return create_alert(application_name, message, param)


def create_entity_update_alert(
    application_name: str,
    enable_translation: bool,
    entity_name: str,
    param: str
) -> dict[str, str]:
    if enable_translation:
        message = f"{application_name}.{entity_name}.updated"
    else:
        message = f"A {entity_name} is updated with identifier {param}"
    return create_alert(application_name, message, param)


def create_entity_deletion_alert(
    application_name: str,
    enable_translation: bool,
    entity_name: str,
    param: str
) -> dict[str, str]:
    if enable_translation:
        message = f"{application_name}.{entity_name}.deleted"
    else:
        message = f"A {entity_name} is deleted with identifier {param}"
    return create_alert(application_name, message, param)


def create_failure_alert(
    application_name: str,
    enable_translation: bool,
    entity_name: str,
    error_key: str,
    default_message: str
) -> dict[str, str]:
    """Build the error/params header pair for a rejected request."""
    logger.error(f"Entity processing failed, {default_message}")
    message = f"error.{error_key}" if enable_translation else default_message
    return {
        f"X-{application_name}-error": message,
        f"X-{application_name}-params": entity_name,
    }
