"""Host-side helper that turns a denied check into an exception.

The engine only answers with booleans. Request handlers that want to stop
on a denial call :func:`authorize` and let their framework map
:class:`~abilitykit.errors.AccessDenied` to a 403 response.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from abilitykit.errors import AccessDenied

if TYPE_CHECKING:
    from abilitykit.ability import Ability

logger = logging.getLogger(__name__)


def authorize(
    ability: Ability,
    action: str,
    subject: Any,
    *,
    attribute: str | None = None,
    message: str | None = None,
) -> Any:
    """Return ``subject`` if ``ability`` permits ``action`` on it.

    Raises
    ------
    AccessDenied
        Carrying ``action`` and ``subject``, with ``message`` or the default
        "You are not authorized to access this page."
    """
    if ability.can(action, subject, attribute=attribute):
        return subject
    logger.info("Access denied: action=%s subject=%r", action, subject)
    raise AccessDenied(message, action=action, subject=subject)
