"""
Popup Dismissal
===============

Dismissals are remembered client-side in a cookie named after the live
cookie version. Bumping the version on every settings save makes every
existing cookie irrelevant at once, so nothing ever needs revoking.
"""

import time
import logging

from stark_message.core.config import Config
from stark_message.core.errors import MarkerWriteFailed
from .models import MarkerInstruction
from .visibility import is_visible

logger = logging.getLogger(__name__)


def _cookie_prefix():
    try:
        from flask import current_app
        return current_app.config.get('STARK_MESSAGE_COOKIE_PREFIX', Config.COOKIE_PREFIX)
    except RuntimeError:
        return Config.COOKIE_PREFIX


def marker_name(cookie_version):
    """Cookie name for a dismissal under cookie_version"""
    return f"{_cookie_prefix()}{cookie_version}"


def is_dismissed(cookie_version, client_markers):
    """True if the client holds the marker for exactly this version"""
    if not client_markers:
        return False
    return marker_name(cookie_version) in client_markers


def should_render(config, client_markers, current_page_id):
    """
    True if the popup applies to this page and the client has not dismissed
    the current version. Markers for any other version are ignored.
    """
    if not is_visible(config, current_page_id):
        return False
    return not is_dismissed(config.cookie_version, client_markers)


def record_dismissal(cookie_version):
    """Instruction to set the dismissal cookie for cookie_version"""
    return MarkerInstruction(
        name=marker_name(cookie_version),
        value='1',
        max_age=Config.COOKIE_LIFETIME,
        path=Config.COOKIE_PATH,
    )


def apply_marker(response, instruction):
    """
    Set the dismissal cookie on a Flask response.
    Setting the same marker twice leaves a single identical cookie.
    """
    if response is None:
        raise MarkerWriteFailed("No response to write the dismissal cookie to")

    try:
        response.set_cookie(
            instruction.name,
            instruction.value,
            max_age=instruction.max_age,
            path=instruction.path,
            samesite='Lax',
        )
    except Exception as e:
        raise MarkerWriteFailed(f"Could not set cookie {instruction.name}: {e}") from e

    return response


def next_version(current=0):
    """
    Current UNIX time, but always strictly greater than current so two saves
    in the same second still produce different versions.
    """
    now = int(time.time())
    try:
        current = int(current)
    except (TypeError, ValueError):
        current = 0
    return max(now, current + 1)


def bump_version(config):
    """New PopupConfig whose cookie version invalidates all prior dismissals"""
    bumped = config.with_version(next_version(config.cookie_version))
    logger.info(f"Cookie version bumped {config.cookie_version} -> {bumped.cookie_version}")
    return bumped
