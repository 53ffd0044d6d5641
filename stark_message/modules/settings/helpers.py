"""
Settings Helpers
================

Read the popup options as an immutable PopupConfig snapshot, and write them
back through the single save entry point.
"""

import logging

from flask import request, has_request_context

from stark_message.core import ConfigUnavailable, InvalidPageIdList
from stark_message.modules.popup.models import (
    PopupConfig, DEFAULT_HTML_CONTENT, DEFAULT_CUSTOM_CSS
)
from stark_message.modules.popup.visibility import (
    parse_page_ids, validate_page_ids, format_page_ids
)
from stark_message.modules.popup.dismissal import bump_version
from stark_message.modules.popup.renderer import sanitize_html, sanitize_css
from .database import (
    load_options, set_settings,
    ENABLED_KEY, HTML_CONTENT_KEY, CSS_KEY, PAGE_IDS_KEY, COOKIE_VERSION_KEY
)

logger = logging.getLogger(__name__)

# WSGI environ key holding the snapshot for the current request
SNAPSHOT_ENVIRON_KEY = 'stark_message.config'

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}


def _as_bool(value):
    if isinstance(value, bool):
        return value
    return str(value or '').strip().lower() in _TRUE_VALUES


def _as_int(value, default=0):
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def config_from_options(options):
    """Build a PopupConfig from raw option strings"""
    html_content = options.get(HTML_CONTENT_KEY)
    custom_css = options.get(CSS_KEY)
    return PopupConfig(
        enabled=_as_bool(options.get(ENABLED_KEY)),
        html_content=DEFAULT_HTML_CONTENT if html_content is None else html_content,
        custom_css=DEFAULT_CUSTOM_CSS if custom_css is None else custom_css,
        allowed_page_ids=parse_page_ids(options.get(PAGE_IDS_KEY)),
        cookie_version=_as_int(options.get(COOKIE_VERSION_KEY)),
    )


def read_popup_config():
    """Read a fresh snapshot. Raises ConfigUnavailable."""
    return config_from_options(load_options())


def get_popup_config():
    """
    Snapshot for the current request, or None if the settings store is
    unavailable (the popup then simply does not render).
    """
    if has_request_context() and SNAPSHOT_ENVIRON_KEY in request.environ:
        return request.environ[SNAPSHOT_ENVIRON_KEY]

    try:
        config = read_popup_config()
    except ConfigUnavailable as e:
        logger.error(f"Popup config unavailable: {e}")
        config = None

    if has_request_context():
        request.environ[SNAPSHOT_ENVIRON_KEY] = config
    return config


def save_popup_config(enabled, html_content, custom_css, page_ids):
    """
    Persist the popup options and bump the cookie version so the popup is
    shown again to everyone. Returns (config, warnings).
    """
    warnings = []
    try:
        validate_page_ids(page_ids)
    except InvalidPageIdList as e:
        warnings.append(str(e))

    try:
        current_version = read_popup_config().cookie_version
    except ConfigUnavailable:
        current_version = 0

    config = bump_version(PopupConfig(
        enabled=_as_bool(enabled),
        html_content=sanitize_html(html_content or ''),
        custom_css=sanitize_css(custom_css or ''),
        allowed_page_ids=parse_page_ids(page_ids),
        cookie_version=current_version,
    ))

    saved = set_settings({
        ENABLED_KEY: '1' if config.enabled else '0',
        HTML_CONTENT_KEY: config.html_content,
        CSS_KEY: config.custom_css,
        PAGE_IDS_KEY: format_page_ids(config.allowed_page_ids),
        COOKIE_VERSION_KEY: config.cookie_version,
    })
    if not saved:
        raise ConfigUnavailable("Failed to write popup settings")

    if has_request_context():
        request.environ[SNAPSHOT_ENVIRON_KEY] = config
    return config, warnings
