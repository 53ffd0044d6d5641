"""
Popup Public Routes
===================

Dismiss endpoint, visibility state for client-side rendering, and the
footer markup helper used by the template context processor.
"""

import logging
from flask import request, jsonify, current_app, g
from markupsafe import Markup

from stark_message.core import Config, MarkerWriteFailed
from . import popup_bp
from .dismissal import should_render, record_dismissal, apply_marker, marker_name
from .renderer import render_popup

logger = logging.getLogger(__name__)


def _db_log(level, message, details=None):
    """Log to the persistent DB logger"""
    try:
        from stark_message.core import db_log
        db_log(level, 'popup', message, details)
    except Exception:
        pass


def _load_config():
    # Import here to avoid circular imports
    from stark_message.modules.settings.helpers import get_popup_config
    return get_popup_config()


def current_page_id():
    """
    Page id of the current request: g.stark_message_page_id, then the
    STARK_MESSAGE_PAGE_ID_RESOLVER callable, then the page_id view arg, then 0.
    """
    page_id = g.get('stark_message_page_id')
    if page_id is not None:
        return page_id

    resolver = current_app.config.get('STARK_MESSAGE_PAGE_ID_RESOLVER')
    if resolver and callable(resolver):
        try:
            page_id = resolver(request)
        except Exception as e:
            logger.error(f"Page id resolver failed: {e}")
            page_id = None
        if page_id is not None:
            return page_id

    view_args = request.view_args or {}
    return view_args.get('page_id', 0)


def popup_markup(page_id=None):
    """Popup HTML for the current request, or empty markup if it should not show"""
    try:
        config = _load_config()
        if config is None:
            return Markup('')

        if page_id is None:
            page_id = current_page_id()
        if not should_render(config, request.cookies, page_id):
            return Markup('')

        return render_popup(config)

    except Exception as e:
        # Never break the page over the popup
        logger.error(f"Error rendering popup: {e}")
        _db_log('error', 'Error rendering popup', {'error': str(e)})
        return Markup('')


@popup_bp.route('/dismiss', methods=['POST'])
def dismiss():
    """Remember the dismissal for the live cookie version"""
    response = jsonify({'success': True, 'data': 'Cookie set for 3 days.'})

    config = _load_config()
    if config is None:
        logger.warning("Dismiss received while popup config is unavailable")
        return response

    try:
        apply_marker(response, record_dismissal(config.cookie_version))
    except MarkerWriteFailed as e:
        # The popup just comes back on the next view
        logger.warning(f"Dismissal cookie not set: {e}")
        _db_log('warning', 'Dismissal cookie not set', {
            'cookie_version': config.cookie_version, 'error': str(e)
        })

    return response


@popup_bp.route('/state')
def state():
    """Whether the popup should show for ?page_id=, plus the cookie details"""
    config = _load_config()
    if config is None:
        return jsonify({'should_render': False})

    page_id = request.args.get('page_id', 0)
    return jsonify({
        'should_render': should_render(config, request.cookies, page_id),
        'cookie_suffix': config.cookie_version,
        'cookie_lifetime': Config.COOKIE_LIFETIME,
        'marker_name': marker_name(config.cookie_version),
    })
