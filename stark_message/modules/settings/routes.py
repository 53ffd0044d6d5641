"""
Settings Admin Routes
=====================

Admin interface for the popup settings.
"""

import secrets
import logging
from functools import wraps

from flask import (
    render_template, request, redirect, url_for, session, jsonify, flash, current_app
)

from stark_message.core import ConfigUnavailable
from stark_message.modules.popup.visibility import format_page_ids
from . import settings_bp
from .helpers import get_popup_config, read_popup_config, save_popup_config

logger = logging.getLogger(__name__)

CSRF_SESSION_KEY = 'stark_message_csrf_token'


def _db_log(level, message, details=None):
    """Log to the persistent DB logger"""
    try:
        from stark_message.core import db_log
        db_log(level, 'settings', message, details)
    except Exception:
        pass


def _redirect_to_login():
    """Redirect to admin login page"""
    endpoint = current_app.config.get('STARK_MESSAGE_ADMIN_LOGIN_ENDPOINT', 'admin.login')
    try:
        return redirect(url_for(endpoint, next=request.path))
    except Exception:
        return redirect('/admin')


def admin_required(f):
    """Decorator to require admin login"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'admin_id' not in session:
            if request.path.startswith(f'{settings_bp.url_prefix}/api/'):
                return jsonify({'success': False, 'error': 'Authentication required'}), 401
            return _redirect_to_login()
        return f(*args, **kwargs)
    return decorated_function


def get_csrf_token():
    """Per-session anti-forgery token for the settings form"""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def _csrf_valid():
    expected = session.get(CSRF_SESSION_KEY)
    submitted = request.form.get('csrf_token') or request.headers.get('X-CSRF-Token')
    if not expected or not submitted:
        return False
    return secrets.compare_digest(str(expected), str(submitted))


@settings_bp.route('/')
@admin_required
def settings_page():
    """Popup settings page"""
    config = get_popup_config()
    unavailable = config is None
    if unavailable:
        flash('Popup settings could not be loaded.', 'error')

    return render_template('settings/stark_message.html',
                           config=config,
                           page_ids=format_page_ids(config.allowed_page_ids) if config else '',
                           unavailable=unavailable,
                           csrf_token=get_csrf_token())


@settings_bp.route('/save', methods=['POST'])
@admin_required
def save_settings():
    """Save settings from form and re-show the popup to everyone"""
    if not _csrf_valid():
        _db_log('warning', 'Rejected popup settings save with invalid CSRF token')
        return jsonify({'success': False, 'error': 'Invalid or missing CSRF token'}), 400

    try:
        config, warnings = save_popup_config(
            enabled='enabled' in request.form,
            html_content=request.form.get('html_content', ''),
            custom_css=request.form.get('custom_css', ''),
            page_ids=request.form.get('page_ids', ''),
        )
    except ConfigUnavailable as e:
        logger.error(f"Error saving popup settings: {e}")
        _db_log('error', 'Error saving popup settings', {'error': str(e)})
        flash(f'Error saving settings: {e}', 'error')
        return redirect(url_for('stark_message_settings.settings_page'))

    for warning in warnings:
        flash(warning, 'warning')

    logger.info(f"Popup settings saved, cookie version {config.cookie_version}")
    _db_log('info', 'Popup settings saved', {
        'enabled': config.enabled,
        'page_ids': sorted(config.allowed_page_ids),
        'cookie_version': config.cookie_version,
        'admin_id': session.get('admin_id'),
    })
    flash('Settings saved. Popup will now be displayed again on all pages.', 'success')
    return redirect(url_for('stark_message_settings.settings_page'))


@settings_bp.route('/api/settings')
@admin_required
def api_get_settings():
    """API endpoint to get the current popup settings"""
    try:
        config = read_popup_config()
    except ConfigUnavailable as e:
        return jsonify({'success': False, 'error': str(e)}), 503
    return jsonify({'success': True, 'settings': config.to_dict()})
