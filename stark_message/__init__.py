"""
Stark Message - A dismissable popup for Flask sites
===================================================

A sticky popup on the right side of the screen with a close button:
- Admin settings for HTML content, custom CSS, on/off switch and page ids
- Dismissals remembered for 3 days in a versioned cookie
- Every settings save re-shows the popup to all visitors

Usage:
    from stark_message import StarkMessage

    stark_message = StarkMessage(app)

    # in your base template, just before </body>
    {{ stark_message_popup() }}
"""

import os
import logging

from flask_cors import CORS

from .core import Config

__version__ = '1.7.0'
__author__ = 'Julian Stark'

logger = logging.getLogger(__name__)

DEFAULT_FEATURES = {
    'settings': True,
    'popup': True,
}


class StarkMessage:
    """Flask extension that wires the Stark Message modules into an app"""

    def __init__(self, app=None, config=None):
        self._config = config or {}
        self._registered_modules = []
        if app is not None:
            self.init_app(app)

    @property
    def features(self):
        features = dict(DEFAULT_FEATURES)
        features.update(self._config.get('features', {}))
        return features

    def init_app(self, app):
        self._apply_config_defaults(app)
        self._setup_database_dir(app)
        self._register_modules(app)
        self._setup_cors(app)
        self._register_context_processor(app)

        with app.app_context():
            self._init_databases()

        app.extensions['stark_message'] = self

    def get_registered_modules(self):
        return list(self._registered_modules)

    def _apply_config_defaults(self, app):
        if not app.config.get('SECRET_KEY'):
            app.config['SECRET_KEY'] = Config.SECRET_KEY
        app.config.setdefault('DB_DIR', Config.DB_DIR)
        app.config.setdefault('STARK_MESSAGE_DB', os.path.join(app.config['DB_DIR'], 'settings.db'))
        app.config.setdefault('LOGS_DB', os.path.join(app.config['DB_DIR'], 'app_logs.db'))
        app.config.setdefault('STARK_MESSAGE_COOKIE_PREFIX', Config.COOKIE_PREFIX)
        app.config.setdefault('STARK_MESSAGE_CORS_ORIGINS', Config.CORS_ORIGINS)
        app.config.setdefault('STARK_MESSAGE_ADMIN_LOGIN_ENDPOINT', Config.ADMIN_LOGIN_ENDPOINT)

        if 'page_id_resolver' in self._config:
            app.config['STARK_MESSAGE_PAGE_ID_RESOLVER'] = self._config['page_id_resolver']

    def _setup_database_dir(self, app):
        db_dir = app.config.get('DB_DIR')
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def _register_modules(self, app):
        features = self.features
        self._registered_modules = []

        if features.get('settings'):
            from .modules.settings import settings_bp
            app.register_blueprint(settings_bp)
            self._registered_modules.append('settings')

        if features.get('popup'):
            from .modules.popup import popup_bp
            app.register_blueprint(popup_bp)
            self._registered_modules.append('popup')

    def _setup_cors(self, app):
        origins = app.config.get('STARK_MESSAGE_CORS_ORIGINS')
        if not origins or 'popup' not in self._registered_modules:
            return
        CORS(app, resources={
            r'/stark-message/state': {'origins': origins, 'supports_credentials': True}
        })

    def _register_context_processor(self, app):
        registered = self._registered_modules

        @app.context_processor
        def stark_message_context():
            def stark_message_popup(page_id=None):
                from markupsafe import Markup
                if 'popup' not in registered:
                    return Markup('')
                from .modules.popup.routes import popup_markup
                return popup_markup(page_id)

            return {
                'stark_message_popup': stark_message_popup,
                'stark_message_config': {
                    'cookie_prefix': app.config.get('STARK_MESSAGE_COOKIE_PREFIX'),
                    'cookie_lifetime': Config.COOKIE_LIFETIME,
                    'modules': list(registered),
                },
            }

    def _init_databases(self):
        from .modules.settings.database import init_settings_db
        try:
            init_settings_db()
        except Exception as e:
            # Popup stays hidden until the store is reachable
            logger.error(f"Could not initialise settings database: {e}")
            try:
                from .core import db_log
                db_log('error', 'system', 'Could not initialise settings database', {'error': str(e)})
            except Exception:
                pass


__all__ = ['StarkMessage']
