"""
Settings Database
=================

Key-value store for the popup options. One row per option in a SQLite
`settings` table; writes are upserts, so concurrent saves are last-write-wins.
"""

import sqlite3
import os
import logging
from datetime import datetime

from stark_message.core import Database, ConfigUnavailable

logger = logging.getLogger(__name__)

# Option keys
ENABLED_KEY = 'stark_message_enabled'
HTML_CONTENT_KEY = 'stark_message_html_content'
CSS_KEY = 'stark_message_css'
PAGE_IDS_KEY = 'stark_message_page_ids'
COOKIE_VERSION_KEY = 'stark_message_cookie_version'

OPTION_KEYS = [ENABLED_KEY, HTML_CONTENT_KEY, CSS_KEY, PAGE_IDS_KEY, COOKIE_VERSION_KEY]

CATEGORY = 'stark_message'


def get_settings_db_path():
    """Get settings database path (app config, then DB_DIR, then Config/env)"""
    try:
        from flask import current_app
        val = current_app.config.get('STARK_MESSAGE_DB')
        if val:
            return val
        db_dir = current_app.config.get('DB_DIR')
        if db_dir:
            return os.path.join(db_dir, 'settings.db')
    except RuntimeError:
        pass

    return Database.resolve_path('STARK_MESSAGE_DB', 'settings.db')


def init_settings_db():
    """Initialize settings database and seed the cookie version once"""
    db_path = get_settings_db_path()

    with Database.connect(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS settings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                category TEXT NOT NULL,
                key TEXT NOT NULL UNIQUE,
                value TEXT,
                description TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_settings_category ON settings(category)')

        # A fresh install gets a fixed version rather than one that moves every request
        from stark_message.modules.popup.dismissal import next_version
        cursor.execute('''
            INSERT OR IGNORE INTO settings (category, key, value, description)
            VALUES (?, ?, ?, ?)
        ''', (CATEGORY, COOKIE_VERSION_KEY, str(next_version()), 'Dismissal cookie version'))

        conn.commit()

    return db_path


def get_setting(key, default=None):
    """
    Get a setting value by key.
    Falls back to the default if the key or the database is missing.
    """
    try:
        db_path = get_settings_db_path()
        if not os.path.exists(db_path):
            return default

        with sqlite3.connect(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT value FROM settings WHERE key = ?', (key,))
            row = cursor.fetchone()

        if row and row[0] is not None:
            return row[0]
        return default

    except Exception as e:
        logger.error(f"Error getting setting {key}: {e}")
        return default


def set_setting(key, value, category=CATEGORY, description=None):
    """Set a single setting value"""
    return set_settings({key: value}, category=category, descriptions={key: description})


def set_settings(values, category=CATEGORY, descriptions=None):
    """Upsert several settings in one transaction"""
    descriptions = descriptions or {}
    try:
        db_path = init_settings_db()
        now = datetime.now().isoformat()

        with Database.connect(db_path) as conn:
            cursor = conn.cursor()
            for key, value in values.items():
                cursor.execute('''
                    INSERT INTO settings (category, key, value, description, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        category = excluded.category,
                        description = COALESCE(excluded.description, settings.description),
                        updated_at = excluded.updated_at
                ''', (category, key, None if value is None else str(value),
                      descriptions.get(key), now))
            conn.commit()
        return True

    except Exception as e:
        logger.error(f"Error saving settings {list(values)}: {e}")
        return False


def delete_setting(key):
    """Delete a setting"""
    try:
        db_path = get_settings_db_path()
        if not os.path.exists(db_path):
            return False

        with sqlite3.connect(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM settings WHERE key = ?', (key,))
            conn.commit()
            return cursor.rowcount > 0

    except Exception as e:
        logger.error(f"Error deleting setting {key}: {e}")
        return False


def get_all_settings(category=None):
    """Get all settings, optionally filtered by category"""
    try:
        db_path = get_settings_db_path()
        if not os.path.exists(db_path):
            return []

        with sqlite3.connect(db_path) as conn:
            cursor = conn.cursor()
            if category:
                cursor.execute('''
                    SELECT id, category, key, value, description, updated_at
                    FROM settings WHERE category = ? ORDER BY key
                ''', (category,))
            else:
                cursor.execute('''
                    SELECT id, category, key, value, description, updated_at
                    FROM settings ORDER BY category, key
                ''')
            rows = cursor.fetchall()

        return [{
            'id': row[0],
            'category': row[1],
            'key': row[2],
            'value': row[3],
            'description': row[4],
            'updated_at': row[5],
        } for row in rows]

    except Exception as e:
        logger.error(f"Error getting all settings: {e}")
        return []


def load_options():
    """
    Read the five popup options in one query.
    Raises ConfigUnavailable if the store cannot be read.
    """
    db_path = get_settings_db_path()
    if not os.path.exists(db_path):
        raise ConfigUnavailable(f"Settings database not found at {db_path}")

    try:
        placeholders = ','.join('?' for _ in OPTION_KEYS)
        with sqlite3.connect(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f'SELECT key, value FROM settings WHERE key IN ({placeholders})',
                OPTION_KEYS
            )
            return {key: value for key, value in cursor.fetchall()}
    except sqlite3.Error as e:
        raise ConfigUnavailable(f"Could not read settings: {e}") from e
