"""
Centralized logging service for Stark Message.
Persists structured log entries to SQLite alongside console logging.
"""

import json
from datetime import datetime
from flask import request, has_request_context
from .database import Database


class LoggingService:
    """Persistent logging service shared by the Stark Message modules"""

    @staticmethod
    def _db_path():
        return Database.resolve_path('LOGS_DB', 'app_logs.db')

    @staticmethod
    def _ensure_logs_table():
        """Ensure the app_logs table exists"""
        try:
            with Database.connect(LoggingService._db_path()) as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS app_logs (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        timestamp TEXT NOT NULL,
                        level TEXT NOT NULL,
                        source TEXT NOT NULL,
                        message TEXT NOT NULL,
                        details TEXT,
                        ip_address TEXT,
                        user_agent TEXT,
                        request_path TEXT,
                        user_id TEXT
                    )
                """)

                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_logs_timestamp
                    ON app_logs(timestamp DESC)
                """)
                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_logs_source
                    ON app_logs(source)
                """)

                conn.commit()
        except Exception as e:
            print(f"Failed to ensure logs table: {e}")

    @staticmethod
    def _get_request_context():
        """Extract request context information"""
        if not has_request_context():
            return None, None, None

        try:
            ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
            if ip_address and ',' in ip_address:
                ip_address = ip_address.split(',')[0].strip()

            user_agent = request.headers.get('User-Agent', '')
            request_path = request.path

            return ip_address, user_agent, request_path
        except Exception:
            return None, None, None

    @staticmethod
    def log(level, source, message, details=None, user_id=None):
        """
        Log a message to the database

        Args:
            level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            source (str): Source component (popup, settings, etc.)
            message (str): Main log message
            details (str/dict): Additional details (will be JSON-encoded if dict)
            user_id (str): Optional user identifier
        """
        try:
            LoggingService._ensure_logs_table()

            ip_address, user_agent, request_path = LoggingService._get_request_context()

            if isinstance(details, dict):
                details = json.dumps(details, indent=2, default=str)

            timestamp = datetime.now().isoformat()

            with Database.connect(LoggingService._db_path()) as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT INTO app_logs
                    (timestamp, level, source, message, details, ip_address, user_agent, request_path, user_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    timestamp, level.upper(), source, message, details,
                    ip_address, user_agent, request_path, user_id
                ))
                conn.commit()

        except Exception as e:
            # Fallback to console logging if database fails
            print(f"[{datetime.now().isoformat()}] [{level.upper()}] [{source}] {message}")
            if details:
                print(f"Details: {details}")
            print(f"Logging service error: {e}")

    @staticmethod
    def get_recent_logs(source=None, limit=50):
        """Return the most recent log entries, newest first"""
        try:
            with Database.connect(LoggingService._db_path()) as conn:
                cursor = conn.cursor()
                if source:
                    cursor.execute("""
                        SELECT timestamp, level, source, message, details, request_path
                        FROM app_logs WHERE source = ?
                        ORDER BY id DESC LIMIT ?
                    """, (source, limit))
                else:
                    cursor.execute("""
                        SELECT timestamp, level, source, message, details, request_path
                        FROM app_logs ORDER BY id DESC LIMIT ?
                    """, (limit,))
                return [{
                    'timestamp': row[0],
                    'level': row[1],
                    'source': row[2],
                    'message': row[3],
                    'details': row[4],
                    'request_path': row[5],
                } for row in cursor.fetchall()]
        except Exception as e:
            print(f"Failed to read logs: {e}")
            return []


def db_log(level, source, message, details=None):
    """Shortcut used by modules to write to the persistent log"""
    LoggingService.log(level, source, message, details)
