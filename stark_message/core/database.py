import os
import sqlite3


class Database:

    @staticmethod
    def connect(path):
        db_dir = os.path.dirname(path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        return sqlite3.connect(path)

    @staticmethod
    def resolve_path(key, default=None):
        """
        Resolve a database path: Flask app config first, then Config, then env var.
        """
        try:
            from flask import current_app
            val = current_app.config.get(key)
            if val:
                return val
        except RuntimeError:
            # Outside of app context
            pass

        from .config import Config
        val = getattr(Config, key, None)
        if val:
            return val
        return os.getenv(key, default)
