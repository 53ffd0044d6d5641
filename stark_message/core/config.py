import os
from dotenv import load_dotenv

load_dotenv(override=True)

class Config:
    """
    Base configuration for the Stark Message extension.
    Projects can override any of these through Flask app.config.
    """
    # Flask settings
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY')

    # Get DB_DIR from environment, or use a default if not set
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))

    # Database paths - use environment variables or fallback to DB_DIR
    STARK_MESSAGE_DB = os.getenv('STARK_MESSAGE_DB', os.path.join(DB_DIR, "settings.db"))
    LOGS_DB = os.getenv('LOGS_DB', os.path.join(DB_DIR, "app_logs.db"))

    # Dismissal cookie: dismissed_<cookie_version>, kept for 3 days on path /
    COOKIE_PREFIX = os.getenv('STARK_MESSAGE_COOKIE_PREFIX', 'dismissed_')
    COOKIE_LIFETIME = 3 * 24 * 60 * 60
    COOKIE_PATH = '/'

    # Comma-separated origins allowed to read /stark-message/state cross-site
    CORS_ORIGINS = [o.strip() for o in os.getenv('STARK_MESSAGE_CORS_ORIGINS', '').split(',') if o.strip()]

    # Admin login endpoint that unauthenticated admin requests are sent to
    ADMIN_LOGIN_ENDPOINT = os.getenv('STARK_MESSAGE_ADMIN_LOGIN_ENDPOINT', 'admin.login')
