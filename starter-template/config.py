import os
from dotenv import load_dotenv

load_dotenv()

DB_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'databases')


class Config:
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')

    # Database paths
    DB_DIR = DB_DIR
    STARK_MESSAGE_DB = os.path.join(DB_DIR, 'settings.db')
    LOGS_DB = os.path.join(DB_DIR, 'app_logs.db')

    # Single shared password for the demo admin login
    ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD', '')
