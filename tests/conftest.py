"""
Shared fixtures for the Stark Message tests.
Run with: pytest tests -v

NOTE: pytest is listed under extras_require["dev"] in setup.py.
Install with: pip install -e ".[dev]"
"""

import shutil
import tempfile

import pytest
from flask import Flask, render_template_string

from stark_message import StarkMessage

CSRF_TOKEN = 'test-csrf-token'

PAGE_TEMPLATE = '<html><body><h1>Page</h1>{{ stark_message_popup() }}</body></html>'


@pytest.fixture
def tmp_db_dir():
    """Create a temporary directory for test databases, cleaned up after."""
    d = tempfile.mkdtemp(prefix="stark-message-test-")
    yield d
    shutil.rmtree(d, ignore_errors=True)


def make_app(db_dir, config=None, **app_config):
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SECRET_KEY"] = "test-secret"
    app.config["DB_DIR"] = db_dir
    app.config.update(app_config)

    StarkMessage(app, config)

    @app.route('/')
    def home():
        return render_template_string(PAGE_TEMPLATE)

    @app.route('/page/<int:page_id>')
    def page(page_id):
        return render_template_string(PAGE_TEMPLATE)

    return app


@pytest.fixture
def app(tmp_db_dir):
    """Flask app with Stark Message registered and a couple of host pages."""
    return make_app(tmp_db_dir)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    """Test client with an admin session and a known CSRF token."""
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['admin_id'] = 1
        sess['stark_message_csrf_token'] = CSRF_TOKEN
    return client


def save_settings(admin_client, enabled=True, html_content='<p>Hello</p>',
                  custom_css='', page_ids='', csrf_token=CSRF_TOKEN):
    """POST the settings form like the admin page does."""
    data = {
        'html_content': html_content,
        'custom_css': custom_css,
        'page_ids': page_ids,
        'csrf_token': csrf_token,
    }
    if enabled:
        data['enabled'] = '1'
    return admin_client.post('/admin/stark-message/save', data=data)
