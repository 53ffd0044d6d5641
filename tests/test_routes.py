"""
Integration tests: extension wiring, admin settings, dismiss endpoint and
the full show / dismiss / re-show cycle through a Flask test client.
"""

import os
from unittest.mock import patch

from flask import Flask

from stark_message import StarkMessage
from stark_message.core import LoggingService, MarkerWriteFailed
from stark_message.modules.settings.database import (
    COOKIE_VERSION_KEY, ENABLED_KEY, get_setting, set_setting
)

from conftest import make_app, save_settings, CSRF_TOKEN

POPUP_MARKER = 'class="stark-message-popup"'


def _cookie_version(app):
    with app.app_context():
        return int(get_setting(COOKIE_VERSION_KEY))


# ---------------------------------------------------------------------------
# Extension wiring
# ---------------------------------------------------------------------------

def test_extension_registers_modules(app):
    ext = app.extensions["stark_message"]
    assert ext.get_registered_modules() == ["settings", "popup"]

    rules = {rule.rule for rule in app.url_map.iter_rules()}
    assert "/admin/stark-message/" in rules
    assert "/admin/stark-message/save" in rules
    assert "/stark-message/dismiss" in rules
    assert "/stark-message/state" in rules


def test_features_can_disable_popup(tmp_db_dir):
    app = make_app(tmp_db_dir, {'features': {'popup': False}})
    assert app.extensions["stark_message"].get_registered_modules() == ["settings"]

    response = app.test_client().get("/page/1")
    assert response.status_code == 200
    assert POPUP_MARKER not in response.get_data(as_text=True)


def test_init_app_on_several_apps(tmp_db_dir):
    stark_message = StarkMessage()
    apps = []
    for name in ("first", "second"):
        app = Flask(name)
        app.config["SECRET_KEY"] = "test-secret"
        app.config["DB_DIR"] = os.path.join(tmp_db_dir, name)
        stark_message.init_app(app)
        apps.append(app)

    assert stark_message.get_registered_modules() == ["settings", "popup"]
    for app in apps:
        assert app.extensions["stark_message"] is stark_message
        assert os.path.exists(os.path.join(app.config["DB_DIR"], "settings.db"))


def test_template_context_injection(app):
    with app.test_request_context("/"):
        ctx = {}
        for func in app.template_context_processors[None]:
            ctx.update(func())

    assert callable(ctx["stark_message_popup"])
    assert ctx["stark_message_config"]["cookie_lifetime"] == 259200
    assert ctx["stark_message_config"]["cookie_prefix"] == "dismissed_"


# ---------------------------------------------------------------------------
# Admin settings
# ---------------------------------------------------------------------------

def test_admin_auth_redirect(client):
    response = client.get("/admin/stark-message/", follow_redirects=False)
    assert response.status_code == 302
    assert "/admin" in response.headers.get("Location", "")


def test_admin_api_requires_auth(client):
    response = client.get("/admin/stark-message/api/settings")
    assert response.status_code == 401
    assert response.get_json()["success"] is False


def test_admin_api_unavailable_store(app, admin_client, tmp_db_dir):
    app.config["STARK_MESSAGE_DB"] = os.path.join(tmp_db_dir, "nowhere", "settings.db")

    response = admin_client.get("/admin/stark-message/api/settings")
    assert response.status_code == 503
    assert response.get_json()["success"] is False


def test_settings_page_renders_form(admin_client):
    response = admin_client.get("/admin/stark-message/")
    body = response.get_data(as_text=True)

    assert response.status_code == 200
    assert "Stark Message Settings" in body
    assert 'name="csrf_token"' in body
    assert CSRF_TOKEN in body


def test_save_requires_csrf_token(app, admin_client):
    before = _cookie_version(app)

    response = save_settings(admin_client, csrf_token="wrong")
    assert response.status_code == 400
    assert _cookie_version(app) == before

    response = save_settings(admin_client, csrf_token="")
    assert response.status_code == 400


def test_save_persists_and_bumps_version(app, admin_client):
    before = _cookie_version(app)

    response = save_settings(admin_client, html_content="<p>Big news</p>", page_ids="3,7")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/admin/stark-message/")

    data = admin_client.get("/admin/stark-message/api/settings").get_json()
    assert data["success"] is True
    assert data["settings"]["enabled"] is True
    assert data["settings"]["html_content"] == "<p>Big news</p>"
    assert data["settings"]["allowed_page_ids"] == [3, 7]
    assert data["settings"]["cookie_version"] > before


def test_save_flashes_messages(admin_client):
    response = save_settings(admin_client, page_ids="3, abc", )
    assert response.status_code == 302

    body = admin_client.get("/admin/stark-message/").get_data(as_text=True)
    assert "Popup will now be displayed again on all pages." in body
    assert "abc" in body


def test_save_is_logged(app, admin_client):
    save_settings(admin_client)

    with app.app_context():
        logs = LoggingService.get_recent_logs(source="settings")

    assert any(log["message"] == "Popup settings saved" for log in logs)


# ---------------------------------------------------------------------------
# Dismiss endpoint
# ---------------------------------------------------------------------------

def test_dismiss_sets_versioned_cookie(app, client):
    version = _cookie_version(app)

    response = client.post("/stark-message/dismiss")
    assert response.status_code == 200
    assert response.get_json() == {"success": True, "data": "Cookie set for 3 days."}

    set_cookie = response.headers.get("Set-Cookie")
    assert set_cookie.startswith(f"dismissed_{version}=1")
    assert "Max-Age=259200" in set_cookie
    assert "Path=/" in set_cookie


def test_dismiss_is_idempotent(app, client):
    version = _cookie_version(app)

    client.post("/stark-message/dismiss")
    client.post("/stark-message/dismiss")

    cookie = client.get_cookie(f"dismissed_{version}")
    assert cookie is not None
    assert cookie.value == "1"


def test_dismiss_survives_cookie_write_failure(client):
    with patch("stark_message.modules.popup.routes.apply_marker",
               side_effect=MarkerWriteFailed("response already sent")):
        response = client.post("/stark-message/dismiss")

    assert response.status_code == 200
    assert response.get_json()["success"] is True
    assert "Set-Cookie" not in response.headers


def test_dismiss_without_config_still_succeeds(app, client, tmp_db_dir):
    app.config["STARK_MESSAGE_DB"] = tmp_db_dir + "/nowhere/settings.db"

    response = client.post("/stark-message/dismiss")
    assert response.status_code == 200
    assert response.get_json()["success"] is True
    assert "Set-Cookie" not in response.headers


# ---------------------------------------------------------------------------
# Rendering in host pages
# ---------------------------------------------------------------------------

def test_disabled_popup_does_not_render(client):
    body = client.get("/page/1").get_data(as_text=True)
    assert POPUP_MARKER not in body


def test_show_dismiss_reshow_cycle(app, admin_client):
    save_settings(admin_client, html_content="<p>Campaign one</p>")
    first_version = _cookie_version(app)

    body = admin_client.get("/page/1").get_data(as_text=True)
    assert POPUP_MARKER in body
    assert "Campaign one" in body

    admin_client.post("/stark-message/dismiss")
    assert admin_client.get_cookie(f"dismissed_{first_version}") is not None

    body = admin_client.get("/page/1").get_data(as_text=True)
    assert POPUP_MARKER not in body

    # Saving again re-shows the popup even though the old cookie is still there
    save_settings(admin_client, html_content="<p>Campaign two</p>")
    second_version = _cookie_version(app)
    assert second_version != first_version
    assert admin_client.get_cookie(f"dismissed_{first_version}") is not None

    body = admin_client.get("/page/1").get_data(as_text=True)
    assert POPUP_MARKER in body
    assert "Campaign two" in body


def test_allow_list_limits_pages(admin_client):
    save_settings(admin_client, page_ids="3,7")

    assert POPUP_MARKER in admin_client.get("/page/3").get_data(as_text=True)
    assert POPUP_MARKER in admin_client.get("/page/7").get_data(as_text=True)
    assert POPUP_MARKER not in admin_client.get("/page/8").get_data(as_text=True)
    assert POPUP_MARKER not in admin_client.get("/").get_data(as_text=True)


def test_all_invalid_allow_list_stays_restricted(admin_client):
    save_settings(admin_client, page_ids="about, contact")

    assert POPUP_MARKER in admin_client.get("/").get_data(as_text=True)
    assert POPUP_MARKER not in admin_client.get("/page/3").get_data(as_text=True)


def test_each_request_reads_current_settings(app, admin_client):
    save_settings(admin_client)
    assert POPUP_MARKER in admin_client.get("/page/1").get_data(as_text=True)

    with app.app_context():
        set_setting(ENABLED_KEY, "0")

    assert POPUP_MARKER not in admin_client.get("/page/1").get_data(as_text=True)


def test_page_id_resolver(tmp_db_dir):
    app = make_app(tmp_db_dir, {'page_id_resolver': lambda request: request.args.get('p')})
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['admin_id'] = 1
        sess['stark_message_csrf_token'] = CSRF_TOKEN
    save_settings(client, page_ids="42")

    assert POPUP_MARKER in client.get("/?p=42").get_data(as_text=True)
    assert POPUP_MARKER not in client.get("/?p=41").get_data(as_text=True)


def test_unavailable_config_never_breaks_page(app, admin_client, tmp_db_dir):
    save_settings(admin_client)
    app.config["STARK_MESSAGE_DB"] = tmp_db_dir + "/nowhere/settings.db"

    response = admin_client.get("/page/1")
    assert response.status_code == 200
    assert POPUP_MARKER not in response.get_data(as_text=True)


def test_render_failure_never_breaks_page(admin_client):
    save_settings(admin_client)

    with patch("stark_message.modules.popup.routes.render_popup", side_effect=RuntimeError("boom")):
        response = admin_client.get("/page/1")

    assert response.status_code == 200
    assert POPUP_MARKER not in response.get_data(as_text=True)


# ---------------------------------------------------------------------------
# State endpoint
# ---------------------------------------------------------------------------

def test_state_endpoint(app, admin_client):
    save_settings(admin_client, page_ids="3")
    version = _cookie_version(app)

    data = admin_client.get("/stark-message/state?page_id=3").get_json()
    assert data == {
        "should_render": True,
        "cookie_suffix": version,
        "cookie_lifetime": 259200,
        "marker_name": f"dismissed_{version}",
    }

    assert admin_client.get("/stark-message/state?page_id=4").get_json()["should_render"] is False


def test_state_endpoint_unavailable_store(app, admin_client, tmp_db_dir):
    save_settings(admin_client)
    app.config["STARK_MESSAGE_DB"] = os.path.join(tmp_db_dir, "nowhere", "settings.db")

    response = admin_client.get("/stark-message/state?page_id=1")
    assert response.status_code == 200
    assert response.get_json() == {"should_render": False}


def test_state_endpoint_cors(tmp_db_dir):
    app = make_app(tmp_db_dir, STARK_MESSAGE_CORS_ORIGINS=["https://blog.example.com"])
    client = app.test_client()

    response = client.get("/stark-message/state", headers={"Origin": "https://blog.example.com"})
    assert response.headers.get("Access-Control-Allow-Origin") == "https://blog.example.com"
    assert response.headers.get("Access-Control-Allow-Credentials") == "true"

    response = client.get("/stark-message/state", headers={"Origin": "https://evil.example.com"})
    assert "Access-Control-Allow-Origin" not in response.headers
