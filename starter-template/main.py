"""
My Stark Message Site
=====================

Small Flask site showing the Stark Message popup on a few pages.
"""

import os
import secrets
from flask import Flask, render_template, request, redirect, url_for, session

# ===== App Setup =====

app = Flask(__name__)

# Load config
from config import Config
app.config['SECRET_KEY'] = Config.SECRET_KEY
app.config['DB_DIR'] = Config.DB_DIR
app.config['STARK_MESSAGE_DB'] = Config.STARK_MESSAGE_DB
app.config['LOGS_DB'] = Config.LOGS_DB
app.config['STARK_MESSAGE_ADMIN_LOGIN_ENDPOINT'] = 'admin_login'

# Session security
app.config['SESSION_COOKIE_SECURE'] = not app.debug
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

# Ensure database directory exists
os.makedirs(Config.DB_DIR, exist_ok=True)

# ===== Stark Message =====

from stark_message import StarkMessage
stark_message = StarkMessage(app)


# ===== Routes =====

@app.route('/')
def home():
    """Home page (page id 0)"""
    return render_template('page.html', title='Home', page_id=0)


@app.route('/page/<int:page_id>')
def page(page_id):
    """Numbered content page; the popup reads page_id from the view args"""
    return render_template('page.html', title=f'Page {page_id}', page_id=page_id)


@app.route('/admin/login', methods=['GET', 'POST'])
def admin_login():
    """Demo admin login guarding the popup settings"""
    error = None
    if request.method == 'POST':
        password = request.form.get('password', '')
        if Config.ADMIN_PASSWORD and secrets.compare_digest(password, Config.ADMIN_PASSWORD):
            session['admin_id'] = 1
            return redirect(request.args.get('next') or url_for('stark_message_settings.settings_page'))
        error = 'Invalid password'
    return render_template('login.html', error=error)


@app.route('/admin/logout')
def admin_logout():
    session.pop('admin_id', None)
    return redirect(url_for('home'))


# ===== Run =====

if __name__ == '__main__':
    print("[STARTER] Starting on port 5000...")
    app.run(debug=True, port=5000, host='0.0.0.0')
