"""
Settings Module
===============

Admin page for configuring the popup: on/off switch, HTML content,
custom CSS and the pages it appears on. Saving always re-shows the popup
to every visitor.
"""

from flask import Blueprint
import os

_template_dir = os.path.join(os.path.dirname(__file__), 'templates')

settings_bp = Blueprint('stark_message_settings', __name__,
                        url_prefix='/admin/stark-message',
                        template_folder=_template_dir)

from . import routes
