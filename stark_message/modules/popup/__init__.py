"""
Popup Module
============

Public side of Stark Message:
- /stark-message/dismiss   remembers a dismissal in a versioned cookie
- /stark-message/state     JSON visibility state (CORS-enabled when configured)
- stark_message_popup()    template helper that emits the popup in the footer
"""

from flask import Blueprint

popup_bp = Blueprint(
    'stark_message_popup',
    __name__,
    url_prefix='/stark-message',
    template_folder='templates',
    static_folder='static',
    static_url_path='/static'
)

from . import routes

__all__ = ['popup_bp']
