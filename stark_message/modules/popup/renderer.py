"""
Popup Renderer
==============

Turns the stored popup content into the markup emitted in the page footer.
Content and CSS are administrator-supplied, so both are sanitized before
they are stored and again before they are rendered.
"""

import re
import logging

import bleach
from bleach.css_sanitizer import CSSSanitizer
from flask import current_app, render_template, url_for
from markupsafe import Markup

from stark_message.core.config import Config

logger = logging.getLogger(__name__)

# Tags and attributes an administrator may use in post-style content
ALLOWED_TAGS = [
    "p", "br", "hr", "div", "span",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "strong", "em", "b", "i", "u", "s", "small", "sup", "sub", "mark",
    "blockquote", "pre", "code",
    "ul", "ol", "li",
    "a", "img", "figure", "figcaption",
    "table", "thead", "tbody", "tr", "th", "td",
]

ALLOWED_ATTRS = {
    "*": ["class", "id", "style", "title", "role", "aria-label"],
    "a": ["href", "target", "rel"],
    "img": ["src", "alt", "width", "height", "loading"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan"],
}

ALLOWED_PROTOCOLS = ["http", "https", "mailto", "tel"]

ALLOWED_CSS_PROPERTIES = [
    "color", "background-color", "font-size", "font-weight", "font-style",
    "font-family", "text-align", "text-decoration", "line-height",
    "margin", "margin-top", "margin-bottom", "margin-left", "margin-right",
    "padding", "padding-top", "padding-bottom", "padding-left", "padding-right",
    "border", "border-radius", "border-color", "border-width", "border-style",
    "width", "max-width", "height", "max-height", "display", "vertical-align",
]

_CSS_SANITIZER = CSSSanitizer(allowed_css_properties=ALLOWED_CSS_PROPERTIES)

_BLOCK_TAG_RE = re.compile(
    r'^<(p|div|h[1-6]|ul|ol|li|blockquote|pre|table|thead|tbody|tr|figure|hr)\b',
    re.IGNORECASE,
)

_CSS_MAX_SIZE = 100_000
_STYLE_BREAKOUT_RE = re.compile(r'<\s*/?\s*style\b[^>]*>?', re.IGNORECASE)
_HTML_COMMENT_RE = re.compile(r'<!--|-->|<!\[CDATA\[|\]\]>')
_HTML_TAG_RE = re.compile(r'</?[a-zA-Z][^>]*>')
_CSS_IMPORT_RE = re.compile(r'@import\b[^;]*;?', re.IGNORECASE)
_CSS_EXPRESSION_RE = re.compile(r'\bexpression\s*\(', re.IGNORECASE)
_CSS_MOZ_BINDING_RE = re.compile(r'-moz-binding\s*:', re.IGNORECASE)
_CSS_BEHAVIOR_RE = re.compile(r'\bbehavior\s*:', re.IGNORECASE)
_CSS_JS_URL_RE = re.compile(r'url\s*\(\s*["\']?\s*javascript:[^)]*\)', re.IGNORECASE)

CLOSE_ICON_PATH = (
    "M256-227.69 227.69-256l224-224-224-224L256-732.31l224 224 224-224L732.31-704"
    "l-224 224 224 224L704-227.69l-224-224-224 224Z"
)


def autop(text):
    """
    Convert plain line breaks into paragraphs.

    Blank lines separate paragraphs, single newlines become <br>. Chunks that
    already start with block-level markup are left alone.
    """
    if not text:
        return ''

    text = text.replace('\r\n', '\n').replace('\r', '\n').strip()
    chunks = re.split(r'\n\s*\n', text)

    paragraphs = []
    for chunk in chunks:
        chunk = chunk.strip()
        if not chunk:
            continue
        if _BLOCK_TAG_RE.match(chunk):
            paragraphs.append(chunk)
        else:
            paragraphs.append('<p>' + re.sub(r'\n', '<br>\n', chunk) + '</p>')

    return '\n'.join(paragraphs)


def sanitize_html(raw_html):
    """Strip scripts, event handlers and unsafe CSS from popup content"""
    if not raw_html:
        return ''

    return bleach.clean(
        raw_html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRS,
        protocols=ALLOWED_PROTOCOLS,
        css_sanitizer=_CSS_SANITIZER,
        strip=True,
        strip_comments=True,
    )


def sanitize_css(raw_css):
    """
    Clean a custom stylesheet so it can be placed inside a <style> element.
    Layout CSS is kept; markup, imports and script vectors are removed.
    """
    if not raw_css or not raw_css.strip():
        return ''

    css = raw_css.replace('\r\n', '\n')
    if len(css) > _CSS_MAX_SIZE:
        logger.warning(f"Custom CSS exceeds {_CSS_MAX_SIZE} bytes ({len(css)}), truncating")
        css = css[:_CSS_MAX_SIZE]

    css = _STYLE_BREAKOUT_RE.sub('', css)
    css = _HTML_COMMENT_RE.sub('', css)
    css = _HTML_TAG_RE.sub('', css)
    # CSS never needs a literal '<'; without it nothing can close the <style> element
    css = css.replace('<', '')

    css = _CSS_IMPORT_RE.sub('', css)
    css = _CSS_JS_URL_RE.sub('none', css)
    css = _CSS_EXPRESSION_RE.sub('/* expression-stripped */ (', css)
    css = _CSS_MOZ_BINDING_RE.sub('/* moz-binding-stripped */:', css)
    css = _CSS_BEHAVIOR_RE.sub('/* behavior-stripped */:', css)

    return css.strip()


def build_script_config(config):
    """Values handed to script.js so it can set the cookie client-side"""
    return {
        'cookie_prefix': current_app.config.get('STARK_MESSAGE_COOKIE_PREFIX', Config.COOKIE_PREFIX),
        'cookie_suffix': config.cookie_version,
        'cookie_lifetime': Config.COOKIE_LIFETIME,
        'dismiss_url': url_for('stark_message_popup.dismiss'),
    }


def render_popup(config):
    """Render the popup fragment for the page footer"""
    content = sanitize_html(autop(config.html_content))

    html = render_template(
        'popup/popup.html',
        content=Markup(content),
        custom_css=Markup(sanitize_css(config.custom_css)),
        script_config=build_script_config(config),
        close_icon_path=CLOSE_ICON_PATH,
    )
    return Markup(html)
