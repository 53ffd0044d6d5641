"""
Popup Models
============

Immutable snapshots passed around a single request. A new PopupConfig is only
ever produced by the settings save, never mutated in place.
"""

from dataclasses import dataclass, field, replace
from typing import FrozenSet

DEFAULT_HTML_CONTENT = '<p>This is the default content. Configure me in the Stark Message settings.</p>'
DEFAULT_CUSTOM_CSS = '.stark-message-content {}'


@dataclass(frozen=True)
class PopupConfig:
    enabled: bool = False
    html_content: str = DEFAULT_HTML_CONTENT
    custom_css: str = DEFAULT_CUSTOM_CSS
    allowed_page_ids: FrozenSet[int] = field(default_factory=frozenset)
    cookie_version: int = 0

    def with_version(self, cookie_version):
        return replace(self, cookie_version=int(cookie_version))

    def to_dict(self):
        return {
            'enabled': self.enabled,
            'html_content': self.html_content,
            'custom_css': self.custom_css,
            'allowed_page_ids': sorted(self.allowed_page_ids),
            'cookie_version': self.cookie_version,
        }


@dataclass(frozen=True)
class MarkerInstruction:
    """A cookie the client should hold to remember a dismissal"""
    name: str
    value: str = '1'
    max_age: int = 3 * 24 * 60 * 60
    path: str = '/'

    def to_dict(self):
        return {
            'name': self.name,
            'value': self.value,
            'max_age': self.max_age,
            'path': self.path,
        }
