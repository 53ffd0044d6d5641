"""
Popup Visibility
================

Decides whether the popup applies to the current page at all.
"""

import logging

from stark_message.core.errors import InvalidPageIdList

logger = logging.getLogger(__name__)


def _split_entries(raw):
    if raw is None:
        return []
    if isinstance(raw, (int, str)):
        raw = str(raw).split(',')
    return [str(entry).strip() for entry in raw]


def _to_int(value):
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def parse_page_ids(raw):
    """
    Parse a comma-separated page id list, skipping anything non-numeric.
    A list made only of non-numeric entries restricts to page 0.
    """
    ids = set()
    skipped = []
    for entry in _split_entries(raw):
        if not entry:
            continue
        page_id = _to_int(entry)
        if page_id is None:
            skipped.append(entry)
            continue
        ids.add(page_id)

    if skipped:
        logger.warning(f"Skipping non-numeric page ids: {skipped}")
        if not ids:
            ids.add(0)
    return frozenset(ids)


def validate_page_ids(raw):
    """Raise InvalidPageIdList if any non-empty entry is not an integer"""
    invalid = [e for e in _split_entries(raw) if e and _to_int(e) is None]
    if invalid:
        raise InvalidPageIdList(invalid)


def format_page_ids(page_ids):
    """Storage form of a page id set: '3,7'"""
    return ','.join(str(page_id) for page_id in sorted(page_ids))


def is_visible(config, current_page_id):
    """True if the popup is enabled and allowed on current_page_id"""
    if config is None or not config.enabled:
        return False

    allowed = parse_page_ids(config.allowed_page_ids)
    if allowed:
        page_id = _to_int(current_page_id)
        # Pages without a numeric id behave like the site root (0)
        if page_id is None:
            page_id = 0
        if page_id not in allowed:
            return False

    return True
