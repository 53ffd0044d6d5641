"""
Stark Message Errors
====================

None of these should ever reach a visitor. The worst outcome of any of them
is that the popup shows up again on the next page view.
"""


class StarkMessageError(Exception):
    """Base class for Stark Message errors"""


class ConfigUnavailable(StarkMessageError):
    """The settings store could not be read. The popup fails closed."""


class InvalidPageIdList(StarkMessageError, ValueError):
    """The page id list contains entries that are not integers"""

    def __init__(self, invalid_entries):
        self.invalid_entries = list(invalid_entries)
        super().__init__(
            f"Ignoring non-numeric page ids: {', '.join(self.invalid_entries)}"
        )


class MarkerWriteFailed(StarkMessageError):
    """The dismissal cookie could not be written to the response"""
