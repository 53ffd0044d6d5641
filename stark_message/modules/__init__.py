"""
Stark Message Modules
=====================

Flask blueprint modules: the admin settings page and the public popup.
"""

__all__ = ['settings', 'popup']
