"""Localized message catalogs."""

from .messages import Messages, get_messages, resolve_language
