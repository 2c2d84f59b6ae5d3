from __future__ import annotations


def message_is_loggable(message) -> bool:
    # DMs have no guild settings; bot output (including our own log embeds) is skipped.
    if message is None or getattr(message, "guild", None) is None:
        return False
    author = getattr(message, "author", None)
    if author is not None and getattr(author, "bot", False):
        return False
    return True


def role_is_loggable(role) -> bool:
    if getattr(role, "name", None) == "@everyone":
        return False
    is_default = getattr(role, "is_default", None)
    return not (callable(is_default) and is_default())
