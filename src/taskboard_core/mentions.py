from __future__ import annotations

import re

# A mention must start the text or follow whitespace so e-mail addresses
# such as ``me@example.com`` are not picked up.
_MENTION_RE = re.compile(r"(?:^|\s)@([A-Za-z0-9_]+)")


def extract_mentions(text: str) -> list[str]:
    """Return distinct ``@token`` mentions in order of first appearance."""
    seen: set[str] = set()
    mentions: list[str] = []
    for match in _MENTION_RE.finditer(text or ""):
        mention = "@" + match.group(1)
        if mention not in seen:
            seen.add(mention)
            mentions.append(mention)
    return mentions
