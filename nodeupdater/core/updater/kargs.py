"""
Kernel argument tokenizing.
"""

from __future__ import annotations


def quote_space_split(text: str) -> list[str]:
    """Split on whitespace unless the whitespace is inside double quotes.

    Quotes are kept in the token and empty tokens are dropped:

        >>> quote_space_split('boo=bar="YIPPIE KA YAY" baz foo')
        ['boo=bar="YIPPIE KA YAY"', 'baz', 'foo']
    """
    tokens: list[str] = []
    current: list[str] = []
    quoted = False

    for ch in text:
        if ch == '"':
            quoted = not quoted
        if ch.isspace() and not quoted:
            if current:
                tokens.append("".join(current))
                current = []
            continue
        current.append(ch)

    if current:
        tokens.append("".join(current))
    return tokens
