"""Link detection for message bodies.

URL detection follows the "improved liberal URL" pattern used by GNOME Shell
(http://daringfireball.net/2010/07/improved_regex_for_matching_urls), but is
implemented as a linear scanner rather than a regular expression. The
pattern's nested quantifiers backtrack catastrophically on long runs of
unbalanced parentheses.
"""

from __future__ import annotations

import re
import string

# Characters a URL may follow
LEADING_JUNK = frozenset("`([{'\"<«“‘")

# Characters a URL may not end with
TRAILING_JUNK = frozenset("`!()[]{};:'\".,<>?«»“”‘’")

SCHEMES = ("http://", "https://", "ftp://")

_DOMAIN_CHARS = frozenset(string.ascii_lowercase + string.digits + ".-")

_AMP_PATTERN = re.compile(r"&(?!amp;)")
_ANCHOR_CLOSE = re.compile(r"</a>", re.IGNORECASE)


def _is_plain(c: str) -> bool:
    """A URL character outside of parentheses."""
    return not c.isspace() and c not in "()<>"


def _match_prefixes(text: str, pos: int) -> list[int]:
    """Return the ends of every URL prefix form matching at pos."""
    ends = []
    lower = text[pos:pos + 8].lower()
    for scheme in SCHEMES:
        if lower.startswith(scheme):
            ends.append(pos + len(scheme))

    # www. or www1. up to www999.
    if lower.startswith("www"):
        i = pos + 3
        while i < len(text) and i - pos < 6 and text[i] in string.digits:
            i += 1
        if i < len(text) and text[i] == ".":
            ends.append(i + 1)

    # foo.xx/
    end = pos
    while end < len(text) and text[end].lower() in _DOMAIN_CHARS:
        end += 1
    if end < len(text) and text[end] == "/":
        for tld_len in (2, 3, 4):
            dot = end - tld_len - 1
            tld = text[dot + 1:end]
            if dot > pos and text[dot] == "." and tld.isascii() and tld.isalpha():
                ends.append(end + 1)
                break
    return ends


def _match_parens(text: str, pos: int) -> int | None:
    """
    Match a balanced group starting at the "(" at pos.

    One level of nesting is allowed, and nested groups may not be empty.
    Returns the position after the closing ")", or None.
    """
    i = pos + 1
    while i < len(text):
        c = text[i]
        if c == ")":
            return i + 1
        if c == "(":
            j = i + 1
            while j < len(text) and _is_plain(text[j]):
                j += 1
            if j == i + 1 or j >= len(text) or text[j] != ")":
                return None
            i = j + 1
        elif _is_plain(c):
            i += 1
        else:
            return None
    return None


def _match_body(text: str, pos: int) -> int | None:
    """
    Match the part of a URL after its prefix.

    The body is a run of pieces, each a plain character or a balanced
    group. The last piece must be a balanced group or a character that is
    not trailing junk, and at least one piece must come before it.
    """
    # (end, valid_as_last_piece) for every piece, in order
    pieces: list[tuple[int, bool]] = []
    i = pos
    while i < len(text):
        c = text[i]
        if c == "(":
            end = _match_parens(text, i)
            if end is None:
                break
            pieces.append((end, True))
            i = end
        elif _is_plain(c):
            pieces.append((i + 1, c not in TRAILING_JUNK))
            i += 1
        else:
            break

    for index in range(len(pieces) - 1, 0, -1):
        end, valid = pieces[index]
        if valid:
            return end
    return None


def _skip_anchor(text: str, pos: int) -> int | None:
    """If an <a ...>...</a> element starts at pos, return its end."""
    if text[pos:pos + 3].lower() != "<a ":
        return None
    close = _ANCHOR_CLOSE.search(text, pos)
    if close is None:
        return None
    return close.end()


def find_urls(text: str) -> list[tuple[int, int, str]]:
    """
    Find all URLs in text.

    Returns list of (start, end, url) tuples. Text inside existing anchor
    elements is not searched.
    """
    results = []
    pos = 0
    # A URL starts at the very beginning of the text, or right after a
    # leading junk character that is not part of an earlier match.
    consumed = 0
    while pos < len(text):
        anchor_end = _skip_anchor(text, pos)
        if anchor_end is not None:
            pos = consumed = anchor_end
            continue

        if pos == 0 or (pos - 1 >= consumed and _is_leading_junk(text[pos - 1])):
            for prefix_end in _match_prefixes(text, pos):
                end = _match_body(text, prefix_end)
                if end is not None:
                    results.append((pos, end, text[pos:end]))
                    pos = consumed = end
                    break
            else:
                pos += 1
            continue
        pos += 1
    return results


def _is_leading_junk(c: str) -> bool:
    return c.isspace() or c in LEADING_JUNK


def linkify(text: str) -> str:
    """
    Return text with URLs wrapped in <a> tags, parseable as Pango markup.

    Ampersands that do not already start an ``&amp;`` escape are escaped.
    Existing anchors are left alone, so linkify(linkify(text)) adds no
    further links.
    """
    result = []
    last = 0
    for start, end, url in find_urls(text):
        result.append(text[last:start])
        result.append(f'<a href="{url}">{url}</a>')
        last = end
    result.append(text[last:])
    return _AMP_PATTERN.sub("&amp;", "".join(result))


def link_target(url: str) -> str:
    """Get the URI to open for a detected URL, adding a scheme if needed."""
    if "://" not in url:
        return "http://" + url
    return url
