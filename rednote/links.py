"""
Share Link Resolution
Extracts a note URL from share text copied out of the app.
"""

import re

# Short links emitted by the app's share sheet
_SHORT_LINK_RE = re.compile(r'(https?://xhslink\.com/[a-zA-Z0-9/]+)', re.IGNORECASE)

# Canonical site URLs; stop at whitespace or a full-width comma
_SITE_LINK_RE = re.compile(r'(https?://(?:www\.)?xiaohongshu\.com/[^，\s]+)', re.IGNORECASE)


def resolve_share_link(text: str) -> str:
    """
    Return the first note link found in *text*.

    Short links take priority over canonical site links. Text with neither
    is returned unchanged (it is assumed to already be a direct URL).

    Args:
        text: A URL or a share message containing one

    Returns:
        The extracted link, or *text* itself
    """
    match = _SHORT_LINK_RE.search(text)
    if match:
        return match.group(1)

    match = _SITE_LINK_RE.search(text)
    if match:
        return match.group(1)

    return text
