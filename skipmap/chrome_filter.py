"""Page-chrome filter for scraped transcript pages.

Scraped pages carry navigation, scripts, captions and structured data
alongside the spoken paragraphs. Each rule below is a named predicate; a
candidate line is rejected by the first rule that matches it.
"""

import re
from typing import Callable, NamedTuple, Optional

MIN_LINE_CHARS = 10
MAX_LINE_CHARS = 2000
MAX_URLS_PER_LINE = 2

SCRIPT_PATTERN = re.compile(
    r"function\s*\(|document\.|window\.|getElementById|addEventListener|"
    r"querySelector|innerHTML|=>\s*\{|\bvar\s+\w+\s*=|\bconst\s+\w+\s*=\s*[\[{(]"
)

STRUCTURED_DATA_MARKERS = ('"@type"', '"@context"')

# Boilerplate that only ever appears as a whole short line
NAVIGATION_PREFIXES = (
    "skip to main content",
    "skip to content",
    "sign in to",
    "sign up for",
    "subscribe to",
    "share this",
    "transcript provided by",
    "related stories",
    "contact us",
)
NAVIGATION_PREFIX_MAX_CHARS = 80

NAVIGATION_LINES = frozenset({
    "newsletter",
    "newsletters",
    "accessibility",
    "corrections",
    "subscribe now",
    "sign in or register",
})

# Boilerplate that is never spoken, wherever it appears in the line
BOILERPLATE_PHRASES = (
    "all rights reserved",
    "privacy policy",
    "terms of use",
    "cookie policy",
    "cookie settings",
    "become an npr sponsor",
    "npr thanks our sponsors",
    "rush deadline",
    "this text may not be in its final form",
    "©",
)

URL_PATTERN = re.compile(r"https?://|www\.", re.IGNORECASE)

CAPTION_MARKERS = (
    "hide caption",
    "toggle caption",
    "getty images",
    "photo by",
    "photo credit",
    "image credit",
    "enlarge this image",
)


class ChromeRule(NamedTuple):
    """A named predicate that flags a candidate line as page chrome."""

    name: str
    matches: Callable[[str], bool]


def is_too_short(text: str) -> bool:
    return len(text) < MIN_LINE_CHARS


def is_too_long(text: str) -> bool:
    return len(text) > MAX_LINE_CHARS


def has_script_tokens(text: str) -> bool:
    return SCRIPT_PATTERN.search(text) is not None


def has_structured_data(text: str) -> bool:
    return any(marker in text for marker in STRUCTURED_DATA_MARKERS)


def is_navigation(text: str) -> bool:
    """Navigation, footer or sponsor-page boilerplate.

    Funding credits read on air ("Support for NPR comes from...") are
    spoken content and must never match here.
    """
    lowered = text.lower().strip()
    if lowered.rstrip(".:") in NAVIGATION_LINES:
        return True
    if len(lowered) <= NAVIGATION_PREFIX_MAX_CHARS and lowered.startswith(NAVIGATION_PREFIXES):
        return True
    return any(phrase in lowered for phrase in BOILERPLATE_PHRASES)


def has_many_urls(text: str) -> bool:
    return len(URL_PATTERN.findall(text)) > MAX_URLS_PER_LINE


def is_photo_caption(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in CAPTION_MARKERS)


CHROME_RULES: list[ChromeRule] = [
    ChromeRule("too_short", is_too_short),
    ChromeRule("too_long", is_too_long),
    ChromeRule("script", has_script_tokens),
    ChromeRule("structured_data", has_structured_data),
    ChromeRule("navigation", is_navigation),
    ChromeRule("many_urls", has_many_urls),
    ChromeRule("photo_caption", is_photo_caption),
]


def match_chrome_rule(text: str, rules: list[ChromeRule] = CHROME_RULES) -> Optional[str]:
    """Return the name of the first rule that flags ``text``, or None."""
    for rule in rules:
        if rule.matches(text):
            return rule.name
    return None


def is_page_chrome(text: str) -> bool:
    """Whether a whitespace-normalized candidate line is page chrome."""
    return match_chrome_rule(text) is not None
