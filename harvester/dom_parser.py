import re
from bs4 import BeautifulSoup

MAIN_CONTENT_SELECTOR = 'article, main, [role="main"]'
MIN_CONTENT_CHARS = 500

# Text seen on interstitial / security pages
BLOCK_PATTERN = re.compile(r'captcha|robot|block|access denied|just a moment\.\.\.', re.IGNORECASE)


def visible_text(html: str) -> str:
    """Page text with scripts, styles and templates stripped."""
    soup = BeautifulSoup(html, 'html.parser')
    for elem in soup(['script', 'style', 'noscript', 'template']):
        elem.decompose()
    body = soup.body or soup
    return body.get_text(' ', strip=True)


def has_main_content(html: str, min_chars: int = MIN_CONTENT_CHARS) -> bool:
    """True when the first main-content region carries more than ``min_chars`` of text."""
    soup = BeautifulSoup(html, 'html.parser')
    region = soup.select_one(MAIN_CONTENT_SELECTOR)
    if region is None:
        return False
    return len(region.get_text(strip=True)) > min_chars


def find_block_signature(html: str) -> str | None:
    """Return the blocking-page phrase found in the page text, if any."""
    match = BLOCK_PATTERN.search(visible_text(html))
    return match.group(0) if match else None
