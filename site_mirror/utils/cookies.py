"""
Netscape cookie-jar loader.

Reads the tab-separated cookies.txt format exported by browsers and
curl, and converts each entry into the cookie dict shape accepted by
Playwright's BrowserContext.add_cookies().
"""

from typing import Dict, List, Optional

from .log import get_logger


logger = get_logger("cookies")

# domain, include-subdomains flag, path, secure, expires, name, value
COOKIE_FIELDS = 7


def parse_cookie_line(line: str) -> Optional[Dict]:
    """
    Parse a single cookies.txt line.

    Args:
        line: Raw line from the cookie file

    Returns:
        Playwright cookie dict, or None for comments and malformed lines
    """
    line = line.rstrip('\r\n')
    if not line.strip() or line.startswith('#'):
        return None

    fields = line.split('\t')
    if len(fields) < COOKIE_FIELDS:
        return None

    domain, _flag, path, secure, expires, name = fields[:6]
    value = '\t'.join(fields[6:])

    try:
        expires_at = int(float(expires))
    except ValueError:
        return None

    return {
        'name': name,
        'value': value,
        'domain': domain,
        'path': path or '/',
        'secure': secure.upper() == 'TRUE',
        # 0 marks a session cookie in cookies.txt; Playwright uses -1
        'expires': expires_at if expires_at > 0 else -1,
    }


def load_cookie_file(path: str) -> List[Dict]:
    """
    Load all cookies from a Netscape cookie-jar file.

    Args:
        path: Path to the cookie file

    Returns:
        List of Playwright cookie dicts

    Raises:
        OSError: If the file cannot be read
    """
    cookies = []
    skipped = 0

    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            cookie = parse_cookie_line(line)
            if cookie is None:
                if line.strip() and not line.startswith('#'):
                    skipped += 1
                continue
            cookies.append(cookie)

    logger.info(f"Loaded {len(cookies)} cookies from {path}")
    if skipped:
        logger.debug(f"Skipped {skipped} malformed cookie lines")

    return cookies
