"""
Shared constants for the site mirror.

Contains default configuration values used by the CLI, the renderer
and the crawl orchestrator.
"""

# Default user agent string for the browser context
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

# Page load timeout in milliseconds (for Playwright)
DEFAULT_PAGE_TIMEOUT = 60000

# Navigation completion condition
DEFAULT_WAIT_UNTIL = "networkidle"

# Base politeness delay between page renders in seconds
DEFAULT_WAIT = 1.0

# Fixed penalty before re-rendering a blocked or failed page
DEFAULT_RETRY_DELAY = 10.0

# None means retry forever
DEFAULT_MAX_RETRIES = None

# Maximum crawl depth by default
DEFAULT_MAX_DEPTH = 5

# Default output directory
DEFAULT_OUTPUT_DIR = "./mirror"

# Directory (under the output dir) holding archived resources
RESOURCES_DIR = "resources"

# Content types persisted by the page-save path, never by the archiver
DOCUMENT_CONTENT_TYPES = ("text/html", "application/xhtml+xml")

# Anti-bot interstitial markers (CSS selectors)
BLOCK_SIGNATURES = (
    'meta[name="captcha-bypass"]',
    'script[src*="captcha-delivery.com"]',
    'script[src*="/cdn-cgi/challenge-platform/"]',
    'form#challenge-form',
    'iframe[src*="hcaptcha.com/captcha"]',
)
