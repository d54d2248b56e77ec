"""Known endpoints and API error code groups."""

ENWIKI_API_URL = "https://en.wikipedia.org/w/api.php"
TEST_WIKIPEDIA_API_URL = "https://test.wikipedia.org/w/api.php"
TEST_MIRAHEZE_API_URL = "https://publictestwiki.com/w/api.php"

# Wikimedia EventStreams
EVENTSTREAMS_BASE_URL = "https://stream.wikimedia.org/v2/stream"
RECENT_CHANGE_STREAM = "recentchange"
REVISION_SCORE_STREAM = "revision-score"

DEFAULT_USER_AGENT = "wikiflow/0.1.0 (https://github.com/wikiflow/wikiflow)"

# API error codes grouped by how the executor treats them
THROTTLE_CODES = frozenset({"maxlag", "ratelimited", "readonly", "actionthrottledtext"})
TOKEN_CODES = frozenset({"badtoken", "notoken"})
RETRYABLE_HTTP_STATUSES = frozenset({500, 502, 503, 504})
THROTTLE_HTTP_STATUSES = frozenset({429})
