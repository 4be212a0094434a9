from __future__ import annotations

# GH / API operations
GH_TIMEOUT_SECONDS = 60.0

# Rate-limit retry policy (exponential backoff, hard cap)
RATE_LIMIT_RETRY_ATTEMPTS = 5
RATE_LIMIT_BASE_DELAY_SECONDS = 2.0

# Pagination of the compare endpoint
GH_COMPARE_PAGE_SIZE = 100
GH_COMPARE_MAX_PAGES = 30
