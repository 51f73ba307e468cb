# File: lyric-service/app/core/metrics.py
from prometheus_client import Counter, Histogram

ASK_REQUESTS_TOTAL = Counter(
    "lyric_ask_requests_total",
    "Total number of /ask requests by final outcome.",
    ["outcome"]
)

ASK_DURATION_SECONDS = Histogram(
    "lyric_ask_duration_seconds",
    "End-to-end time spent in the ask pipeline.",
    buckets=[0.1, 0.25, 0.5, 1, 2, 5, 10, 20]
)

RATE_LIMIT_DECISIONS_TOTAL = Counter(
    "lyric_rate_limit_decisions_total",
    "Rate limit decisions per window.",
    ["window", "result"]
)

OPENAI_API_DURATION_SECONDS = Histogram(
    "lyric_openai_api_duration_seconds",
    "Duration of calls to the OpenAI API.",
    ["operation", "model_name"]
)

OPENAI_API_ERRORS_TOTAL = Counter(
    "lyric_openai_api_errors_total",
    "Total number of errors from the OpenAI API.",
    ["operation", "error_type"]
)

CANDIDATES_RETRIEVED = Histogram(
    "lyric_candidates_retrieved",
    "Number of candidates above the similarity threshold per query.",
    buckets=[0, 1, 2, 3]
)

FALLBACKS_TOTAL = Counter(
    "lyric_fallbacks_total",
    "Total number of fallback lyrics served.",
    ["reason"]
)

UNCONTAINED_SELECTIONS_TOTAL = Counter(
    "lyric_uncontained_selections_total",
    "Selector outputs that did not match any supplied candidate.",
    ["action"]
)
