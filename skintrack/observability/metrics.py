from prometheus_client import Counter, Histogram

# -------------------------
# Oracle metrics
# -------------------------

ORACLE_REQUESTS_TOTAL = Counter(
    "oracle_requests_total",
    "Total oracle requests",
    ["operation", "result", "model"],
)

ORACLE_LATENCY_SECONDS = Histogram(
    "oracle_latency_seconds",
    "Oracle round-trip latency in seconds",
    ["operation", "model"],
)

# -------------------------
# Decoder / timeline metrics
# -------------------------

DECODER_FALLBACKS_TOTAL = Counter(
    "decoder_fallbacks_total",
    "Oracle responses that could not be decoded and fell back to the empty result",
)

TIMELINE_ENTRIES_APPENDED_TOTAL = Counter(
    "timeline_entries_appended_total",
    "Timeline entries persisted",
)
