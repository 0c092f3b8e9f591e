"""Application constants."""

USER_AGENT = "assembly-map/0.3 (+research; contact: configured-email)"
STAGES = (
    "fetch",
    "build",
    "validate",
)
SOURCE_NAMES = ("results", "boundaries", "palette")
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
RUNNER_UP_MISSING = "N/A"
PARTY_UNKNOWN = "UNKNOWN"
TOP_CANDIDATE_LIMIT = 5
# A candidate forfeits the deposit below one sixth of the valid votes.
DEPOSIT_THRESHOLD_DIVISOR = 6
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "source",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
