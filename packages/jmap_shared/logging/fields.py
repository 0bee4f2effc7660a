"""Canonical structured log field names for JMAP clients."""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"

# Session fields.
ACCOUNT_ID = "account_id"
API_URL = "api_url"
SESSION_STATE = "session_state"

# Batch fields.
BATCH_CALLS = "batch_calls"
METHODS = "methods"
CALL_ID = "call_id"
DURATION_MS = "duration_ms"
OUTCOME = "outcome"
ERROR_TYPE = "error_type"

# Common service-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"

BATCH_EXECUTED_EVENT = "jmap_batch_executed"
BATCH_REJECTED_EVENT = "jmap_batch_rejected"
SESSION_FETCHED_EVENT = "jmap_session_fetched"
