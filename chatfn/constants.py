"""
Shared defaults for the chatfn package.

Durations are in seconds.
"""

# ── Function registry ──
DEFAULT_FUNCTION_TIMEOUT = 5.0

# ── Completion client ──
DEFAULT_MODEL = "gpt-4"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0
MIN_MAX_TOKENS = 1
MAX_MAX_TOKENS = 4096

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 1.0
DEFAULT_RETRY_MAX_JITTER = 1.0

# ── Conversation ──
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. You can use the available functions "
    "to help users with various tasks."
)
DEFAULT_MAX_HISTORY_LENGTH = 20
CONVERSATION_FUNCTION_TIMEOUT = 10.0
DEFAULT_MAX_FUNCTION_ROUNDS = 5
MESSAGE_OVERHEAD_TOKENS = 10
CHARS_PER_TOKEN = 4
BATCH_PAUSE_SECONDS = 0.1
