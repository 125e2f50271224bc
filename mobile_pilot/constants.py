MAX_RETRIES = 3
MAX_ITERATIONS = 15

# Graph supersteps per perceive-reason-act cycle (observer, reasoner, executor)
NODES_PER_ITERATION = 3

DEFAULT_WAIT_MS = 500
DEFAULT_SWIPE_DURATION_MS = 300
FOCUS_SETTLE_MS = 200

MAX_TEXT_LENGTH = 50
HISTORY_TEXT_PREVIEW_LENGTH = 20

PROMPT_HISTORY_WINDOW = 5
PROMPT_ERROR_WINDOW = 3

DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "llava"
