"""
Constants for Katagrafy.
Limits here bound prompt size and model latency.
"""


# ----- Product -----

PRODUCT_NAME = "KatagrafyAI"
APP_DIR_NAME = ".katagrafy"


# ----- Sessions -----

DEFAULT_SESSION_TITLE = "New Conversation"

# Title derived from the first message keeps this many characters
TITLE_PREFIX_LENGTH = 30
TITLE_CONTINUATION = "..."


# ----- Context -----

# Only the most recently uploaded files are read into the prompt
CONTEXT_FILE_LIMIT = 3

# Extracted text is cut here to respect the model's context window
MAX_CONTENT_CHARS = 50000
TRUNCATION_MARKER = "\n\n[Content truncated]"

PDF_MAX_PAGES = 20

# Prefix of pseudo-file ids that wrap an external link
URL_FILE_ID_PREFIX = "url-"

IMAGE_MARKER = "[Image file:"

TEXT_MIME_TYPES = [
    "application/json",
    "application/xml",
    "application/javascript",
    "application/x-javascript",
    "application/x-yaml",
    "application/x-sh",
    "application/sql",
]

TEXT_EXTENSIONS = [
    ".txt", ".md", ".markdown", ".csv", ".tsv", ".json", ".xml", ".html",
    ".htm", ".css", ".js", ".jsx", ".ts", ".tsx", ".py", ".java", ".c",
    ".h", ".cpp", ".cs", ".go", ".rb", ".rs", ".php", ".sh", ".sql",
    ".yaml", ".yml", ".toml", ".ini", ".log",
]


# ----- Network -----

DEFAULT_REQUEST_TIMEOUT = 30.0

LLM_FUNCTION_NAME = "gemini-faq"
FETCH_URL_FUNCTION_NAME = "fetch-url"


# ----- Models -----

GEMINI_MODEL = "gemini-1.5-flash"
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"


# ----- Suggestions -----

MIN_SUGGESTIONS = 3
MAX_SUGGESTIONS = 6

DEFAULT_SUGGESTIONS = [
    "Can you explain more about this document?",
    "What are the main points in this file?",
    "Can you summarize this for me?",
    "What are the key insights from this information?",
    "How would you analyze this content?",
]


# ----- Export -----

EXPORT_MAX_SESSIONS = 20
SHEET_NAME_MAX_LENGTH = 30


# ----- Preferences -----

BOT_AVATAR_MAX_BYTES = 5 * 1024 * 1024
