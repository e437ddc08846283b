# docchat/config.py
"""
Configuration for the document chat assistant.

This file centralizes all tunable parameters for the RAG pipeline.
Secrets and deployment-specific values come from the environment
(a local .env file is honoured); everything else is a constant here.
"""

import os

from dotenv import load_dotenv

load_dotenv()


# ========== CREDENTIALS ==========

GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

API_KEY_HELP_URL = "https://aistudio.google.com/app/apikey"


# ========== DOCUMENT PROCESSING ==========

# Character-based recursive splitting
CHUNK_SIZE = 1000  # characters per chunk
CHUNK_OVERLAP = 200  # characters shared between neighbouring chunks

# Ordered from coarsest to finest; "" means split into characters
CHUNK_SEPARATORS = ["\n\n", "\n", ". ", " ", ""]

# File upload limits
MAX_FILE_SIZE_MB = 10
MAX_FILES_PER_UPLOAD = 10
ALLOWED_FILE_EXTENSIONS = [".txt", ".pdf", ".xlsx", ".xls", ".csv"]


# ========== EMBEDDING CONFIGURATION ==========

EMBEDDING_PROVIDER = os.getenv("EMBEDDING_PROVIDER", "gemini")  # gemini | openai
EMBEDDING_MODEL = os.getenv(
    "EMBEDDING_MODEL",
    "models/text-embedding-004"
    if EMBEDDING_PROVIDER == "gemini"
    else "text-embedding-3-small",
)
EMBED_BATCH_SIZE = 32


# ========== RETRIEVAL CONFIGURATION ==========

# Number of chunks handed to the model per context window setting
CONTEXT_WINDOW_CHUNKS = {
    "short": 4,
    "medium": 8,
    "high": 15,
}
DEFAULT_CONTEXT_WINDOW = "medium"

# Semantic search pulls this many times k before lexical filtering
OVERFETCH_FACTOR = 3


# ========== LLM CONFIGURATION ==========

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Sampling presets per accuracy mode
GENERATION_PRESETS = {
    "strict": {"temperature": 0.2, "top_k": 20, "top_p": 0.8},
    "balanced": {"temperature": 0.6, "top_k": 40, "top_p": 0.9},
    "flexible": {"temperature": 1.0, "top_k": 60, "top_p": 0.95},
}
DEFAULT_ACCURACY_MODE = "balanced"

# Output budget per context window setting
MAX_OUTPUT_TOKENS = {
    "short": 1024,
    "medium": 2048,
    "high": 4096,
}


# ========== CONVERSATION & ANSWER PACKAGING ==========

MAX_HISTORY_TURNS = 10  # one user+assistant pair evicted at a time
CONFIDENCE_SATURATION = 4  # candidates needed for full base confidence
SOURCE_PREVIEW_CHARS = 300
FALLBACK_PREVIEW_CHARS = 100


# ========== KNOWLEDGE SNIPPETS ==========

KNOWLEDGE_PATH = os.getenv(
    "KNOWLEDGE_PATH",
    os.path.join(os.path.dirname(__file__), "knowledge", "background.json"),
)


# ========== OBSERVABILITY ==========

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "")  # empty → stdout only
STORAGE_DIR = os.getenv("STORAGE_DIR", "storage")
METRICS_PATH = os.path.join(STORAGE_DIR, "metrics.json")
POSTHOG_API_KEY = os.getenv("POSTHOG_API_KEY", "")
POSTHOG_HOST = os.getenv("POSTHOG_HOST", "https://app.posthog.com")


# ========== DESIGN TRADE-OFFS (DOCUMENTED) ==========

"""
TRADE-OFF DECISIONS:

1. CHUNK_SIZE = 1000 characters, CHUNK_OVERLAP = 200:
   - Paragraph-sized chunks keep tables and lists mostly intact
   - 20% overlap keeps sentences that straddle a boundary retrievable

2. CONTEXT_WINDOW_CHUNKS (4 / 8 / 15):
   - Short answers need little context and stay cheap
   - "high" trades latency and token cost for broader synthesis

3. OVERFETCH_FACTOR = 3:
   - The lexical filter discards candidates, so semantic search
     over-fetches to keep k candidates available after filtering

4. In-memory FAISS (not persistent):
   - Index is rebuilt by re-uploading after a restart
   - Single-process deployment only
"""
