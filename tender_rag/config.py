"""Application configuration with sensible defaults."""
import os
from pathlib import Path

# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
TENDERS_DIR = Path(os.getenv("TENDERS_DIR", str(BASE_DIR / "tenders")))
DB_PATH = Path(os.getenv("DB_PATH", str(DATA_DIR / "tender_rag.sqlite")))

# Embedding backend (OpenAI-compatible)
EMBEDDING_API_KEY = os.getenv("EMBEDDING_API_KEY") or os.getenv("OPENAI_API_KEY", "")
EMBEDDING_BASE_URL = os.getenv("EMBEDDING_BASE_URL", "https://api.openai.com/v1")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "1536"))
EMBEDDING_TIMEOUT = float(os.getenv("EMBEDDING_TIMEOUT", "30.0"))
EMBEDDING_CONCURRENCY = int(os.getenv("EMBEDDING_CONCURRENCY", "5"))

# Chat backend (OpenAI-compatible, Groq by default)
CHAT_API_KEY = os.getenv("CHAT_API_KEY") or os.getenv("GROQ_API_KEY", "")
CHAT_BASE_URL = os.getenv("CHAT_BASE_URL", "https://api.groq.com/openai/v1")
CHAT_MODEL = os.getenv("CHAT_MODEL", "llama-3.3-70b-versatile")
CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.2"))
CHAT_MAX_TOKENS = int(os.getenv("CHAT_MAX_TOKENS", "1024"))
CHAT_TIMEOUT = float(os.getenv("CHAT_TIMEOUT", "60.0"))

# RAG parameters (whitespace-delimited tokens)
MIN_TOKENS = int(os.getenv("MIN_TOKENS", "300"))
MAX_TOKENS = int(os.getenv("MAX_TOKENS", "500"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "5"))

# Content store
STORE_TIMEOUT = float(os.getenv("STORE_TIMEOUT", "10.0"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
