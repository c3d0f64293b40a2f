"""Application configuration with sensible defaults."""
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict

# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
DOCUMENTS_DIR = Path(os.getenv("DOCUMENTS_DIR", str(BASE_DIR / "documents")))

# Ollama configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
CHAT_MODEL = os.getenv("CHAT_MODEL", "llama2")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "llama2")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "60.0"))

# Leave unset to detect the dimension from the embedding model
_dimension = os.getenv("EMBEDDING_DIMENSION")
EMBEDDING_DIMENSION = int(_dimension) if _dimension else None

# Chunking (character-based to avoid tokenizer inconsistencies)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "0"))

# Vector index
VECTOR_BACKEND = os.getenv("VECTOR_BACKEND", "faiss")  # faiss | pinecone
INDEX_NAME = os.getenv("INDEX_NAME", "askdocs")
SIMILARITY_METRIC = os.getenv("SIMILARITY_METRIC", "cosine")
UPSERT_BATCH_SIZE = int(os.getenv("UPSERT_BATCH_SIZE", "100"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "10"))

# Index readiness polling (seconds)
INDEX_READY_TIMEOUT = float(os.getenv("INDEX_READY_TIMEOUT", "180.0"))
INDEX_POLL_INTERVAL = float(os.getenv("INDEX_POLL_INTERVAL", "1.0"))
INDEX_POLL_BACKOFF = float(os.getenv("INDEX_POLL_BACKOFF", "2.0"))

# Pinecone
PINECONE_API_KEY = os.getenv("PINECONE_API_KEY", "")
PINECONE_CONTROLLER_URL = os.getenv("PINECONE_CONTROLLER_URL", "https://api.pinecone.io")
PINECONE_CLOUD = os.getenv("PINECONE_CLOUD", "aws")
PINECONE_REGION = os.getenv("PINECONE_REGION", "us-east-1")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class Settings(BaseModel):
    """Explicit configuration handed to the pipeline and its services.

    Defaults come from the module-level values above, so environment
    variables apply unless a field is overridden at construction time.
    """

    model_config = ConfigDict(frozen=True)

    ollama_base_url: str = OLLAMA_BASE_URL
    chat_model: str = CHAT_MODEL
    embedding_model: str = EMBEDDING_MODEL
    embedding_dimension: Optional[int] = EMBEDDING_DIMENSION
    http_timeout: float = HTTP_TIMEOUT

    chunk_size: int = CHUNK_SIZE
    chunk_overlap: int = CHUNK_OVERLAP

    vector_backend: str = VECTOR_BACKEND
    index_name: str = INDEX_NAME
    similarity_metric: str = SIMILARITY_METRIC
    upsert_batch_size: int = UPSERT_BATCH_SIZE
    top_k: int = RETRIEVAL_TOP_K

    index_ready_timeout: float = INDEX_READY_TIMEOUT
    index_poll_interval: float = INDEX_POLL_INTERVAL
    index_poll_backoff: float = INDEX_POLL_BACKOFF

    pinecone_api_key: str = PINECONE_API_KEY
    pinecone_controller_url: str = PINECONE_CONTROLLER_URL
    pinecone_cloud: str = PINECONE_CLOUD
    pinecone_region: str = PINECONE_REGION

    data_dir: Path = DATA_DIR
    documents_dir: Path = DOCUMENTS_DIR
    log_level: str = LOG_LEVEL
