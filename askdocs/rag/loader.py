"""Load text documents from a directory."""
from pathlib import Path
from typing import List, Sequence

import structlog

from askdocs.rag.models import Document

logger = structlog.get_logger()

DEFAULT_EXTENSIONS = (".txt", ".md")


def load_documents(directory: Path, extensions: Sequence[str] = DEFAULT_EXTENSIONS) -> List[Document]:
    """Read every matching file under directory into a Document.

    The source id is the file's path relative to directory, so ids stay
    stable across runs regardless of the working directory.

    Raises:
        FileNotFoundError: If directory doesn't exist
        ValueError: If a matching file is not valid UTF-8
    """
    if not directory.exists():
        raise FileNotFoundError(f"Documents directory not found: {directory}")

    paths = sorted(
        path for path in directory.rglob("*")
        if path.is_file() and path.suffix.lower() in extensions
    )

    documents = []
    for path in paths:
        source_id = path.relative_to(directory).as_posix()
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            logger.error("document_decode_failed", source_id=source_id, error=str(e))
            raise ValueError(f"Document is not valid UTF-8: {source_id}") from e
        documents.append(Document(source_id=source_id, text=text))

    logger.info("documents_loaded", count=len(documents), directory=str(directory))
    return documents
