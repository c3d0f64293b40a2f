"""Local FAISS vector database.

Handles:
- Named indexes with a fixed dimension and similarity metric
- Upsert keyed by record id (overwrites in place)
- Top-k similarity search returning metadata and values
- Persistence of indexes and records under a data directory
"""
import re
from pathlib import Path
from typing import List, Optional, Set

import faiss
import numpy as np
import structlog

from askdocs import config, db
from askdocs.errors import DimensionMismatch, IndexNotFound
from askdocs.rag.models import IndexDescription, QueryMatch, VectorRecord

logger = structlog.get_logger()

SUPPORTED_METRICS = ("cosine", "dotproduct")
INDEX_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class FAISSVectorDatabase:
    """Inner-product FAISS indexes with SQLite-backed record metadata.

    Cosine indexes store L2-normalized vectors, so the inner product
    returned by FAISS is the cosine similarity.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize the store.

        Args:
            data_dir: Directory holding index files and the record database
                (default: config.DATA_DIR)
        """
        self.data_dir = Path(data_dir or config.DATA_DIR)
        self.index_dir = self.data_dir / "indexes"
        self.db_path = self.data_dir / "vectors.sqlite"

        self.index_dir.mkdir(parents=True, exist_ok=True)
        db.init_database(self.db_path)

        logger.info("faiss_store_initialized", data_dir=str(self.data_dir))

    def _index_path(self, name: str) -> Path:
        return self.index_dir / f"{name}.faiss"

    def _describe(self, name: str) -> IndexDescription:
        row = db.get_index(self.db_path, name)
        if row is None:
            raise IndexNotFound(name)
        return IndexDescription(
            name=row["name"],
            dimension=row["dimension"],
            metric=row["metric"],
            ready=self._index_path(name).exists(),
        )

    def _load(self, name: str) -> faiss.Index:
        # Read on every call; the ingest script and the API share the file.
        path = self._index_path(name)
        if not path.exists():
            raise IndexNotFound(name)
        index = faiss.read_index(str(path))
        logger.debug("faiss_index_loaded", name=name, vector_count=index.ntotal)
        return index

    def _save(self, name: str, index: faiss.Index) -> None:
        faiss.write_index(index, str(self._index_path(name)))

    @staticmethod
    def _as_matrix(vectors: List[List[float]], metric: str) -> np.ndarray:
        matrix = np.ascontiguousarray(np.array(vectors, dtype=np.float32))
        if metric == "cosine":
            faiss.normalize_L2(matrix)
        return matrix

    async def list_indexes(self) -> Set[str]:
        return {row["name"] for row in db.list_indexes(self.db_path)}

    async def create_index(self, name: str, dimension: int, metric: str = "cosine") -> None:
        """Create an empty index.

        Raises:
            ValueError: On an invalid name, dimension or metric, or if the
                index already exists
        """
        if not INDEX_NAME_PATTERN.match(name):
            raise ValueError(f"Invalid index name: {name!r}")
        if dimension <= 0:
            raise ValueError(f"Dimension must be positive, got {dimension}")
        if metric not in SUPPORTED_METRICS:
            raise ValueError(f"Unsupported metric {metric!r}; expected one of {SUPPORTED_METRICS}")
        if db.get_index(self.db_path, name) is not None:
            raise ValueError(f"Index '{name}' already exists")

        db.insert_index(self.db_path, name, dimension, metric)
        self._save(name, faiss.IndexIDMap2(faiss.IndexFlatIP(dimension)))

        logger.info("faiss_index_created", name=name, dimension=dimension, metric=metric)

    async def describe_index(self, name: str) -> IndexDescription:
        return self._describe(name)

    async def upsert(self, index_name: str, records: List[VectorRecord]) -> int:
        """Insert or overwrite records by id.

        Returns:
            Number of records written

        Raises:
            IndexNotFound: If the index does not exist
            DimensionMismatch: If any vector has the wrong length
        """
        if not records:
            return 0

        description = self._describe(index_name)
        if not self._index_path(index_name).exists():
            raise IndexNotFound(index_name)

        # Last write wins for repeated ids within one call
        unique = list({record.id: record for record in records}.values())

        for record in unique:
            if len(record.values) != description.dimension:
                raise DimensionMismatch(description.dimension, len(record.values), record.id)

        # Record rows commit only after the FAISS file is saved. The index is
        # read while holding the SQLite write lock taken by the first insert.
        with db.transaction(self.db_path) as conn:
            vector_ids = db.upsert_vectors(
                conn, index_name, [record.to_dict() for record in unique]
            )
            ids = np.array(vector_ids, dtype=np.int64)

            index = self._load(index_name)
            index.remove_ids(ids)
            index.add_with_ids(self._as_matrix([r.values for r in unique], description.metric), ids)
            self._save(index_name, index)

        logger.info(
            "vectors_upserted",
            index_name=index_name,
            count=len(unique),
            total_vectors=index.ntotal,
        )

        return len(unique)

    async def query(
        self,
        index_name: str,
        vector: List[float],
        top_k: int = 10,
        include_metadata: bool = True,
        include_values: bool = False,
    ) -> List[QueryMatch]:
        """Return up to top_k records by descending similarity.

        Raises:
            IndexNotFound: If the index does not exist
            DimensionMismatch: If the query vector has the wrong length
        """
        description = self._describe(index_name)
        index = self._load(index_name)

        if len(vector) != description.dimension:
            raise DimensionMismatch(description.dimension, len(vector), "query")

        top_k = min(top_k, index.ntotal)
        if top_k <= 0:
            return []

        scores, indices = index.search(self._as_matrix([vector], description.metric), top_k)
        found = [int(i) for i in indices[0] if i != -1]
        stored = db.get_vectors_by_ids(self.db_path, index_name, found)

        matches = []
        for vector_id, score in zip(indices[0].tolist(), scores[0].tolist()):
            record = stored.get(vector_id)
            if record is None:
                continue
            matches.append(
                QueryMatch(
                    id=record["record_id"],
                    score=float(score),
                    metadata=record["metadata"] if include_metadata else {},
                    values=record["values"] if include_values else None,
                )
            )

        logger.info("vector_search_completed", index_name=index_name, top_k=top_k, results_found=len(matches))

        return matches

    def get_stats(self, name: str) -> dict:
        """Vector counts for an index, from FAISS and from the record table."""
        index = self._load(name)
        return {
            "name": name,
            "vector_count": index.ntotal,
            "record_count": db.count_vectors(self.db_path, name),
        }
