"""Wires the indexing and query pipelines from one Settings object."""
from typing import Iterable, List, Optional, Tuple

import structlog

from askdocs.config import Settings
from askdocs.llm_client import OllamaClient
from askdocs.rag.embedder import OllamaEmbedder
from askdocs.rag.ingest import Upserter
from askdocs.rag.models import ChunkConfig, Document, IndexSummary, QueryMatch, SynthesisResult
from askdocs.rag.provisioner import IndexProvisioner
from askdocs.rag.retriever import Retriever
from askdocs.rag.synthesizer import AnswerSynthesizer, OllamaQuestionAnswerer

logger = structlog.get_logger()


def build_vector_store(settings: Settings):
    """Construct the vector database selected by settings.vector_backend."""
    if settings.vector_backend == "faiss":
        from askdocs.rag.store_faiss import FAISSVectorDatabase

        return FAISSVectorDatabase(data_dir=settings.data_dir)

    if settings.vector_backend == "pinecone":
        from askdocs.rag.store_pinecone import PineconeClient

        return PineconeClient(
            api_key=settings.pinecone_api_key,
            controller_url=settings.pinecone_controller_url,
            cloud=settings.pinecone_cloud,
            region=settings.pinecone_region,
            timeout=settings.http_timeout,
        )

    raise ValueError(f"Unknown vector backend: {settings.vector_backend!r}")


class RAGPipeline:
    """Index provisioning, document ingestion and question answering."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store=None,
        embedder=None,
        answerer=None,
    ):
        self.settings = settings or Settings()

        self.client = OllamaClient(self.settings.ollama_base_url, self.settings.http_timeout)

        self.store = store if store is not None else build_vector_store(self.settings)
        self.embedder = embedder or OllamaEmbedder(self.client, self.settings.embedding_model)
        answerer = answerer or OllamaQuestionAnswerer(self.client, self.settings.chat_model)

        self.chunk_config = ChunkConfig(
            chunk_size=self.settings.chunk_size,
            chunk_overlap=self.settings.chunk_overlap,
        )
        self.provisioner = IndexProvisioner(
            self.store,
            metric=self.settings.similarity_metric,
            ready_timeout=self.settings.index_ready_timeout,
            poll_interval=self.settings.index_poll_interval,
            backoff=self.settings.index_poll_backoff,
        )
        self.upserter = Upserter(
            self.embedder,
            self.store,
            batch_size=self.settings.upsert_batch_size,
            chunk_config=self.chunk_config,
        )
        self.retriever = Retriever(self.embedder, self.store, top_k=self.settings.top_k)
        self.synthesizer = AnswerSynthesizer(answerer)

        logger.info(
            "rag_pipeline_initialized",
            vector_backend=self.settings.vector_backend,
            index_name=self.settings.index_name,
            embedding_model=self.settings.embedding_model,
        )

    async def setup(self, index_name: Optional[str] = None) -> int:
        """Ensure the index exists; returns the dimension it was provisioned with."""
        index_name = index_name or self.settings.index_name
        dimension = self.settings.embedding_dimension or await self.embedder.detect_dimension()
        await self.provisioner.ensure_index(index_name, dimension)
        return dimension

    async def ingest(
        self,
        documents: Iterable[Document],
        index_name: Optional[str] = None,
    ) -> List[IndexSummary]:
        return await self.upserter.index_documents(
            documents, index_name or self.settings.index_name, self.chunk_config
        )

    async def ask_with_matches(
        self,
        question: str,
        index_name: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> Tuple[SynthesisResult, List[QueryMatch]]:
        """Answer a question; also returns the matches used as context."""
        matches = await self.retriever.retrieve(
            question, index_name or self.settings.index_name, top_k=top_k
        )
        logger.info("asking_question", question_preview=question[:100], match_count=len(matches))
        return await self.synthesizer.synthesize(question, matches), matches

    async def ask(
        self,
        question: str,
        index_name: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> SynthesisResult:
        result, _ = await self.ask_with_matches(question, index_name, top_k)
        return result
