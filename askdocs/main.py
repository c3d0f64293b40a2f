"""Quart application exposing the RAG pipeline over HTTP."""
from typing import List, Optional

import httpx
import structlog
from quart import Quart, jsonify, request

from askdocs.config import Settings
from askdocs.errors import IndexNotFound, IndexNotReady, PartialIngestion, ServiceUnavailable
from askdocs.log import configure_logging
from askdocs.rag.loader import load_documents
from askdocs.rag.models import Answer, Document
from askdocs.rag.pipeline import RAGPipeline

logger = structlog.get_logger()

MAX_QUESTION_LENGTH = 2000


def _service_error(e: Exception):
    logger.error("service_error", error=str(e), error_type=type(e).__name__)
    body = {"error": str(e), "retryable": getattr(e, "retryable", False)}
    return jsonify(body), 503


def _model_available(model: str, available: List[str]) -> bool:
    # Ollama reports untagged pulls as "name:latest"
    return model in available or f"{model}:latest" in available


def create_app(pipeline: Optional[RAGPipeline] = None) -> Quart:
    """Build the application around a pipeline (constructed from settings if omitted)."""
    app = Quart(__name__)
    pipeline = pipeline or RAGPipeline()
    app.config["PIPELINE"] = pipeline

    @app.route("/api/setup", methods=["POST"])
    async def setup():
        """Create the configured index if it does not exist.

        Returns JSON:
        {
            "index": "index-name",
            "dimension": 4096
        }
        """
        try:
            dimension = await pipeline.setup()
        except (ServiceUnavailable, IndexNotReady) as e:
            return _service_error(e)

        return jsonify({"index": pipeline.settings.index_name, "dimension": dimension})

    @app.route("/api/ingest", methods=["POST"])
    async def ingest():
        """Ingest documents into the configured index.

        Expects JSON body:
        {
            "documents": [{"source_id": "doc1", "text": "..."}]
        }

        With no body, every document in the configured documents
        directory is ingested instead.
        """
        data = await request.get_json(silent=True) or {}

        if "documents" in data:
            try:
                documents = [
                    Document(source_id=str(item["source_id"]), text=str(item["text"]))
                    for item in data["documents"]
                ]
            except (KeyError, TypeError):
                return jsonify({"error": "Each document needs 'source_id' and 'text'"}), 400
        else:
            try:
                documents = load_documents(pipeline.settings.documents_dir)
            except (FileNotFoundError, ValueError) as e:
                return jsonify({"error": str(e)}), 400

        try:
            summaries = await pipeline.ingest(documents)
        except IndexNotFound as e:
            return jsonify({"error": f"{e}. Run /api/setup first."}), 404
        except (ServiceUnavailable, PartialIngestion) as e:
            return _service_error(e)

        logger.info("ingest_request_completed", documents=len(summaries))

        return jsonify({
            "documents": [
                {
                    "source_id": s.source_id,
                    "chunk_count": s.chunk_count,
                    "batch_count": s.batch_count,
                }
                for s in summaries
            ]
        })

    @app.route("/api/ask", methods=["POST"])
    async def ask():
        """Answer a question from the indexed documents.

        Expects JSON body:
        {
            "question": "question text"
        }

        Returns JSON:
        {
            "answer": "answer text" or null when nothing relevant was found,
            "matches": 3,
            "sources": ["doc1_0", ...]
        }
        """
        data = await request.get_json(silent=True)

        if not data or "question" not in data:
            return jsonify({"error": "Missing 'question' in request body"}), 400

        question = str(data["question"]).strip()
        if not question:
            return jsonify({"error": "Question cannot be empty"}), 400
        if len(question) > MAX_QUESTION_LENGTH:
            return jsonify({"error": f"Question too long (max {MAX_QUESTION_LENGTH} characters)"}), 400

        try:
            result, matches = await pipeline.ask_with_matches(question)
        except IndexNotFound as e:
            return jsonify({"error": f"{e}. Run /api/setup first."}), 404
        except ServiceUnavailable as e:
            return _service_error(e)

        return jsonify({
            "answer": result.text if isinstance(result, Answer) else None,
            "matches": len(matches),
            "sources": [match.id for match in matches],
        })

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - check if app can serve requests.

        Checks:
        - Ollama service is reachable
        - Chat and embedding models are pulled
        """
        checks = {
            "status": "healthy",
            "ollama": False,
            "models": False,
        }

        try:
            models = await pipeline.client.list_models()
        except (ServiceUnavailable, httpx.HTTPStatusError) as e:
            logger.error("health_check_failed", error=str(e))
            checks["status"] = "unhealthy"
            checks["error"] = str(e)
            return jsonify(checks), 503

        checks["ollama"] = True

        required = [pipeline.settings.chat_model, pipeline.settings.embedding_model]
        missing = [m for m in required if not _model_available(m, models)]
        if missing:
            checks["status"] = "unhealthy"
            checks["error"] = f"Missing models: {', '.join(sorted(set(missing)))}"
        else:
            checks["models"] = True

        status_code = 200 if checks["status"] == "healthy" else 503
        return jsonify(checks), status_code

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive"}), 200

    @app.errorhandler(404)
    async def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    async def internal_error(error):
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    return app


if __name__ == "__main__":
    settings = Settings()
    configure_logging(settings.log_level)
    create_app(RAGPipeline(settings)).run(host="0.0.0.0", port=5000)
