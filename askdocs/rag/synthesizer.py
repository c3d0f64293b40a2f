"""Answer synthesis from retrieved context."""
from typing import List, Optional

import structlog

from askdocs import config
from askdocs.llm_client import OllamaClient
from askdocs.rag.models import Answer, NoAnswer, QueryMatch, SynthesisResult

logger = structlog.get_logger()

QA_PROMPT = """Use the following pieces of context to answer the question at the end. If you don't know the answer, just say that you don't know, don't try to make up an answer.

{context}

Question: {question}
Helpful Answer:"""


class OllamaQuestionAnswerer:
    """Answers a question from context documents with an Ollama chat model.

    All documents are stuffed into a single prompt.
    """

    def __init__(
        self,
        client: OllamaClient,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        self.client = client
        self.model = model or config.CHAT_MODEL
        self.temperature = temperature

    async def answer(self, context_documents: List[str], question: str) -> str:
        prompt = QA_PROMPT.format(context="\n\n".join(context_documents), question=question)
        response = await self.client.chat(
            [{"role": "user", "content": prompt}],
            model=self.model,
            temperature=self.temperature,
        )
        return response.get("message", {}).get("content", "")


class AnswerSynthesizer:
    """Builds one context document from matches and asks the language model."""

    def __init__(self, answerer):
        """Initialize the synthesizer.

        Args:
            answerer: Service exposing answer(context_documents, question)
        """
        self.answerer = answerer

    async def synthesize(self, question: str, matches: List[QueryMatch]) -> SynthesisResult:
        """Answer the question from the matched chunks.

        Returns:
            Answer with the model's text, or NoAnswer without calling the
            model when there are no matches
        """
        if not matches:
            logger.info("no_matches_skipping_llm", question_length=len(question))
            return NoAnswer()

        context = " ".join(match.chunk_text for match in matches)

        logger.info("asking_question", match_count=len(matches), context_length=len(context))

        text = await self.answerer.answer([context], question)

        logger.info("answer_received", answer_length=len(text))
        return Answer(text=text)
