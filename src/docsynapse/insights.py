"""AI helpers on top of the chat gateway: analyse a file, chat with it, ask the index."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal, Sequence

from pydantic import BaseModel, ValidationError

from docsynapse.embedding.chat import ChatGateway, Message, build_messages
from docsynapse.errors import ProviderError
from docsynapse.index.search import Searcher
from docsynapse.ingestion.extractor import extract_text

LOGGER = logging.getLogger(__name__)

ANALYSIS_CHARS = 10000
CHAT_CONTEXT_CHARS = 15000
ASK_SOURCES = 5

ANALYSIS_SYSTEM_PROMPT = "You are an intelligent file system auditor. Return JSON only."
ANALYSIS_PROMPT = """Analyze the following file content and return a strictly valid JSON object (no markdown formatting).
The JSON must have these keys:
- "summary": A 2-sentence executive summary.
- "tags": Array of 5 technical or thematic tags.
- "category": Suggested folder name.
- "sensitivity": "High" (if contains PII/Keys) or "Low".

Content:
{content}
"""
CHAT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer the user's question based ONLY on the "
    "file content provided below."
)
ASK_SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer the user's question using ONLY the "
    "document excerpts provided. Cite the file names you used. If the excerpts "
    "do not contain the answer, say so."
)


class FileAnalysis(BaseModel):
    summary: str
    tags: List[str]
    category: str
    sensitivity: Literal["High", "Low"]


@dataclass(slots=True)
class Answer:
    reply: str
    sources: List[str] = field(default_factory=list)


class Insights:
    def __init__(self, chat: ChatGateway, searcher: Searcher | None = None) -> None:
        self.chat = chat
        self.searcher = searcher

    def analyze(self, path: Path) -> FileAnalysis:
        """Summarise, tag and classify a single file."""
        content = extract_text(path)[:ANALYSIS_CHARS]
        messages = [
            {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
            {"role": "user", "content": ANALYSIS_PROMPT.format(content=content)},
        ]
        raw = self.chat.chat(messages, json_mode=True)
        try:
            return FileAnalysis.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ProviderError(f"Model returned an invalid analysis: {exc}") from exc

    def chat_with_file(
        self, path: Path, message: str, history: Sequence[Message] | None = None
    ) -> str:
        context = extract_text(path)[:CHAT_CONTEXT_CHARS]
        prompt = f"File Context:\n{context}\n\nUser Question: {message}"
        return self.chat.chat(build_messages(CHAT_SYSTEM_PROMPT, prompt, history))

    def ask(self, question: str, history: Sequence[Message] | None = None) -> Answer:
        """Answer from the best matching indexed chunks (retrieval-augmented)."""
        if self.searcher is None:
            raise RuntimeError("Insights.ask requires a searcher")
        hits = self.searcher.retrieve(question, limit=ASK_SOURCES)
        if not hits:
            return Answer(reply="No indexed document is relevant to this question.")

        excerpts = "\n\n".join(
            f"[{record.source_name}]\n{record.preview_text}" for record, _ in hits
        )
        prompt = f"Document excerpts:\n{excerpts}\n\nUser Question: {question}"
        LOGGER.debug("Answering from %d excerpts", len(hits))
        reply = self.chat.chat(build_messages(ASK_SYSTEM_PROMPT, prompt, history))
        return Answer(reply=reply, sources=[record.source_path for record, _ in hits])
