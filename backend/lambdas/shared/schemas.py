"""
Typed views over the provider payloads.

Gemini responses are deeply nested and every level is optional. The classes
below make each absence explicit (``None`` or an empty tuple) so callers branch
on named attributes instead of chaining ``.get`` calls.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _clean_str(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


@dataclass(frozen=True)
class GroundingChunk:
    uri: str
    title: Optional[str] = None


@dataclass(frozen=True)
class GroundingMetadata:
    chunks: Tuple[GroundingChunk, ...] = ()
    search_queries: Tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["GroundingMetadata"]:
        if not isinstance(payload, dict):
            return None

        chunks: List[GroundingChunk] = []
        for raw_chunk in _as_list(payload.get("groundingChunks")):
            web = _as_dict(_as_dict(raw_chunk).get("web"))
            uri = _clean_str(web.get("uri"))
            if uri:
                chunks.append(GroundingChunk(uri=uri, title=_clean_str(web.get("title"))))

        queries = [query for query in (_clean_str(q) for q in _as_list(payload.get("webSearchQueries"))) if query]
        return cls(chunks=tuple(chunks), search_queries=tuple(queries))

    @property
    def used(self) -> bool:
        return bool(self.chunks or self.search_queries)


@dataclass(frozen=True)
class Candidate:
    text: Optional[str] = None
    grounding: Optional[GroundingMetadata] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "Candidate":
        candidate = _as_dict(payload)
        parts = _as_list(_as_dict(candidate.get("content")).get("parts"))
        first_part = _as_dict(parts[0]) if parts else {}
        text = first_part.get("text")
        return cls(
            text=text if isinstance(text, str) and text.strip() else None,
            grounding=GroundingMetadata.from_payload(candidate.get("groundingMetadata")),
        )


@dataclass(frozen=True)
class GenerateContentResponse:
    """Gemini ``generateContent`` response."""

    candidates: Tuple[Candidate, ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(cls, payload: Any) -> "GenerateContentResponse":
        raw_candidates = _as_list(_as_dict(payload).get("candidates"))
        return cls(candidates=tuple(Candidate.from_payload(item) for item in raw_candidates))

    @property
    def first_candidate(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None

    @property
    def text(self) -> Optional[str]:
        candidate = self.first_candidate
        return candidate.text if candidate else None

    @property
    def grounding(self) -> GroundingMetadata:
        candidate = self.first_candidate
        if candidate is None or candidate.grounding is None:
            return GroundingMetadata()
        return candidate.grounding


@dataclass(frozen=True)
class ChatCompletionResponse:
    """OpenAI-compatible ``chat/completions`` response; only the first choice matters."""

    content: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ChatCompletionResponse":
        choices = _as_list(_as_dict(payload).get("choices"))
        message = _as_dict(_as_dict(choices[0]).get("message")) if choices else {}
        content = message.get("content")
        return cls(content=content if isinstance(content, str) else None)


def extract_prompt_text(request: Any) -> str:
    """Return the first text part of a Gemini-shaped request, or ``""``."""
    contents = _as_list(_as_dict(request).get("contents"))
    if not contents:
        return ""
    parts = _as_list(_as_dict(contents[0]).get("parts"))
    if not parts:
        return ""
    text = _as_dict(parts[0]).get("text")
    return text if isinstance(text, str) else ""


def normalized_response(text: str) -> Dict[str, Any]:
    """Wrap ``text`` in the Gemini response shape the browser client consumes."""
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


def gemini_prompt_request(prompt: str, *, generation_config: Dict[str, Any], tools: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    request: Dict[str, Any] = {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": generation_config,
    }
    if tools:
        request["tools"] = tools
    return request
