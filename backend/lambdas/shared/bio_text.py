"""
Cleanup pipeline for model-generated narrator biographies.

The model is asked for a short third-person bio, but replies routinely open
with filler ("Here is the bio:"), keep ``[1]`` citation markers, append a
``SOURCE:`` list or a "Sources" section, use markdown emphasis, or ramble past
the requested length. ``normalize_bio`` runs the steps in ``NORMALIZATION_STEPS``
in order; later steps assume the earlier ones already ran.
"""
from __future__ import annotations

import re
from typing import Callable, Iterable, List, Tuple
from urllib.parse import urlparse

MAX_BIO_CHARS = 1000
PARAGRAPH_MIN_CHARS = 150
PARAGRAPH_MAX_CHARS = 800
MAX_SENTENCES = 4

PREAMBLE_PATTERNS: Tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^(?:certainly|sure|of course|absolutely)\b\s*[!,.:]\s*",
        r"^here(?:'s|’s| is| are)\b[^.:\n]*:\s*",
        r"^based on\b[^,:\n]*[,:]\s*",
        r"^according to (?:my|the)\b[^,:\n]*[,:]\s*",
        r"^i (?:found|have found|searched for|was able to find)\b[^.:\n]*[.:]\s*",
    )
)
META_OPENER_RE = re.compile(r"^(?:here|ok(?:ay)?|based on)\b", re.IGNORECASE)
BIO_KEYWORDS: Tuple[str, ...] = (
    "narrator",
    "voice",
    "actor",
    "audiobook",
    "award",
    "trained",
    "acclaimed",
    "known for",
)

CITATION_RE = re.compile(r"[ \t]*\[\d+\]")
INLINE_SOURCE_RE = re.compile(r"SOURCE:\s*(https?://\S+)")
SOURCE_LINE_RE = re.compile(r"\s*\bSOURCE:.*\Z", re.DOTALL)
SOURCES_SECTION_RE = re.compile(r"^[ \t*#]*(?:sources|references)[*\s]*:.*\Z", re.IGNORECASE | re.MULTILINE | re.DOTALL)
EMPHASIS_RE = re.compile(r"\*\*|\*")
HEADING_RE = re.compile(r"^[ \t]*#+[ \t]*", re.MULTILINE)
PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")
SENTENCE_RE = re.compile(r"[^.!?]+[.!?]")
WHITESPACE_RE = re.compile(r"\s+")

_URL_TRAILING_PUNCTUATION = ".,;:)]>\"'"


def strip_preamble(text: str) -> str:
    result = text.lstrip()
    for pattern in PREAMBLE_PATTERNS:
        result = pattern.sub("", result, count=1)
    return result


def strip_citation_markers(text: str) -> str:
    return CITATION_RE.sub("", text)


def strip_source_section(text: str) -> str:
    text = SOURCE_LINE_RE.sub("", text)
    return SOURCES_SECTION_RE.sub("", text)


def strip_markdown(text: str) -> str:
    text = EMPHASIS_RE.sub("", text)
    return HEADING_RE.sub("", text)


def split_sentences(text: str) -> List[str]:
    return SENTENCE_RE.findall(text)


def skip_meta_text(text: str) -> str:
    """Drop leading meta commentary up to the first sentence that reads like a bio."""
    if not META_OPENER_RE.match(text.lstrip()):
        return text

    offset = 0
    for match in SENTENCE_RE.finditer(text):
        sentence = match.group(0).lower()
        if any(keyword in sentence for keyword in BIO_KEYWORDS):
            offset = match.start()
            break
    else:
        return text
    return text[offset:].lstrip()


def trim_length(text: str) -> str:
    if len(text) <= MAX_BIO_CHARS:
        return text

    first_paragraph = PARAGRAPH_BREAK_RE.split(text.strip(), maxsplit=1)[0].strip()
    if PARAGRAPH_MIN_CHARS <= len(first_paragraph) <= PARAGRAPH_MAX_CHARS:
        return first_paragraph

    sentences = split_sentences(text)
    if not sentences:
        return text
    return "".join(sentences[:MAX_SENTENCES])


def collapse_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text).strip()


NORMALIZATION_STEPS: Tuple[Callable[[str], str], ...] = (
    strip_preamble,
    strip_citation_markers,
    strip_source_section,
    strip_markdown,
    skip_meta_text,
    trim_length,
    collapse_whitespace,
)


def normalize_bio(text: str) -> str:
    for step in NORMALIZATION_STEPS:
        text = step(text)
    return text


def extract_inline_sources(text: str) -> List[str]:
    """Collect URLs from ``SOURCE: <url>`` markers in the raw model output."""
    urls: List[str] = []
    for match in INLINE_SOURCE_RE.finditer(text or ""):
        url = match.group(1).rstrip(_URL_TRAILING_PUNCTUATION)
        if url:
            urls.append(url)
    return urls


def merge_sources(*groups: Iterable[str]) -> List[str]:
    """Concatenate URL groups, keeping the first occurrence of each exact URL."""
    merged: List[str] = []
    seen: set[str] = set()
    for group in groups:
        for url in group:
            if url and url not in seen:
                merged.append(url)
                seen.add(url)
    return merged


def host_label(url: str) -> str:
    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None
    return host or url
