"""Markdown parsing: headings, table of contents and document metadata.

Turns a `RawFile` into a `Document`. Metadata comes from optional YAML front
matter first and from the markdown body second:

- title: first section when it is a level-1 heading
- description: first three prose lines
- keywords: occurrences of the catalog's technical vocabulary
- category, subcategory, difficulty and identifier: from the relative path
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import PurePosixPath
import posixpath
import re

from cangjie_docs_mcp.domain.catalog import CorpusCatalog
from cangjie_docs_mcp.domain.model import (
    Difficulty,
    Document,
    DocumentCategory,
    RawFile,
    Section,
    TableOfContents,
)
from cangjie_docs_mcp.utils.front_matter import front_matter_keywords, parse_front_matter


UNTITLED = "Untitled Document"

# Unicode Han script: radicals, iteration and numeral marks, unified and compatibility ideographs.
HAN_RANGES = (
    "\u2e80-\u2e99\u2e9b-\u2ef3\u2f00-\u2fd5\u3005\u3007\u3021-\u3029\u3038-\u303b"
    "\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufa6d\ufa70-\ufad9"
    "\U00016fe2\U00016fe3\U00016ff0\U00016ff1\U00020000-\U0002fa1f\U00030000-\U0003347f"
)

HEADING_RE = re.compile(r"^(#{1,6})(?!#)(.*)$")
_SANITIZE_RE = re.compile(rf"[^a-zA-Z0-9_\-{HAN_RANGES}]")
_UNDERSCORE_RUN_RE = re.compile(r"_+")
_ASCII_TERM_RE = re.compile(r"^[A-Za-z0-9_]+$")


class DocumentParseError(ValueError):
    """Raised when a single corpus file cannot be turned into a Document."""


def heading_level(line: str) -> int:
    """Return the heading level of `line`, or 0 when it is not a heading."""
    match = HEADING_RE.match(line)
    return len(match.group(1)) if match else 0


def sanitize_id(title: str) -> str:
    """Reduce a heading title to characters that are safe inside an identifier."""
    cleaned = _SANITIZE_RE.sub("_", title)
    cleaned = _UNDERSCORE_RUN_RE.sub("_", cleaned)
    return cleaned.strip("_")


def parse_sections(content: str, document_id: str) -> list[Section]:
    """Split markdown into heading sections.

    A section's body runs from the line after its heading to the next heading
    of the same or a higher rank, where levels 1 and 2 both count as top
    rank. A level-2 section therefore carries its level-3+ subsections, and a
    level-1 heading only owns the text up to the first level-1 or level-2
    heading. Text before the first heading belongs to no section.
    """
    lines = content.split("\n")
    headings: list[tuple[int, int, str]] = []
    for index, line in enumerate(lines):
        match = HEADING_RE.match(line)
        if match:
            headings.append((index, len(match.group(1)), match.group(2).strip()))

    sections: list[Section] = []
    for position, (line_index, level, title) in enumerate(headings):
        boundary = max(level, 2)
        end = len(lines)
        for next_index, next_level, _ in headings[position + 1 :]:
            if next_level <= boundary:
                end = next_index
                break
        body = "\n".join(lines[line_index + 1 : end])
        sections.append(
            Section(
                id=f"{document_id}_section_{position + 1}",
                title=title,
                level=level,
                line_number=line_index + 1,
                content=body,
                char_count=len(body),
            )
        )
    return sections


def build_table_of_contents(content: str, document_id: str, large_document_threshold: int) -> TableOfContents:
    sections = parse_sections(content, document_id)
    total = len(content)
    return TableOfContents(
        document_id=document_id,
        sections=tuple(sections),
        total_chars=total,
        is_large=total >= large_document_threshold,
    )


def extract_title(sections: list[Section]) -> str:
    if sections and sections[0].level == 1 and sections[0].title:
        return sections[0].title
    return UNTITLED


def _prose_lines(content: str, limit: int, *, skip_indented: bool) -> list[str]:
    collected: list[str] = []
    for raw_line in content.split("\n"):
        if skip_indented and raw_line.startswith(("    ", "\t")):
            continue
        line = raw_line.strip()
        if not line or line.startswith("#") or line.startswith("```"):
            continue
        collected.append(line)
        if len(collected) >= limit:
            break
    return collected


def extract_description(content: str) -> str:
    return " ".join(_prose_lines(content, 3, skip_indented=False))


def extract_section_description(content: str) -> str:
    """Two prose lines, capped at 150 characters."""
    description = " ".join(_prose_lines(content, 2, skip_indented=True))
    if len(description) > 150:
        description = description[:150] + "..."
    return description


def content_preview(content: str) -> str:
    preview = " ".join(_prose_lines(content, 3, skip_indented=True))
    if len(preview) > 200:
        preview = preview[:200] + "..."
    return preview


@lru_cache(maxsize=16)
def _keyword_patterns(groups: tuple[tuple[str, ...], ...]) -> tuple[re.Pattern[str], ...]:
    patterns = []
    for group in groups:
        terms = sorted(group, key=len, reverse=True)
        ascii_terms = [re.escape(term) for term in terms if _ASCII_TERM_RE.match(term)]
        other_terms = [re.escape(term) for term in terms if not _ASCII_TERM_RE.match(term)]
        alternatives = []
        if ascii_terms:
            alternatives.append(rf"(?<![A-Za-z0-9_])(?:{'|'.join(ascii_terms)})(?![A-Za-z0-9_])")
        if other_terms:
            alternatives.append(f"(?:{'|'.join(other_terms)})")
        if not alternatives:
            continue
        patterns.append(re.compile("|".join(alternatives), re.IGNORECASE))
    return tuple(patterns)


def extract_keywords(content: str, catalog: CorpusCatalog) -> list[str]:
    """Collect vocabulary terms found in `content`, case-folded, first occurrence first."""
    keywords: list[str] = []
    seen: set[str] = set()
    for pattern in _keyword_patterns(catalog.keyword_groups):
        for match in pattern.finditer(content):
            keyword = match.group(0).lower()
            if keyword not in seen:
                seen.add(keyword)
                keywords.append(keyword)
    return keywords


def determine_category(relative_path: str, catalog: CorpusCatalog) -> tuple[DocumentCategory, str]:
    parts = PurePosixPath(relative_path).parts
    if not parts:
        return DocumentCategory.MANUAL, ""
    try:
        category = DocumentCategory(parts[0])
    except ValueError:
        return DocumentCategory.MANUAL, ""
    if category in catalog.subcategory_categories and len(parts) >= 3:
        return category, parts[1]
    return category, ""


def determine_difficulty(relative_path: str) -> Difficulty:
    if "first_understanding" in relative_path or "basic" in relative_path:
        return Difficulty.BEGINNER
    if "advanced" in relative_path:
        return Difficulty.ADVANCED
    return Difficulty.INTERMEDIATE


def generate_id(category: DocumentCategory, subcategory: str, filename: str) -> str:
    stem = PurePosixPath(filename).stem.replace("-", "_").lower()
    if subcategory:
        return f"{category.value}_{subcategory}_{stem}"
    return f"{category.value}_{stem}"


def full_path_id(relative_path: str) -> str:
    return posixpath.splitext(relative_path)[0]


def _merge_keywords(*sources: list[str]) -> tuple[str, ...]:
    merged: list[str] = []
    for source in sources:
        for keyword in source:
            if keyword not in merged:
                merged.append(keyword)
    return tuple(merged)


def parse_document(raw: RawFile, catalog: CorpusCatalog) -> Document:
    """Parse one corpus file.

    Raises:
        DocumentParseError: The file is not valid UTF-8 or yields no usable document
    """
    try:
        text = raw.content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DocumentParseError(f"{raw.relative_path}: not valid UTF-8 ({exc.reason})") from exc

    text = text.replace("\r\n", "\n")
    metadata, body = parse_front_matter(text)

    category, subcategory = determine_category(raw.relative_path, catalog)
    doc_id = generate_id(category, subcategory, raw.relative_path)
    sections = parse_sections(body, doc_id)

    title = str(metadata.get("title") or "").strip() or extract_title(sections)
    description = str(metadata.get("description") or "").strip() or extract_description(body)

    try:
        return Document(
            id=doc_id,
            title=title,
            category=category,
            subcategory=subcategory,
            description=description,
            keywords=_merge_keywords(front_matter_keywords(metadata), extract_keywords(body, catalog)),
            path=raw.relative_path,
            file_size=raw.size,
            last_modified=raw.modified_at,
            content=body,
            content_preview=content_preview(body),
            difficulty=determine_difficulty(raw.relative_path),
            full_path_id=full_path_id(raw.relative_path),
        )
    except ValueError as exc:
        raise DocumentParseError(f"{raw.relative_path}: {exc}") from exc
