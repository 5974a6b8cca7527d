"""
Content Reconciler

Merges a submitted course-content edit against the stored section/chapter
tree while keeping node identities stable.

Rules:
- A section or chapter that echoes its identity keeps it unchanged.
- A node without an identity is new and gets a freshly minted one.
- Output order is exactly the submitted order; reordering is allowed.
- Nodes missing from the submission are dropped (full replacement).
- Duplicate sibling identities in the submission are rejected.

The module is pure apart from identity minting; persisting the result is the
caller's job.

Author: Marketplace Development Team
Version: 1.0.0
"""

import json
import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from ...exceptions import ValidationError

logger = logging.getLogger(__name__)

SECTION_ID_FIELD = "sectionId"
CHAPTER_ID_FIELD = "chapterId"
CHAPTERS_FIELD = "chapters"

IdFactory = Callable[[], str]


def new_identity() -> str:
    return str(uuid.uuid4())


def parse_sections(raw: Any) -> List[Dict[str, Any]]:
    """
    Normalize a submitted `sections` value into a list.

    Multipart form submissions carry the sections as a JSON string; JSON
    bodies carry them as a list.

    Raises:
        ValidationError: If the value is not a list or valid JSON list
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise ValidationError(
                "sections must be valid JSON", details={"error": str(exc)}
            ) from exc

    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("sections must be a list")
    return raw


def _normalize_identity(value: Any) -> Optional[str]:
    # Absent, null and blank identities all mean "new node"
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require_mapping(node: Any, path: str) -> Dict[str, Any]:
    if not isinstance(node, dict):
        raise ValidationError(f"{path} must be an object", details={"path": path})
    return node


def _collect_identities(nodes: List[Dict[str, Any]], field: str, path: str) -> Set[str]:
    """Return the echoed identities of one sibling list, rejecting duplicates."""
    seen: Set[str] = set()
    for node in nodes:
        identity = _normalize_identity(node.get(field))
        if identity is None:
            continue
        if identity in seen:
            raise ValidationError(
                f"Duplicate {field} '{identity}' in {path}",
                details={"field": field, "identity": identity, "path": path},
            )
        seen.add(identity)
    return seen


def _mint(id_factory: IdFactory, taken: Set[str]) -> str:
    identity = id_factory()
    while identity in taken:
        identity = id_factory()
    taken.add(identity)
    return identity


def _stored_identities(stored_sections: Iterable[Dict[str, Any]]) -> Set[str]:
    known: Set[str] = set()
    for section in stored_sections or []:
        if not isinstance(section, dict):
            continue
        if section.get(SECTION_ID_FIELD):
            known.add(str(section[SECTION_ID_FIELD]))
        for chapter in section.get(CHAPTERS_FIELD) or []:
            if isinstance(chapter, dict) and chapter.get(CHAPTER_ID_FIELD):
                known.add(str(chapter[CHAPTER_ID_FIELD]))
    return known


def _reconcile_chapters(
    chapters: Any,
    section_path: str,
    id_factory: IdFactory,
    known: Set[str],
) -> List[Dict[str, Any]]:
    if chapters is None:
        return []
    if not isinstance(chapters, list):
        raise ValidationError(f"{section_path}.chapters must be a list")

    path = f"{section_path}.chapters"
    chapters = [
        _require_mapping(chapter, f"{path}[{index}]")
        for index, chapter in enumerate(chapters)
    ]
    taken = _collect_identities(chapters, CHAPTER_ID_FIELD, path)

    merged = []
    for chapter in chapters:
        identity = _normalize_identity(chapter.get(CHAPTER_ID_FIELD))
        if identity is None:
            identity = _mint(id_factory, taken)
        elif identity not in known:
            logger.debug("Keeping client-supplied chapterId %s unknown to storage", identity)
        merged.append({**chapter, CHAPTER_ID_FIELD: identity})
    return merged


def reconcile_sections(
    stored_sections: Optional[List[Dict[str, Any]]],
    incoming_sections: Optional[List[Dict[str, Any]]],
    id_factory: IdFactory = new_identity,
) -> List[Dict[str, Any]]:
    """
    Merge submitted sections against the stored ones.

    Args:
        stored_sections: Sections currently persisted on the course
        incoming_sections: Submitted sections in their new order
        id_factory: Callable minting globally unique identities

    Returns:
        The merged section list, ready to be stored

    Raises:
        ValidationError: On duplicate sibling identities or malformed nodes

    Example:
        >>> reconcile_sections(
        ...     [{"sectionId": "S1", "chapters": [{"chapterId": "C1"}]}],
        ...     [{"sectionId": "S1", "chapters": [{"chapterId": "C1"}, {"title": "new"}]}],
        ... )[0]["chapters"][1]["chapterId"]  # freshly minted uuid
    """
    incoming = incoming_sections or []
    known = _stored_identities(stored_sections)

    sections = [
        _require_mapping(section, f"sections[{index}]")
        for index, section in enumerate(incoming)
    ]
    taken = _collect_identities(sections, SECTION_ID_FIELD, "sections")

    merged = []
    for index, section in enumerate(sections):
        identity = _normalize_identity(section.get(SECTION_ID_FIELD))
        if identity is None:
            identity = _mint(id_factory, taken)
        elif identity not in known:
            logger.debug("Keeping client-supplied sectionId %s unknown to storage", identity)

        merged.append(
            {
                **section,
                SECTION_ID_FIELD: identity,
                CHAPTERS_FIELD: _reconcile_chapters(
                    section.get(CHAPTERS_FIELD), f"sections[{index}]", id_factory, known
                ),
            }
        )

    logger.debug(
        "Reconciled %s stored section(s) into %s section(s)",
        len(stored_sections or []),
        len(merged),
    )
    return merged
