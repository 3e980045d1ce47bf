"""Builders for small in-memory survey documents used across the tests."""

from typing import Any

from survey_engine.catalog import BlockCatalog, find_repo_root

TEST_SURVEY_ID = "test-survey"


def donor_survey_path():
    return find_repo_root() / "surveys" / "donor_survey.yaml"


def make_document(
    blocks: dict[str, dict[str, Any]],
    *,
    survey_id: str = TEST_SURVEY_ID,
    first_block: str | None = None,
    sections: list[dict[str, Any]] | None = None,
    derivations: dict[str, Any] | None = None,
    progress: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Wrap raw block mappings in a full configuration document.

    Without explicit ``sections`` every block goes into one section, in
    insertion order.
    """
    survey: dict[str, Any] = {
        "id": survey_id,
        "name": "Test survey",
        "sections": sections if sections is not None else [{"blocks": list(blocks)}],
    }
    if first_block is not None:
        survey["firstBlock"] = first_block

    document: dict[str, Any] = {"survey": survey, "blocks": blocks}
    if derivations is not None:
        document["derivations"] = derivations
    if progress is not None:
        document["progress"] = progress
    return document


def make_catalog(
    blocks: dict[str, dict[str, Any]],
    *,
    strict_conditions: bool = True,
    check_references: bool = True,
    **document_kwargs: Any,
) -> BlockCatalog:
    """Build a catalog straight from block mappings."""
    return BlockCatalog.from_document(
        make_document(blocks, **document_kwargs),
        strict_conditions=strict_conditions,
        check_references=check_references,
    )


def message(next_id: str | None = None, content: str = "...") -> dict[str, Any]:
    """A plain message-button block, optionally linked to ``next_id``."""
    block: dict[str, Any] = {"type": "message-button", "content": content}
    if next_id is not None:
        block["next"] = next_id
    return block


def final(content: str = "Thank you!") -> dict[str, Any]:
    return {"type": "final-message", "content": content}
