"""BlockCatalog — loads a survey configuration document into typed models.

This is the single source of truth for block definitions at runtime.  The
catalog is loaded once at startup, validated in full, and never mutated
afterwards, so any number of sessions may read it concurrently.

Usage::

    catalog = BlockCatalog.load()              # defaults to surveys/donor_survey.yaml
    block = catalog.get("b4")
    first = catalog.first_block_id

Any problem with the document (bad YAML/JSON, unknown block type, unknown
condition shape in strict mode, dangling block reference) raises
``CatalogError``.  Callers are expected to let that abort startup.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from survey_engine.errors import CatalogError
from survey_engine.models.block import Block
from survey_engine.models.condition import conditional_next_targets
from survey_engine.models.survey import Derivation, ProgressPolicy, Survey, SurveyDocument

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def find_repo_root(start: Optional[Path] = None) -> Path:
    """Walk upwards from *start* to find the repo root (dir with pyproject.toml or .git).

    Falls back to cwd if no marker is found.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return Path.cwd()


def default_catalog_path() -> Path:
    return find_repo_root() / "surveys" / "donor_survey.yaml"


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML (or JSON) file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing survey document: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


# ---------------------------------------------------------------------------
# BlockCatalog
# ---------------------------------------------------------------------------

class BlockCatalog:
    """Immutable block-id -> Block mapping plus survey metadata.

    Attributes:
        survey       — Survey metadata (id, name, sections)
        derivations  — read-only dict[block_id, Derivation]
        progress     — ProgressPolicy (declared, or derived from sections)
    """

    def __init__(
        self,
        survey: Survey,
        blocks: Mapping[str, Block],
        *,
        derivations: Mapping[str, Derivation] | None = None,
        progress: ProgressPolicy | None = None,
        check_references: bool = True,
    ) -> None:
        self.survey = survey
        self._blocks: Mapping[str, Block] = MappingProxyType(dict(blocks))
        self.derivations: Mapping[str, Derivation] = MappingProxyType(dict(derivations or {}))
        self.progress = progress or self._default_progress()

        if check_references:
            self._check_integrity()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_document(
        cls,
        document: Any,
        *,
        strict_conditions: bool = True,
        check_references: bool = True,
    ) -> "BlockCatalog":
        """Validate a parsed configuration document and build the catalog.

        Raises:
            CatalogError: if the document is malformed or inconsistent.
        """
        if not isinstance(document, dict):
            raise CatalogError(
                f"Survey document must be a mapping, got {type(document).__name__}"
            )
        try:
            doc = SurveyDocument.model_validate(
                document, context={"strict_conditions": strict_conditions},
            )
        except ValidationError as exc:
            problems = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            ]
            raise CatalogError("Invalid survey document", problems) from exc

        mismatched = [
            f"blocks.{key}: id is {block.id!r}"
            for key, block in doc.blocks.items()
            if block.id != key
        ]
        if mismatched:
            raise CatalogError("Block ids do not match their keys", mismatched)

        return cls(
            doc.survey,
            doc.blocks,
            derivations=doc.derivations,
            progress=doc.progress,
            check_references=check_references,
        )

    @classmethod
    def load(
        cls,
        path: str | Path | None = None,
        *,
        strict_conditions: bool = True,
    ) -> "BlockCatalog":
        """Read and validate a configuration document from disk.

        Call this once at startup.
        """
        if path is None:
            path = default_catalog_path()
        try:
            raw = load_yaml(path)
        except yaml.YAMLError as exc:
            raise CatalogError(f"Survey document {path} is not valid YAML/JSON: {exc}") from exc

        catalog = cls.from_document(raw, strict_conditions=strict_conditions)
        logger.info(
            "BlockCatalog loaded from %s: survey=%s, %d blocks, %d derivations, %d progress steps",
            path,
            catalog.survey.id,
            len(catalog),
            len(catalog.derivations),
            len(catalog.progress.main_path),
        )
        return catalog

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def get(self, block_id: str) -> Block | None:
        """Return the block with ``block_id``, or None if it is not in the catalog."""
        return self._blocks.get(block_id)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)

    @property
    def blocks(self) -> Mapping[str, Block]:
        return self._blocks

    @property
    def first_block_id(self) -> str:
        """Entry block: ``survey.firstBlock``, else the first section's first block."""
        if self.survey.first_block:
            return self.survey.first_block
        ordered = self.survey.ordered_block_ids
        if ordered:
            return ordered[0]
        # No sections declared: fall back to document order
        return next(iter(self._blocks))

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _default_progress(self) -> ProgressPolicy:
        """Main path from section order, minus the entry block; last block is final."""
        ordered = self.survey.ordered_block_ids
        if not ordered:
            return ProgressPolicy()
        final = ordered[-1]
        first = self.survey.first_block or ordered[0]
        main_path = [bid for bid in ordered[:-1] if bid != first]
        return ProgressPolicy(main_path=main_path, final_block=final)

    def _check_integrity(self) -> None:
        """Every referenced block id must exist (fatal at load time)."""
        if not self._blocks:
            raise CatalogError("Survey document declares no blocks")

        problems: list[str] = []

        def check(ref: str | None, where: str) -> None:
            if ref is not None and ref not in self._blocks:
                problems.append(f"{where} -> {ref!r} does not exist")

        for block_id, block in self._blocks.items():
            check(block.next, f"blocks.{block_id}.next")
            for i, opt in enumerate(block.options or []):
                check(opt.next, f"blocks.{block_id}.options[{i}].next")
            if block.on_empty is not None:
                check(block.on_empty.next, f"blocks.{block_id}.onEmpty.next")
            if block.conditional_next is not None:
                for target in conditional_next_targets(block.conditional_next):
                    check(target, f"blocks.{block_id}.conditionalNext")
            if block.content_condition is not None and isinstance(block.content, dict):
                for key in (block.content_condition.then, block.content_condition.else_):
                    if key not in block.content:
                        problems.append(
                            f"blocks.{block_id}.contentCondition -> content key {key!r} does not exist"
                        )

        for section in self.survey.sections:
            for block_id in section.blocks:
                check(block_id, f"survey.sections[{section.id or section.title}]")
        check(self.survey.first_block, "survey.firstBlock")

        for block_id in self.derivations:
            check(block_id, "derivations")

        for block_id in self.progress.referenced_blocks():
            check(block_id, "progress")

        if problems:
            raise CatalogError("Survey document has dangling block references", problems)
