"""Fixed document registry for the prayer composer's ``fetch_document`` tool.

Document ids form a closed set (DocumentId). Raw ids coming back from the
model are resolved through DocumentRegistry.resolve() before any file is read.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from scriptorium.errors import UnknownDocumentError


class DocumentId(str, Enum):
    BREVIARY = "breviary_of_targossas"
    TENETS = "tenets_of_the_light"
    CHRONICLE = "chronicle_of_targossas"


@dataclass(frozen=True)
class DocumentEntry:
    id: DocumentId
    path: str  # relative to the registry's docs directory
    summary: str


DOCUMENTS: tuple[DocumentEntry, ...] = (
    DocumentEntry(
        id=DocumentId.BREVIARY,
        path="breviary_of_targossas.txt",
        summary=(
            "The Breviary of Targossas: the city's book of prayers. Numbered lines, "
            "call-and-response verses marked with <brackets>, closings such as "
            "'So mote it be' and 'Amen'. The model for prayer style and cadence."
        ),
    ),
    DocumentEntry(
        id=DocumentId.TENETS,
        path="tenets_of_the_light.txt",
        summary=(
            "The Tenets of the Light: the articles of faith of Targossas. Names the "
            "virtues of Good, Righteousness and Creation, and the duties owed to "
            "Lady Aurora and Lord Deucalion. Use for doctrine and vocabulary."
        ),
    ),
    DocumentEntry(
        id=DocumentId.CHRONICLE,
        path="chronicle_of_targossas.txt",
        summary=(
            "The Chronicle of Targossas: the history of the holy city, its founding, "
            "its trials, and the deeds of its faithful. Use for places, events and "
            "figures a prayer may commemorate."
        ),
    ),
)


class DocumentRegistry:
    """Read-only mapping of DocumentId → (path, summary) rooted at *docs_dir*.

    Args:
        docs_dir: Directory the entry paths are relative to.
        entries: Registry entries; defaults to DOCUMENTS.
    """

    def __init__(
        self,
        docs_dir: str | Path = "docs",
        entries: tuple[DocumentEntry, ...] = DOCUMENTS,
    ) -> None:
        self.docs_dir = Path(docs_dir)
        self._entries: dict[DocumentId, DocumentEntry] = {e.id: e for e in entries}

    def ids(self) -> list[str]:
        return [doc_id.value for doc_id in self._entries]

    def resolve(self, raw: object) -> DocumentId:
        """Map a raw tool argument onto a registered DocumentId.

        Raises:
            UnknownDocumentError: If *raw* is not one of the registered ids.
        """
        try:
            doc_id = DocumentId(raw)
        except ValueError:
            doc_id = None
        if doc_id is None or doc_id not in self._entries:
            raise UnknownDocumentError(
                f"Unknown document_id {raw!r}; expected one of: {', '.join(self.ids())}"
            )
        return doc_id

    def entry(self, doc_id: DocumentId) -> DocumentEntry:
        return self._entries[doc_id]

    def path_of(self, doc_id: DocumentId) -> Path:
        return self.docs_dir / self._entries[doc_id].path

    def read(self, doc_id: DocumentId) -> str:
        """Return the full UTF-8 text of *doc_id*."""
        return self.path_of(doc_id).read_text(encoding="utf-8")

    def catalog(self) -> str:
        """One ``- id: summary`` line per document, in registry order."""
        return "\n".join(f"- {e.id.value}: {e.summary}" for e in self._entries.values())
