from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol
from zipfile import BadZipFile

import docx
from docx.opc.exceptions import PackageNotFoundError

"""Template/document store.

The file system backend mirrors a drive layout:

    <templates_directory>/<template_id>.<ext>     card templates
    <output_directory>/<folder_id>/               destination folders

``make_copy`` duplicates a template into a folder under a new name and
``open_document`` gives find-and-replace access to the copy's body.

Templates are Word documents (``.docx``, edited with python-docx so that run
formatting survives) or plain text files (any other extension).
"""

__all__ = [
    "CardConfigurationError",
    "Document",
    "DocumentHandle",
    "DocumentStore",
    "DocumentStoreError",
    "DocxDocument",
    "FileSystemDocumentStore",
    "FolderNotFoundError",
    "TemplateNotFoundError",
    "TextDocument",
    "safe_document_name",
]

logger = logging.getLogger(__name__)

DOCX_SUFFIX = ".docx"


class DocumentStoreError(Exception):
    pass


class CardConfigurationError(DocumentStoreError):
    """Template or destination folder is not reachable. Fatal for a run."""


class TemplateNotFoundError(CardConfigurationError):
    pass


class FolderNotFoundError(CardConfigurationError):
    pass


@dataclass(frozen=True)
class DocumentHandle:
    id: str  # "<folder_id>/<file name>"
    name: str  # file name without extension
    path: Path


class Document:
    """Open body of a copied document.

    Subclasses implement ``_replace`` and ``_save``; editing a closed document
    raises ``DocumentStoreError``.
    """

    def __init__(self, handle: DocumentHandle) -> None:
        self.handle = handle
        self._closed = False

    @property
    def body(self) -> str:
        raise NotImplementedError

    def replace_text(self, token: str, value: str) -> int:
        """Replace every literal occurrence of ``token``. Returns the count."""
        if self._closed:
            raise DocumentStoreError(f"document {self.handle.id} is closed")
        return self._replace(token, value)

    def save_and_close(self) -> None:
        if self._closed:
            return
        try:
            self._save()
        except OSError as e:
            raise DocumentStoreError(f"cannot save {self.handle.id}: {e}") from e
        self._closed = True

    def _replace(self, token: str, value: str) -> int:
        raise NotImplementedError

    def _save(self) -> None:
        raise NotImplementedError


class TextDocument(Document):
    def __init__(self, handle: DocumentHandle, body: str) -> None:
        super().__init__(handle)
        self._body = body

    @property
    def body(self) -> str:
        return self._body

    def _replace(self, token: str, value: str) -> int:
        count = self._body.count(token)
        if count:
            self._body = self._body.replace(token, value)
        return count

    def _save(self) -> None:
        self.handle.path.write_text(self._body, encoding="utf-8")


def _iter_table_paragraphs(tables: list[Any]) -> Iterator[Any]:
    for table in tables:
        for row in table.rows:
            for cell in row.cells:
                yield from cell.paragraphs
                yield from _iter_table_paragraphs(cell.tables)


def _replace_in_paragraph(paragraph: Any, token: str, value: str) -> int:
    """Replace ``token`` in one paragraph, keeping run formatting where possible."""
    count = paragraph.text.count(token)
    if not count:
        return 0
    for run in paragraph.runs:
        if token in run.text:
            run.text = run.text.replace(token, value)
    if token in paragraph.text:
        # token split across runs (Word does this after edits): collapse into the first run
        runs = paragraph.runs
        merged = "".join(r.text for r in runs).replace(token, value)
        runs[0].text = merged
        for r in runs[1:]:
            r.text = ""
    return count


class DocxDocument(Document):
    """Word document opened with python-docx.

    Placeholders are replaced in body paragraphs, table cells (nested tables
    included) and section headers/footers.
    """

    def __init__(self, handle: DocumentHandle, document: Any) -> None:
        super().__init__(handle)
        self._doc = document

    def _paragraphs(self) -> Iterator[Any]:
        yield from self._doc.paragraphs
        yield from _iter_table_paragraphs(self._doc.tables)
        for section in self._doc.sections:
            for part in (section.header, section.footer):
                if part.is_linked_to_previous:
                    continue
                yield from part.paragraphs
                yield from _iter_table_paragraphs(part.tables)

    @property
    def body(self) -> str:
        return "\n".join(p.text for p in self._paragraphs())

    def _replace(self, token: str, value: str) -> int:
        return sum(_replace_in_paragraph(p, token, value) for p in self._paragraphs())

    def _save(self) -> None:
        self._doc.save(str(self.handle.path))


class DocumentStore(Protocol):
    def make_copy(self, template_id: str, name: str, folder_id: str) -> DocumentHandle: ...

    def open_document(self, handle: DocumentHandle) -> Document: ...

    def discard(self, handle: DocumentHandle) -> None: ...


_UNSAFE_CHARS_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def safe_document_name(name: str) -> str:
    """Make ``name`` usable as a file name (path separators and reserved chars -> ``_``)."""
    cleaned = _UNSAFE_CHARS_RE.sub("_", name).strip().rstrip(".")
    return cleaned or "untitled"


class FileSystemDocumentStore:
    def __init__(self, templates_directory: Path, output_directory: Path) -> None:
        self.templates_directory = templates_directory
        self.output_directory = output_directory

    def template_path(self, template_id: str) -> Path:
        """Template file whose stem (or full name) is ``template_id``; ``.docx`` wins over text."""
        if not self.templates_directory.is_dir():
            raise TemplateNotFoundError(f"templates directory not found: {self.templates_directory}")
        candidates = sorted(
            (p for p in self.templates_directory.iterdir()
             if p.is_file() and (p.stem == template_id or p.name == template_id)),
            key=lambda p: (p.suffix.lower() != DOCX_SUFFIX, p.name),
        )
        if not candidates:
            raise TemplateNotFoundError(f"template not found: {template_id}")
        return candidates[0]

    def folder_path(self, folder_id: str) -> Path:
        folder = self.output_directory / folder_id
        if not folder.is_dir():
            raise FolderNotFoundError(f"destination folder not found: {folder}")
        return folder

    def make_copy(self, template_id: str, name: str, folder_id: str) -> DocumentHandle:
        template = self.template_path(template_id)
        folder = self.folder_path(folder_id)

        base = safe_document_name(name)
        stem = base
        dest = folder / f"{stem}{template.suffix}"
        n = 2
        # Drive allows duplicate names; on disk we suffix instead of overwriting
        while dest.exists():
            stem = f"{base} ({n})"
            dest = folder / f"{stem}{template.suffix}"
            n += 1

        try:
            shutil.copyfile(template, dest)
        except OSError as e:
            raise DocumentStoreError(f"cannot copy template {template_id} to {dest}: {e}") from e
        return DocumentHandle(id=f"{folder_id}/{dest.name}", name=stem, path=dest)

    def open_document(self, handle: DocumentHandle) -> Document:
        if handle.path.suffix.lower() == DOCX_SUFFIX:
            try:
                return DocxDocument(handle, docx.Document(str(handle.path)))
            except (OSError, PackageNotFoundError, BadZipFile, KeyError, ValueError) as e:
                raise DocumentStoreError(f"cannot open {handle.id}: {e}") from e
        try:
            body = handle.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentStoreError(f"cannot open {handle.id}: {e}") from e
        return TextDocument(handle, body)

    def discard(self, handle: DocumentHandle) -> None:
        """Remove a copy that could not be completed."""
        try:
            handle.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("could not remove incomplete card %s: %s", handle.id, e)
