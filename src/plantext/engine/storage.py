# src/plantext/engine/storage.py

"""
Byte-store collaborator and project load/save entry points.

A byte store holds one opaque document per project name and offers
exists / read / write / list. Two implementations are provided:
- FileByteStore: one file per project in a directory,
- MemoryByteStore: a dict, for tests and embedding.

load_project never fails: a missing, empty or undecodable entry still
yields a usable Project together with a non-fatal notice.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Protocol

from .document import (
    DecodeError,
    decode_document,
    document_to_project,
    encode_document,
    project_to_document,
)
from .legacy import migrate_document
from .model import Project


logger = logging.getLogger(__name__)

RECOVERY_MARKER: Final[str] = "=== RECOVERED DATA (could not parse document) ==="

DEFAULT_SUFFIX: Final[str] = ".yml"
LEGACY_SUFFIXES: Final[tuple[str, ...]] = (".json",)

LEVEL_INFO: Final[str] = "info"
LEVEL_WARNING: Final[str] = "warning"


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class StorageError(Exception):
    """
    Raised when the byte store cannot read, write or list entries.
    """

    name: str
    message: str

    def __str__(self) -> str:
        return f"{self.name}: {self.message}"


# ---------------------------------------------------------------------
# Byte stores
# ---------------------------------------------------------------------

class ByteStore(Protocol):
    def exists(self, name: str) -> bool: ...

    def read(self, name: str) -> bytes: ...

    def write(self, name: str, data: bytes) -> None: ...

    def list(self) -> list[str]: ...


@dataclass(slots=True)
class MemoryByteStore:
    entries: dict[str, bytes] = field(default_factory=dict)

    def exists(self, name: str) -> bool:
        return name in self.entries

    def read(self, name: str) -> bytes:
        try:
            return self.entries[name]
        except KeyError as e:
            raise StorageError(name, "No such entry") from e

    def write(self, name: str, data: bytes) -> None:
        self.entries[name] = bytes(data)

    def list(self) -> list[str]:
        return sorted(self.entries)


@dataclass(slots=True)
class FileByteStore:
    """
    One file per entry: <directory>/<name><suffix>.

    Entries written by older versions under a legacy suffix (".json")
    are still found by exists / read / list. Writes always use `suffix`.
    """

    directory: Path
    suffix: str = DEFAULT_SUFFIX
    legacy_suffixes: tuple[str, ...] = LEGACY_SUFFIXES

    def __post_init__(self) -> None:
        self.directory = Path(self.directory)

    def path_for(self, name: str) -> Path:
        _check_name(name)
        return self.directory / f"{name}{self.suffix}"

    def _existing_path(self, name: str) -> Path | None:
        primary = self.path_for(name)
        if primary.is_file():
            return primary
        for suffix in self.legacy_suffixes:
            p = self.directory / f"{name}{suffix}"
            if p.is_file():
                return p
        return None

    def exists(self, name: str) -> bool:
        return self._existing_path(name) is not None

    def read(self, name: str) -> bytes:
        path = self._existing_path(name)
        if path is None:
            raise StorageError(name, f"No such entry in {self.directory}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(name, f"Cannot read file: {e}") from e

    def write(self, name: str, data: bytes) -> None:
        path = self.path_for(name)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(name, f"Cannot write file: {e}") from e

    def list(self) -> list[str]:
        if not self.directory.is_dir():
            return []

        suffixes = (self.suffix, *self.legacy_suffixes)
        names: set[str] = set()
        try:
            for entry in self.directory.iterdir():
                if entry.is_file() and entry.suffix in suffixes:
                    names.add(entry.name[: -len(entry.suffix)])
        except OSError as e:
            raise StorageError(str(self.directory), f"Cannot list directory: {e}") from e

        return sorted(names)


def _check_name(name: str) -> None:
    if not name or not name.strip():
        raise StorageError(name, "Project name must be a non-empty string")
    if "/" in name or "\\" in name or name in (".", ".."):
        raise StorageError(name, "Project name must not contain path separators")


# ---------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class LoadResult:
    """
    A loaded project plus the non-fatal notice of the load.

    `level` is "" (clean load), "info" or "warning".
    """

    project: Project
    notice: str = ""
    level: str = ""

    @property
    def ok(self) -> bool:
        return self.level != LEVEL_WARNING


def load_project(name: str, store: ByteStore, encoding: str = "utf-8") -> LoadResult:
    """
    Load the project stored under `name`.

    Never raises for missing, empty, unreadable or malformed entries.
    Undecodable bytes are kept in the recovery notes as backslash
    escapes so that a later save does not lose them.
    """
    try:
        found = store.exists(name)
        raw = store.read(name) if found else b""
    except StorageError as e:
        notice = f"Created new project (stored document could not be read: {e.message})"
        logger.warning(f"{e}; starting from an empty project")
        return LoadResult(Project.empty(name), notice, LEVEL_WARNING)

    if not found:
        notice = "Created new project (no stored document)"
        logger.info(f"{name}: {notice}")
        return LoadResult(Project.empty(name), notice, LEVEL_INFO)

    if not raw.strip():
        notice = "Created new project (stored document was empty)"
        logger.info(f"{name}: {notice}")
        return LoadResult(Project.empty(name), notice, LEVEL_INFO)

    try:
        data = decode_document(raw, name=name, encoding=encoding)
    except DecodeError as e:
        notice = "Created new project with recovered data (document could not be parsed)"
        logger.warning(f"{e}; raw content kept in project notes")
        content = raw.decode(encoding, errors="backslashreplace")
        project = Project.empty(name, notes=f"{RECOVERY_MARKER}\n{content}")
        return LoadResult(project, notice, LEVEL_WARNING)

    return LoadResult(document_to_project(data, name=name))


def save_project(project: Project, store: ByteStore, encoding: str = "utf-8") -> str:
    """
    Write the whole project document under its name; returns the name.
    """
    name = project.info.name
    if not name:
        raise StorageError(name, "Project has no name")
    store.write(name, encode_document(project_to_document(project), encoding))
    logger.debug(f"{name}: saved {len(project.task_list)} task(s)")
    return name


def list_projects(store: ByteStore) -> list[str]:
    return store.list()


def migrate_stored_project(
    store: ByteStore,
    name: str,
    to_strings: bool = True,
    encoding: str = "utf-8",
) -> None:
    """
    Rewrite a stored document with its list fields converted.

    Unlike load_project this raises DecodeError for a malformed entry:
    nothing is rewritten unless the document decodes.
    """
    data = decode_document(store.read(name), name=name, encoding=encoding)
    migrated = migrate_document(data, to_strings=to_strings)
    store.write(name, encode_document(migrated, encoding))
    logger.info(f"{name}: migrated list fields to {'bullet text' if to_strings else 'lists'}")
