"""
Media storage and the stage/commit/abort reconciler.

``MediaStore`` is the filesystem collaborator: every artifact is addressed by
a relative ref namespaced by media kind (``images/``, ``images/derived/``,
``videos/``) and resolved under a configured root.

``StorageReconciler`` keeps those files consistent with the outcome of the
surrounding database transaction. One reconciler serves one create/update
call: artifacts created by the call are staged as provisional, raw uploads
that only feed the transform are tracked as intermediate, and artifacts the
call makes obsolete are marked superseded. ``commit()`` and ``abort()`` run
strictly after the transaction has concluded.
"""

import logging
import os
import time
import uuid
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterable, Iterator, List, Tuple

from travel_diary.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

IMAGES = "images"
DERIVED_IMAGES = "images/derived"
VIDEOS = "videos"

MEDIA_KINDS = (IMAGES, DERIVED_IMAGES, VIDEOS)

_CHUNK_SIZE = 1024 * 1024


class MediaStore:
    """Path-addressed file storage rooted at ``root``."""

    def __init__(self, root):
        self.root = Path(root).resolve()

    def ensure_layout(self) -> None:
        for kind in MEDIA_KINDS:
            (self.root / kind).mkdir(parents=True, exist_ok=True)

    def path_for(self, ref: str) -> Path:
        """Resolve a relative ref, refusing anything outside the media root."""
        path = (self.root / PurePosixPath(ref)).resolve()
        if self.root not in path.parents:
            raise StorageError(f"Media ref escapes storage root: {ref!r}")
        return path

    def new_ref(self, kind: str, field: str, filename: str) -> str:
        """Collision-free ref ``<kind>/<field>-<uuid><ext>`` for a fresh upload."""
        ext = os.path.splitext(filename or "")[1].lower()
        return f"{kind}/{field}-{uuid.uuid4().hex}{ext}"

    def exists(self, ref: str) -> bool:
        return self.path_for(ref).is_file()

    def write_stream(self, ref: str, source: BinaryIO, max_bytes: int, field: str) -> str:
        """Copy ``source`` to ``ref``, enforcing ``max_bytes``.

        A partially written file is removed before any error propagates.
        """
        path = self.path_for(ref)
        path.parent.mkdir(parents=True, exist_ok=True)
        written = 0
        try:
            with open(path, "xb") as out:
                while True:
                    chunk = source.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > max_bytes:
                        raise ValidationError(
                            field, f"File exceeds the {max_bytes // (1024 * 1024)} MB limit"
                        )
                    out.write(chunk)
        except ValidationError:
            self.delete(ref)
            raise
        except OSError as e:
            self.delete(ref)
            raise StorageError(f"Failed to write {ref}: {e}") from e
        return ref

    def delete(self, ref: str) -> bool:
        """Best-effort removal. Failures are logged, never raised."""
        try:
            self.path_for(ref).unlink()
        except FileNotFoundError:
            return False
        except (OSError, StorageError) as e:
            logger.warning(f"Could not delete media artifact {ref}: {e}")
            return False
        return True

    def iter_refs(self, kind: str) -> Iterator[Tuple[str, float]]:
        """Yield ``(ref, mtime)`` for files directly under ``kind``."""
        base = self.root / kind
        if not base.is_dir():
            return
        for entry in os.scandir(base):
            if entry.is_file():
                yield f"{kind}/{entry.name}", entry.stat().st_mtime


class StorageReconciler:
    """Per-operation bookkeeping of filesystem side effects."""

    def __init__(self, store: MediaStore):
        self.store = store
        self._provisional: List[str] = []
        self._intermediate: List[str] = []
        self._superseded: List[str] = []

    @property
    def provisional(self) -> Tuple[str, ...]:
        return tuple(self._provisional)

    @property
    def superseded(self) -> Tuple[str, ...]:
        return tuple(self._superseded)

    def stage(self, ref: str) -> None:
        """Record an artifact created by this operation as provisional."""
        self._provisional.append(ref)

    def track_upload(self, ref: str) -> None:
        """Record a raw upload that is only an input to a transform."""
        self._intermediate.append(ref)

    def supersede(self, ref: str) -> None:
        """Record a committed artifact this operation makes obsolete."""
        if ref not in self._superseded:
            self._superseded.append(ref)

    def commit(self) -> None:
        """The record is durable: drop intermediates and superseded artifacts."""
        removed = self._delete_all(self._intermediate + self._superseded)
        if removed:
            logger.info(f"Commit cleanup removed {removed} media artifact(s)")
        self._reset()

    def abort(self) -> None:
        """The record was never written: remove everything this operation created."""
        removed = self._delete_all(self._provisional + self._intermediate)
        logger.info(f"Aborted media operation, removed {removed} artifact(s)")
        self._reset()

    def _delete_all(self, refs: Iterable[str]) -> int:
        return sum(1 for ref in refs if self.store.delete(ref))

    def _reset(self) -> None:
        self._provisional = []
        self._intermediate = []
        self._superseded = []


def sweep_orphans(store: MediaStore, referenced: Iterable[str], grace_seconds: float = 0) -> List[str]:
    """Delete stored artifacts that no entry row references.

    Catches files left behind when a process died between a transaction
    commit and the inline cleanup that should have followed it. Files younger
    than ``grace_seconds`` are left alone so in-flight uploads survive.
    """
    keep = set(referenced)
    cutoff = time.time() - grace_seconds
    removed = []
    for kind in MEDIA_KINDS:
        for ref, mtime in store.iter_refs(kind):
            if ref in keep or mtime > cutoff:
                continue
            if store.delete(ref):
                removed.append(ref)
    logger.info(f"Orphan sweep removed {len(removed)} media artifact(s)")
    return removed
