"""
Inventory compiler.

Purpose
Bring a catalog up to date with the upstream release history.

Steps
1) If the catalog already reached max_version and force is off, stop.
2) List upstream versions up to max_version.
3) Work set: versions missing from the catalog, or every listed version on force.
4) Fetch and normalize the work set concurrently, one unit per version.
5) Merge every result into a copy of the record, then set latest_version.

Consistency over partial progress
Units share one cancel signal. The first failure in time trips it and is the
error the compile raises. Queued units stop before doing any work. The compile
returns as soon as the failure is seen, downloads already running finish in the
background and their results are dropped. Results are merged only once every
unit finished, so a failed compile changes nothing in memory or on disk.

compile_inventory is the pure core and never touches the file system.
InventoryCompiler wraps it with the store read and write.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path

from release_inventory.core.errors import CompileFailed, InventoryError, InventoryReadError
from release_inventory.core.semver import require_canonical, sort_versions
from release_inventory.core.types import InventoryRecord
from release_inventory.inventory import store
from release_inventory.manifest.normalizer import normalize
from release_inventory.source.base import ReleaseSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompilerConfig:
    """
    Compiler configuration.

    max_workers
    Upper bound for concurrent downloads. None means one worker per version in
    the work set, so a slow download never blocks an unrelated one.
    """

    max_workers: int | None = None


@dataclass(frozen=True)
class CompileOutcome:
    """
    Result of a compile run.

    record is the updated catalog, or the input record when nothing changed.
    changed is False when the run short circuited.
    fetched lists the versions downloaded in this run, ascending.
    """

    record: InventoryRecord
    changed: bool
    fetched: tuple[str, ...] = ()


class _Cancelled(Exception):
    """A unit noticed the shared cancel signal before starting."""


class _Abort:
    """
    Cancel signal shared by every unit of one compile.

    The first unit to fail trips it. first keeps that failure, the earliest in
    time, which is the one the compile raises.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self.first: BaseException | None = None

    @property
    def tripped(self) -> bool:
        return self._event.is_set()

    def trip(self, exc: BaseException) -> None:
        with self._lock:
            if self.first is None:
                self.first = exc
            self._event.set()


def _fetch_and_normalize(
    source: ReleaseSource,
    version: str,
    abort: _Abort,
) -> bytes:
    if abort.tripped:
        raise _Cancelled(version)

    try:
        raw = source.fetch_manifest(version)
    except Exception as exc:
        raise CompileFailed(version, "fetch", exc) from exc

    if abort.tripped:
        raise _Cancelled(version)

    try:
        manifest = normalize(raw, version)
    except InventoryError as exc:
        raise CompileFailed(version, "normalize", exc) from exc

    logger.debug("fetched and normalized %s", version)
    return manifest


def _run_unit(source: ReleaseSource, version: str, abort: _Abort) -> bytes:
    try:
        return _fetch_and_normalize(source, version, abort)
    except _Cancelled:
        raise
    except Exception as exc:
        abort.trip(exc)
        raise


def _run_units(
    source: ReleaseSource,
    work: list[str],
    max_workers: int | None,
) -> dict[str, bytes]:
    abort = _Abort()
    workers = max_workers or len(work)

    pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fetch")
    futures: dict[Future[bytes], str] = {
        pool.submit(_run_unit, source, version, abort): version for version in work
    }

    done, _ = wait(futures, return_when=FIRST_EXCEPTION)
    failed = [f for f in done if f.exception() is not None]
    if failed:
        # queued units are dropped, running downloads finish in the background
        # and their results are discarded
        pool.shutdown(wait=False, cancel_futures=True)

        exc = abort.first or failed[0].exception()
        logger.error("compile aborted: %s", exc)
        raise exc  # type: ignore[misc]

    pool.shutdown(wait=True)
    return {futures[f]: f.result() for f in futures}


def compile_inventory(
    record: InventoryRecord,
    source: ReleaseSource,
    max_version: str,
    force: bool = False,
    config: CompilerConfig | None = None,
) -> CompileOutcome:
    """
    Return record updated with every upstream release up to max_version.

    The input record is never mutated. Any unit failure raises CompileFailed.
    An invalid max_version raises InvalidVersion before the source is called.
    """
    cfg = config or CompilerConfig()
    target = require_canonical(max_version)

    if record.latest_version == target and not force:
        logger.info("version %s is already the latest version", target)
        return CompileOutcome(record=record, changed=False)

    listed = source.list_versions(target)
    work = sort_versions(v for v in listed if force or v not in record.versions)
    logger.info("compiling %d of %d listed versions up to %s", len(work), len(listed), target)

    results = _run_units(source, work, cfg.max_workers) if work else {}

    updated = record.copy()
    for version in work:
        updated.add_release(version, results[version])
    updated.latest_version = target

    return CompileOutcome(record=updated, changed=True, fetched=tuple(work))


class InventoryCompiler:
    """
    Compile a catalog file in place.

    The file is read once and written once. A failed compile leaves the file
    exactly as it was.
    """

    def __init__(self, source: ReleaseSource, config: CompilerConfig | None = None) -> None:
        self._source = source
        self._config = config or CompilerConfig()

    def load(self, path: Path) -> InventoryRecord:
        """Read the catalog, falling back to an empty one when it is unusable."""
        try:
            return store.read(path)
        except InventoryReadError as exc:
            logger.warning("error reading inventory, starting from scratch: %s", exc)
            return InventoryRecord.empty()

    def compile(self, path: Path, max_version: str, force: bool = False) -> CompileOutcome:
        """Update the catalog at path up to max_version and return the outcome."""
        record = self.load(path)

        outcome = compile_inventory(
            record,
            self._source,
            max_version,
            force=force,
            config=self._config,
        )

        if outcome.changed:
            store.write(path, outcome.record)
            logger.info("updated inventory %s to version %s", path, outcome.record.latest_version)

        return outcome
