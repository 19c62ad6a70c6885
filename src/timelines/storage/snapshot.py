"""Year snapshot files — one JSON document per year and source."""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from timelines.errors import DecodeError, PersistError

logger = logging.getLogger(__name__)

SNAPSHOT_SUFFIX = ".json"


def snapshot_path(output_dir: str | Path, year: int) -> Path:
    """Path of the snapshot file for ``year``."""
    return Path(output_dir) / f"{year}{SNAPSHOT_SUFFIX}"


def sort_records(records: Iterable[Any]) -> list[Any]:
    """Order records for persistence: descending by ``sort_key``."""
    return sorted(records, key=lambda record: record.sort_key, reverse=True)


def encode_snapshot(collection: str, records: Iterable[Any]) -> str:
    """Serialize records into snapshot text. Output depends only on content."""
    document = {collection: [record.to_dict() for record in sort_records(records)]}
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def decode_snapshot(text: str, collection: str, record_type: type) -> list[Any]:
    """Parse snapshot text back into canonical records.

    Raises DecodeError if the text is not valid JSON or lacks the collection.
    """
    try:
        document = json.loads(text)
    except ValueError as exc:
        raise DecodeError(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(document, dict) or not isinstance(document.get(collection), list):
        raise DecodeError(f"Snapshot has no '{collection}' list")
    return [record_type.from_dict(item) for item in document[collection]]


def latest_snapshot(output_dir: str | Path) -> tuple[int, Path] | None:
    """Find the snapshot for the most recent year, or None if there is none."""
    directory = Path(output_dir)
    if not directory.is_dir():
        return None

    years: list[tuple[int, Path]] = []
    for path in directory.glob(f"*{SNAPSHOT_SUFFIX}"):
        if path.is_file() and path.stem.isdigit():
            years.append((int(path.stem), path))
    if not years:
        return None
    return max(years)


def load_snapshot(path: str | Path, collection: str, record_type: type) -> list[Any]:
    """Read and decode one snapshot file. Raises DecodeError naming the path."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
        records = decode_snapshot(text, collection, record_type)
    except (OSError, DecodeError) as exc:
        raise DecodeError(f"Could not load snapshot {path}: {exc}") from exc

    year = int(path.stem)
    misplaced = [record for record in records if record.year != year]
    if misplaced:
        raise DecodeError(
            f"Snapshot {path} holds {len(misplaced)} record(s) from another year"
        )
    logger.info("Loaded %d %s from %s", len(records), collection, path)
    return records


def _snapshot_mode(target: Path) -> int:
    """Keep an existing file's permissions; new files get 0644 minus umask."""
    try:
        return stat.S_IMODE(target.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o644 & ~umask


def write_snapshot(
    output_dir: str | Path, year: int, collection: str, records: Iterable[Any]
) -> Path:
    """Atomically replace the snapshot for ``year``.

    The content is written to a temporary file in the same directory and then
    moved into place, so a failed write leaves the previous file untouched.
    """
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    target = snapshot_path(directory, year)
    text = encode_snapshot(collection, records)

    fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{year}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        # mkstemp creates the file owner-only.
        os.chmod(tmp_name, _snapshot_mode(target))
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
    return target


def write_snapshots(
    output_dir: str | Path,
    collection: str,
    partitions: Iterable[tuple[int, Iterable[Any]]],
) -> list[Path]:
    """Write every partition. A failure for one year does not stop the others.

    Raises PersistError listing the failed years once all have been attempted.
    """
    written: list[Path] = []
    failed: list[int] = []
    for year, records in partitions:
        try:
            path = write_snapshot(output_dir, year, collection, records)
        except Exception:
            logger.exception("Failed to write %s snapshot for %d", collection, year)
            failed.append(year)
            continue
        logger.info("Wrote snapshot %s", path)
        written.append(path)

    if failed:
        raise PersistError(failed)
    return written
