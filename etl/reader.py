"""
etl/reader.py

Streaming readers for gzip-compressed CSV exports.

Files are never materialized in memory: rows are read lazily and handed to
the loader in fixed-size batches. Any I/O, decompression or decoding error
surfaces as ``SourceFileError`` so the caller can treat it as fatal for the
table without catching a grab bag of stdlib exceptions.
"""

from __future__ import annotations

import csv
import gzip
import zlib
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO, TypeVar

from etl.errors import SourceFileError

T = TypeVar("T")

# Breakdown columns carry JSON blobs well past the csv module's 128 KiB default.
_FIELD_SIZE_LIMIT = 16 * 1024 * 1024

_STREAM_ERRORS = (OSError, EOFError, zlib.error, UnicodeDecodeError, csv.Error)


@contextmanager
def open_source(path: Path) -> Iterator[IO[str]]:
    """
    Open ``path`` as text. ``.gz`` files are decompressed on the fly.
    """

    try:
        if path.suffix == ".gz":
            stream: IO[str] = gzip.open(path, mode="rt", encoding="utf-8-sig", newline="")
        else:
            stream = open(path, mode="r", encoding="utf-8-sig", newline="")
    except OSError as exc:
        raise SourceFileError(f"Cannot open source file {path}: {exc}") from exc

    try:
        yield stream
    finally:
        stream.close()


def iter_rows(stream: IO[str], *, source: str = "<stream>") -> Iterator[dict[str, str | None]]:
    """
    Yield each CSV row as a dict with trimmed header names and values.
    """

    if csv.field_size_limit() < _FIELD_SIZE_LIMIT:
        csv.field_size_limit(_FIELD_SIZE_LIMIT)

    try:
        reader = csv.DictReader(stream)
        headers = reader.fieldnames
        if not headers:
            raise SourceFileError(f"CSV header row is missing in {source}.")
        reader.fieldnames = [(header or "").strip() for header in headers]

        for raw_row in reader:
            yield {
                key: value.strip() if isinstance(value, str) else value
                for key, value in raw_row.items()
                if key is not None
            }
    except _STREAM_ERRORS as exc:
        raise SourceFileError(f"Failed reading {source}: {exc}") from exc


def iter_batches(items: Iterable[T], batch_size: int) -> Iterator[list[T]]:
    """
    Group ``items`` into lists of ``batch_size``; the final partial batch is
    always yielded.
    """

    size = max(1, batch_size)
    batch: list[T] = []
    for item in items:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


def iter_marked_batches(items: Iterable[T], batch_size: int) -> Iterator[tuple[list[T], bool]]:
    """
    Yield ``(batch, is_last)`` pairs from ``iter_batches``.

    One batch is read ahead so an exactly-full final batch is still marked as
    last. When reading ahead fails, the pending batch is yielded (not marked
    last) before the ``SourceFileError`` propagates.
    """

    batches = iter_batches(items, batch_size)
    pending = next(batches, None)
    while pending is not None:
        try:
            upcoming = next(batches, None)
        except SourceFileError:
            yield pending, False
            raise
        yield pending, upcoming is None
        pending = upcoming
