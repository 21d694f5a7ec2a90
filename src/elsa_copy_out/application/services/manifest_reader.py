"""CSV manifest reading."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterator
from dataclasses import dataclass

from elsa_copy_out.domain.copy_items import CopyItem
from elsa_copy_out.domain.errors import ManifestFormatError
from elsa_copy_out.domain.ports import ManifestObjectStore

MANIFEST_COLUMNS = ("bucket", "key")

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ManifestLocation:
    """Object storage location of a manifest."""

    bucket: str
    key: str

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


def _normalized(row: list[str]) -> list[str]:
    return [cell.strip().lower() for cell in row]


def parse_manifest(text: str) -> Iterator[CopyItem]:
    """Lazily decode manifest rows into copy items.

    Rows are `bucket,key`. A first row naming those columns is a header and
    skipped; blank lines are ignored.
    """

    reader = csv.reader(io.StringIO(text))
    first_row = True
    for row in reader:
        if not any(cell.strip() for cell in row):
            continue

        if first_row:
            first_row = False
            header = _normalized(row)
            if header == list(MANIFEST_COLUMNS):
                continue
            if sorted(header) == sorted(MANIFEST_COLUMNS):
                raise ManifestFormatError(
                    "Manifest header must declare columns in the order "
                    f"'{','.join(MANIFEST_COLUMNS)}', got '{','.join(row)}'."
                )

        if len(row) != len(MANIFEST_COLUMNS):
            raise ManifestFormatError(
                f"Manifest line {reader.line_num} has {len(row)} column(s), "
                f"expected {len(MANIFEST_COLUMNS)} ({','.join(MANIFEST_COLUMNS)})."
            )
        bucket, key = (cell.strip() for cell in row)
        if not bucket or not key:
            raise ManifestFormatError(f"Manifest line {reader.line_num} has an empty bucket or key.")
        yield CopyItem(bucket=bucket, key=key)


class ManifestReader:
    """Read a manifest object and decode it completely.

    Either every row decodes or the read fails; callers never see a prefix of
    a broken manifest. Each call re-reads the object from scratch.
    """

    def __init__(self, object_store: ManifestObjectStore) -> None:
        self._object_store = object_store

    async def read(self, location: ManifestLocation) -> list[CopyItem]:
        """Return the ordered copy items listed at `location`."""

        body = await self._object_store.read_object(location.bucket, location.key)
        try:
            text = body.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ManifestFormatError(f"Manifest {location} is not valid UTF-8 text.") from exc

        try:
            items = list(parse_manifest(text))
        except csv.Error as exc:
            raise ManifestFormatError(f"Manifest {location} is not valid CSV: {exc}") from exc

        logger.info("Read %d copy item(s) from manifest %s.", len(items), location)
        return items


__all__ = ["MANIFEST_COLUMNS", "ManifestLocation", "ManifestReader", "parse_manifest"]
