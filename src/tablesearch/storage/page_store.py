import gzip
import logging
import os
import re
import shutil
import zlib
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

from pydantic import ValidationError

from ..exceptions import CacheCorrupt
from ..models import Page, TableMetadata, StoreValidation, CacheStats, CachedTableInfo

logger = logging.getLogger(__name__)

METADATA_SUFFIX = "_metadata.json"
MAX_LISTED_MISSING = 10

class PageStore:
    """
        File-addressed store for table metadata and row pages.

        Artifacts live flat under the cache directory:
            <cache_key>_metadata.json
            <cache_key>_page_000001.json[.gz]

        Reads never raise: missing, expired or corrupt artifacts come back as None.
    """

    def __init__(self, settings):
        self.root = Path(settings.CACHE_DIRECTORY)
        self.enabled = settings.ENABLE_CACHING
        self.compress = settings.COMPRESS_CACHE
        self.expiry_hours = settings.CACHE_EXPIRY_HOURS
        self.max_file_bytes = settings.max_cache_file_bytes

        if self.enabled:
            self.root.mkdir(parents=True, exist_ok=True)

    # -------------------------------------------------------------------------
    # Addressing
    # -------------------------------------------------------------------------

    @property
    def page_extension(self) -> str:
        return ".json.gz" if self.compress else ".json"

    def metadata_path(self, cache_key: str) -> Path:
        return self.root / f"{cache_key}{METADATA_SUFFIX}"

    def page_path(self, cache_key: str, page_number: int) -> Path:
        return self.root / f"{cache_key}_page_{page_number:06d}{self.page_extension}"

    def _page_pattern(self, cache_key: str) -> re.Pattern:
        return re.compile(rf"^{re.escape(cache_key)}_page_(\d{{6}}){re.escape(self.page_extension)}$")

    def _artifacts(self, cache_key: str) -> List[Path]:
        """Metadata plus page files (either extension) for one key."""
        if not self.root.exists():
            return []
        any_page = re.compile(rf"^{re.escape(cache_key)}_page_\d{{6}}\.json(\.gz)?$")
        return [
            path for path in self.root.iterdir()
            if path.is_file() and (
                path.name == f"{cache_key}{METADATA_SUFFIX}" or any_page.match(path.name)
            )
        ]

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def save_metadata(self, cache_key: str, metadata: TableMetadata) -> bool:
        if not self.enabled:
            return False

        try:
            self._write_atomic(self.metadata_path(cache_key), metadata.model_dump_json(indent=2).encode("utf-8"))
            logger.info(f"Saved metadata for {cache_key}")
            return True
        except OSError as e:
            logger.warning(f"Failed to save metadata for {cache_key}: {e}")
            return False

    def load_metadata(self, cache_key: str) -> Optional[TableMetadata]:
        """Valid metadata within the TTL, else None."""
        metadata = self.read_metadata(cache_key)
        if metadata is None:
            return None

        if self.is_expired(metadata):
            logger.info(
                f"Cached metadata for {cache_key} expired "
                f"({metadata.age_hours():.1f}h old, TTL {self.expiry_hours}h)"
            )
            return None

        return metadata

    def read_metadata(self, cache_key: str) -> Optional[TableMetadata]:
        """Metadata regardless of age; None when absent or unreadable."""
        if not self.enabled:
            return None

        path = self.metadata_path(cache_key)
        if not path.exists():
            return None

        try:
            return self._parse_metadata(path)
        except CacheCorrupt as e:
            logger.warning(e.message)
            return None

    def has_metadata(self, cache_key: str) -> bool:
        return self.enabled and self.metadata_path(cache_key).exists()

    def is_expired(self, metadata: TableMetadata) -> bool:
        return metadata.age_hours() >= self.expiry_hours

    def _parse_metadata(self, path: Path) -> TableMetadata:
        try:
            return TableMetadata.model_validate_json(path.read_bytes())
        except (OSError, ValidationError, ValueError) as e:
            raise CacheCorrupt(str(path), str(e)) from e

    # -------------------------------------------------------------------------
    # Pages
    # -------------------------------------------------------------------------

    def save_page(self, cache_key: str, page_number: int, page: Page) -> bool:
        if not self.enabled:
            return False

        path = self.page_path(cache_key, page_number)
        data = page.model_dump_json().encode("utf-8")
        if self.compress:
            data = gzip.compress(data)

        try:
            self._write_atomic(path, data)
        except OSError as e:
            logger.warning(f"Failed to save page {page_number} for {cache_key}: {e}")
            return False

        if len(data) > self.max_file_bytes:
            logger.warning(
                f"Cache file {path} is {len(data) / 1024 / 1024:.1f} MB, "
                f"exceeds the {self.max_file_bytes // (1024 * 1024)} MB limit"
            )
        return True

    def load_page(self, cache_key: str, page_number: int) -> Optional[Page]:
        if not self.enabled:
            return None

        path = self.page_path(cache_key, page_number)
        if not path.exists():
            logger.debug(f"Cache miss: {cache_key} page {page_number}")
            return None

        try:
            return self._parse_page(path)
        except CacheCorrupt as e:
            logger.warning(e.message)
            return None

    def _parse_page(self, path: Path) -> Page:
        try:
            raw = path.read_bytes()
            if self.compress:
                raw = gzip.decompress(raw)
            return Page.model_validate_json(raw)
        except (OSError, EOFError, zlib.error, ValidationError, ValueError) as e:
            raise CacheCorrupt(str(path), str(e)) from e

    def list_pages(self, cache_key: str) -> List[int]:
        if not self.enabled or not self.root.exists():
            return []

        pattern = self._page_pattern(cache_key)
        pages = set()
        for path in self.root.iterdir():
            match = pattern.match(path.name)
            if match:
                pages.add(int(match.group(1)))
        return sorted(pages)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def clear(self, cache_key: Optional[str] = None) -> bool:
        """Remove one table's artifacts, or everything when no key is given."""
        if not self.enabled:
            return False

        try:
            if cache_key is None:
                if self.root.exists():
                    shutil.rmtree(self.root)
                self.root.mkdir(parents=True, exist_ok=True)
                logger.info(f"Cleared all cache under {self.root}")
            else:
                removed = 0
                for path in self._artifacts(cache_key):
                    path.unlink()
                    removed += 1
                logger.info(f"Cleared {removed} cache files for {cache_key}")
            return True
        except OSError as e:
            logger.warning(f"Failed to clear cache: {e}")
            return False

    def validate(self, cache_key: str) -> StoreValidation:
        result = StoreValidation(cache_key=cache_key)

        metadata = self.read_metadata(cache_key)
        if metadata is None:
            result.issues.append("Metadata file missing or unreadable")
            result.actual_pages = len(self.list_pages(cache_key))
            return result

        result.metadata_present = True
        result.is_expired = self.is_expired(metadata)
        if result.is_expired:
            result.issues.append(
                f"Cache is {metadata.age_hours():.1f}h old, past the {self.expiry_hours}h TTL (informational)"
            )

        stored = self.list_pages(cache_key)
        expected = metadata.total_pages
        result.expected_pages = expected
        result.actual_pages = len(stored)

        stored_set = set(stored)
        result.missing_pages = [n for n in range(1, expected + 1) if n not in stored_set]
        if result.missing_pages:
            shown = ", ".join(str(n) for n in result.missing_pages[:MAX_LISTED_MISSING])
            remainder = len(result.missing_pages) - MAX_LISTED_MISSING
            if remainder > 0:
                shown += f" ... and {remainder} more"
            result.issues.append(f"Missing pages: {shown}")

        extra = [n for n in stored if n > expected]
        if extra:
            result.issues.append(f"{len(extra)} stored pages beyond the expected {expected}")

        if stored:
            result.readable_first = self.load_page(cache_key, stored[0]) is not None
            result.readable_last = self.load_page(cache_key, stored[-1]) is not None
            if not result.readable_first:
                result.issues.append(f"First page {stored[0]} is corrupted")
            if not result.readable_last:
                result.issues.append(f"Last page {stored[-1]} is corrupted")

        return result

    def stats(self, cache_key: str) -> CacheStats:
        result = CacheStats(cache_key=cache_key, page_count=len(self.list_pages(cache_key)))

        for path in self._artifacts(cache_key):
            try:
                info = path.stat()
            except OSError:
                continue
            result.byte_size += info.st_size
            modified = datetime.fromtimestamp(info.st_mtime)
            if result.last_modified is None or modified > result.last_modified:
                result.last_modified = modified

        return result

    def total_size(self) -> int:
        if not self.enabled or not self.root.exists():
            return 0
        try:
            return sum(path.stat().st_size for path in self.root.rglob("*") if path.is_file())
        except OSError as e:
            logger.warning(f"Failed to measure cache size: {e}")
            return 0

    def list_cached_tables(self) -> List[CachedTableInfo]:
        if not self.enabled or not self.root.exists():
            return []

        tables = []
        for path in sorted(self.root.glob(f"*{METADATA_SUFFIX}")):
            cache_key = path.name[:-len(METADATA_SUFFIX)]
            metadata = self.read_metadata(cache_key)
            if metadata is None:
                continue

            stats = self.stats(cache_key)
            tables.append(CachedTableInfo(
                cache_key=cache_key,
                environment=metadata.environment,
                database=metadata.database,
                table_id=metadata.table_id,
                cached_at=metadata.cached_at,
                total_rows=metadata.total_rows,
                total_pages=metadata.total_pages,
                cached_pages=stats.page_count,
                byte_size=stats.byte_size,
                is_expired=self.is_expired(metadata)
            ))
        return tables

    def _write_atomic(self, path: Path, data: bytes) -> None:
        tmp_path = path.with_name(f".{path.name}.{uuid4().hex}.tmp")
        try:
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
