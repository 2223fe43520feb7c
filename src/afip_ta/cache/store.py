"""File-backed ticket cache.

One JSON file per (cuit, service) pair. Files are always read fresh from
disk and always replaced whole, so concurrent readers in other processes
see either the previous ticket or the new one, never a partial write.
"""

import asyncio
import json
import logging
import os
import re
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from ..models.ticket import CacheEntry, LoginTicketResponse, serialize_timestamp
from ..utils.exceptions import CacheCorruptionError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_MARGIN = timedelta(minutes=10)

_KEY_PART = re.compile(r"^[A-Za-z0-9_.-]+$")


class TicketCache:
    """Persist login ticket responses per (cuit, service).

    Attributes:
        directory: Directory holding the TA-{cuit}-{service}.json files
        safety_margin: Time before expiration at which a ticket stops being served

    Example:
        >>> cache = TicketCache(Path("~/.afip-ta/cache").expanduser())
        >>> entry = await cache.read("20111111111", "wsfe")
        >>> if entry and cache.is_entry_valid(entry):
        ...     print(entry.response.credentials.token)
    """

    def __init__(
        self,
        directory: Path,
        safety_margin: timedelta = DEFAULT_SAFETY_MARGIN,
    ) -> None:
        if safety_margin < timedelta(0):
            raise ValidationError(
                f"Invalid safety margin: {safety_margin}. Must not be negative."
            )
        self.directory = Path(directory)
        self.safety_margin = safety_margin

    def path_for(self, cuit: str, service: str) -> Path:
        """Return the cache file path for a key.

        Raises:
            ValidationError: If cuit or service would escape the cache directory
        """
        for name, value in (("cuit", cuit), ("service", service)):
            if not isinstance(value, str) or not _KEY_PART.match(value):
                raise ValidationError(
                    f"Invalid {name} for cache key: {value!r}. "
                    "Only letters, digits, '.', '_' and '-' are allowed."
                )
        return self.directory / f"TA-{cuit}-{service}.json"

    @staticmethod
    def is_valid(entry: CacheEntry, now: datetime, safety_margin: timedelta) -> bool:
        """Whether the entry can still be served at ``now``.

        Fails closed: a ticket expiring exactly at now + safety_margin is invalid.
        """
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now + safety_margin < entry.expiration_time

    def is_entry_valid(self, entry: CacheEntry, now: Optional[datetime] = None) -> bool:
        """is_valid with this cache's safety margin; ``now`` defaults to current UTC."""
        return self.is_valid(entry, now or datetime.now(timezone.utc), self.safety_margin)

    async def read(self, cuit: str, service: str) -> Optional[CacheEntry]:
        """Read the cached entry for a key.

        Returns:
            CacheEntry, or None if the file is missing or cannot be decoded
        """
        return await asyncio.to_thread(self.read_sync, cuit, service)

    def read_sync(self, cuit: str, service: str) -> Optional[CacheEntry]:
        path = self.path_for(cuit, service)
        try:
            return self._load(path, cuit, service)
        except FileNotFoundError:
            logger.debug(f"No cached ticket at {path}")
            return None
        except CacheCorruptionError as e:
            logger.warning(f"Ignoring unreadable ticket cache file {path}: {e}")
            return None

    def _load(self, path: Path, cuit: str, service: str) -> CacheEntry:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise
        except (OSError, UnicodeDecodeError) as e:
            raise CacheCorruptionError(f"cannot read file: {e}") from e

        try:
            data = json.loads(raw)
            response = LoginTicketResponse.from_dict(data)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise CacheCorruptionError(f"invalid ticket document: {e}") from e

        return CacheEntry(cuit=cuit, service=service, response=response)

    async def write(
        self, cuit: str, service: str, response: LoginTicketResponse
    ) -> CacheEntry:
        """Persist a ticket, fully replacing any previous entry for the key."""
        return await asyncio.to_thread(self.write_sync, cuit, service, response)

    def write_sync(
        self, cuit: str, service: str, response: LoginTicketResponse
    ) -> CacheEntry:
        path = self.path_for(cuit, service)
        self.directory.mkdir(parents=True, exist_ok=True)

        document = response.to_dict()
        document["expiration_time"] = serialize_timestamp(response.expiration_time)

        fd, tmp_name = tempfile.mkstemp(
            dir=str(self.directory), prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

        logger.info(
            f"Cached ticket for cuit={cuit}, service={service} "
            f"(expires {document['expiration_time']})"
        )
        return CacheEntry(cuit=cuit, service=service, response=response)

    async def clear(self, cuit: str, service: str) -> bool:
        """Delete the cached entry for a key. Returns True if a file was removed."""
        return await asyncio.to_thread(self.clear_sync, cuit, service)

    def clear_sync(self, cuit: str, service: str) -> bool:
        path = self.path_for(cuit, service)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Removed cached ticket {path}")
        return True
