"""
Invocation Cache

LRU + TTL memo of Success results keyed by (spec name, canonical arguments).
Entries remember the fingerprint of the spec version that produced them, so a
replaced spec never serves a stale answer.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from collections import OrderedDict
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from hollow.models.invocation import CacheEntry, InvocationResult

logger = logging.getLogger(__name__)


def canonical_json(arguments: Mapping[str, Any]) -> str:
    return json.dumps(arguments, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def make_key(spec_name: str, arguments: Mapping[str, Any]) -> str:
    """sha256(specName + ":" + canonicalJson(arguments))"""
    material = f"{spec_name}:{canonical_json(arguments)}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class InvocationCache:
    def __init__(
        self,
        max_entries: int = 1024,
        default_ttl_s: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self.default_ttl_s = default_ttl_s
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str, fingerprint: Optional[str] = None) -> Optional[CacheEntry]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                logger.debug("Cache entry %s expired", key[:12])
                return None
            if fingerprint is not None and entry.spec_fingerprint not in (None, fingerprint):
                del self._entries[key]
                logger.debug("Cache entry %s belongs to an older spec version", key[:12])
                return None
            self._entries.move_to_end(key)
            return entry

    async def put(
        self,
        key: str,
        result: InvocationResult,
        ttl_s: Optional[float] = None,
        *,
        spec_name: str = "",
        fingerprint: Optional[str] = None,
    ) -> None:
        ttl = self.default_ttl_s if ttl_s is None else ttl_s
        if ttl <= 0:
            return
        async with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                result=result,
                expires_at=self._clock() + ttl,
                spec_name=spec_name,
                spec_fingerprint=fingerprint,
            )
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted least-recently-used cache entry %s", evicted[:12])

    async def invalidate(self, spec_name: str) -> int:
        """Drop every entry stored under *spec_name*. Returns the number removed."""
        async with self._lock:
            doomed = [k for k, e in self._entries.items() if e.spec_name == spec_name]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug("Invalidated %d cache entries for %s", len(doomed), spec_name)
        return len(doomed)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    # ------------------------------------------------------------------
    # Persistence: {key, value, expiresAt} records, wall-clock expiry
    # ------------------------------------------------------------------

    def dump_entries(self) -> List[Dict[str, Any]]:
        now_mono = self._clock()
        now_wall = time.time()
        records = []
        for entry in self._entries.values():
            if entry.expires_at <= now_mono:
                continue
            records.append(
                {
                    "key": entry.key,
                    "value": entry.result.model_dump(mode="json"),
                    "expiresAt": now_wall + (entry.expires_at - now_mono),
                    "specName": entry.spec_name,
                    "specFingerprint": entry.spec_fingerprint,
                }
            )
        return records

    def load_entries(self, records: Iterable[Mapping[str, Any]]) -> int:
        """Restore records written by dump_entries; expired records are skipped."""
        now_mono = self._clock()
        now_wall = time.time()
        loaded = 0
        for record in records:
            remaining = float(record["expiresAt"]) - now_wall
            if remaining <= 0:
                continue
            self._entries[record["key"]] = CacheEntry(
                key=record["key"],
                result=InvocationResult.model_validate(record["value"]),
                expires_at=now_mono + remaining,
                spec_name=record.get("specName", ""),
                spec_fingerprint=record.get("specFingerprint"),
            )
            loaded += 1
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return loaded

    def save(self, path: str) -> int:
        records = self.dump_entries()
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as file_obj:
            for record in records:
                file_obj.write(json.dumps(record) + "\n")
        return len(records)

    def load(self, path: str) -> int:
        source = Path(path)
        if not source.exists():
            return 0
        with source.open("r", encoding="utf-8") as file_obj:
            records = [json.loads(line) for line in file_obj if line.strip()]
        return self.load_entries(records)
