"""
Batch-scoped memo of successful resolutions.

A results page lists the same athlete once per row they appear in, and
re-scrapes repeat whole pages. ResolutionCache lets one ingestion run skip
the matching work for records it has already resolved. It holds lifter ids
only; the resolver re-reads the row from the store on a hit.

Entries are keyed on the record and the full ResolveOptions, so an answer
found under lenient options is never handed to a strict call.

Create one per batch and pass it to LifterResolver. Nothing is shared
between batches.
"""

from typing import Optional

from lifterid.identity.records import ResolveOptions, ScrapedRecord


class ResolutionCache:
    def __init__(self):
        self._entries: dict[tuple[ScrapedRecord, ResolveOptions], int] = {}
        self.hits = 0
        self.misses = 0

    def get(self, record: ScrapedRecord, options: ResolveOptions) -> Optional[int]:
        lifter_id = self._entries.get((record, options))
        if lifter_id is None:
            self.misses += 1
        else:
            self.hits += 1
        return lifter_id

    def put(self, record: ScrapedRecord, options: ResolveOptions, lifter_id: int) -> None:
        self._entries[(record, options)] = lifter_id

    def discard(self, record: ScrapedRecord, options: ResolveOptions) -> None:
        self._entries.pop((record, options), None)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)
