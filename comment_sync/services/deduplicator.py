"""
Deduplicator - the single idempotence checkpoint of a sync run.
"""

from collections.abc import Iterable

from comment_sync.models.record import StoredRecord
from comment_sync.models.thread import Thread


def existing_discussion_ids(records: Iterable[StoredRecord]) -> set[str]:
    """Collect the non-empty discussion ids of stored records."""
    return {record.discussion_id for record in records if record.discussion_id}


def filter_new_threads(threads: list[Thread], existing_ids: Iterable[str]) -> list[Thread]:
    """
    Keep only threads whose discussion id is not yet materialized.

    Order is preserved. A discussion id repeated inside the candidate list is
    kept once (first occurrence), so one run never writes the same id twice.

    Args:
        threads: Candidate threads in discovery order
        existing_ids: Discussion ids already present in the target store

    Returns:
        Threads to write
    """
    seen = set(existing_ids)
    new_threads = []
    for thread in threads:
        if thread.discussion_id in seen:
            continue
        seen.add(thread.discussion_id)
        new_threads.append(thread)
    return new_threads
