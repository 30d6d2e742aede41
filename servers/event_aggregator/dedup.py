"""
Exact-key deduplication for scraped events.

Two passes:
- Within one adapter run: explicit event id, else ticket URL, else
  title + instant. Run by each adapter before it returns.
- Across adapters: lowercased title + UTC calendar day. Run by the
  orchestrator on the merged output.

In both passes the first occurrence wins, so adapter order decides which
source's record survives a cross-source collision.
"""

from .models import DedupeResult, DuplicateMatch, RawEvent


def within_run_key(event: RawEvent) -> str:
    """Identity inside one adapter run."""
    if event.event_id:
        return f"id:{event.event_id}"
    if event.has_ticket_url:
        return f"url:{event.ticket_url}"
    return f"title:{event.title}|{event.date.isoformat()}"


def cross_source_key(event: RawEvent) -> str:
    """Identity across sources: lowercased title + calendar day."""
    return event.dedup_key


def dedupe_within_run(events: list[RawEvent]) -> list[RawEvent]:
    """
    Drop cards repeating an event id or ticket URL already seen in this run.

    A card whose id is new but whose ticket URL was already claimed is also
    dropped: both identifiers are tracked independently.
    """
    seen_ids: set[str] = set()
    seen_urls: set[str] = set()
    seen_keys: set[str] = set()
    unique: list[RawEvent] = []

    for event in events:
        if event.event_id and event.event_id in seen_ids:
            continue
        if event.has_ticket_url and event.ticket_url in seen_urls:
            continue
        key = within_run_key(event)
        if key in seen_keys:
            continue

        seen_keys.add(key)
        if event.event_id:
            seen_ids.add(event.event_id)
        if event.has_ticket_url:
            seen_urls.add(event.ticket_url)
        unique.append(event)

    return unique


def dedupe_across_sources(events: list[RawEvent]) -> DedupeResult:
    """
    Deduplicate merged adapter output by (lowercased title, calendar day).

    Args:
        events: Concatenated adapter outputs, in adapter order

    Returns:
        DedupeResult with surviving events and an audit trail of drops
    """
    kept: dict[str, RawEvent] = {}
    audit_trail: list[DuplicateMatch] = []

    for event in events:
        key = cross_source_key(event)
        survivor = kept.get(key)
        if survivor is None:
            kept[key] = event
            continue
        audit_trail.append(DuplicateMatch(
            key=key,
            kept_source=survivor.source,
            dropped_source=event.source,
            reason=f"Dropped '{event.title}' ({event.source}), already have it from {survivor.source}",
        ))

    unique = list(kept.values())
    return DedupeResult(
        events=unique,
        original_count=len(events),
        duplicates_removed=len(events) - len(unique),
        audit_trail=audit_trail,
    )


def format_audit_summary(result: DedupeResult) -> str:
    """Format audit trail as human-readable summary."""
    if not result.audit_trail:
        return "No duplicates found."

    lines = [
        "Deduplication Summary:",
        f"  Original events: {result.original_count}",
        f"  Duplicates removed: {result.duplicates_removed}",
        f"  Final events: {len(result.events)}",
        f"  Dedup rate: {result.dedup_rate:.1f}%",
        "",
        "Dropped events:",
    ]
    lines.extend(f"  - {match.reason}" for match in result.audit_trail)
    return "\n".join(lines)
