"""Multi-source consensus over predicted feeding windows.

Windows from every source that answered are clustered per kind (Major and
Minor never mix), merged by trust weight and ranked by start time. The
procedure is deterministic for a given input order:

1. Flatten successful results in source order, then window order.
2. Greedy sequential clustering: a window joins the first open cluster whose
   mean ``start`` is within ``threshold_minutes`` of its own ``start``,
   otherwise it opens a new cluster. No reassignment, no second pass.
3. ``merged = sum(value * weight) / sum(weight)`` for start and end.
4. Agreement counts distinct source ids; quality follows agreement.
5. Major clusters then Minor clusters, stable-sorted by merged start.
6. Same-kind overlap is removed from the less-agreed cluster (ties: the
   later one), so the best-supported window is never clipped.
"""

from datetime import date
from typing import Iterable, Optional

import structlog

from shared_types import Confidence, Quality, SourceId, WindowKind

from .models import ConsensusCluster, ConsensusSchedule, Location, SourceResult, TimeWindow
from .reliability import confidence_tier, is_degraded

logger = structlog.get_logger().bind(source="consensus")

DEFAULT_THRESHOLD_MINUTES = 120

# Used verbatim when no source answers.
FALLBACK_WINDOWS = (
    (6 * 60, 8 * 60),
    (18 * 60, 20 * 60),
)


def quality_for(agreement_count: int) -> Quality:
    if agreement_count >= 3:
        return Quality.EXCELLENT
    if agreement_count == 2:
        return Quality.GOOD
    return Quality.FAIR


def fallback_entries() -> list[ConsensusCluster]:
    """Static Major windows at dawn and dusk."""
    entries = []
    for start, end in FALLBACK_WINDOWS:
        window = TimeWindow(
            start=start,
            end=end,
            kind=WindowKind.MAJOR,
            source_id=SourceId.FALLBACK,
            weight=1.0,
        )
        entries.append(
            ConsensusCluster(
                kind=WindowKind.MAJOR,
                members=[window],
                merged_start=start,
                merged_end=end,
                agreement_count=0,
                quality=Quality.ESTIMATED,
            )
        )
    return entries


class ConsensusAggregator:
    """Cluster, merge and rank time windows from several sources."""

    def __init__(self, threshold_minutes: float = DEFAULT_THRESHOLD_MINUTES):
        self.threshold_minutes = threshold_minutes

    def aggregate(
        self,
        results: list[SourceResult],
        day: date,
        location: Location,
        min_sources: int = 1,
    ) -> ConsensusSchedule:
        """Build the consensus schedule for one day.

        Args:
            results: Every adapter result, in adapter registration order.
                Failed results only feed the ``errors`` list.
            day: Target date.
            location: Where the windows apply.
            min_sources: Below this many successful sources the schedule is
                flagged as degraded.
        """
        successful = [r for r in results if r.ok]
        errors = [{"source_id": r.source_id, "message": r.error} for r in results if not r.ok]
        used = len(successful)

        if not successful:
            logger.warning("consensus.fallback", attempted=len(results))
            return ConsensusSchedule(
                date=day,
                location=location,
                entries=fallback_entries(),
                confidence_tier=Confidence.LOW,
                sources_used=0,
                sources_attempted=len(results),
                errors=errors,
                is_fallback=True,
                degraded=True,
            )

        majors, minors = self._partition(successful)
        entries = self._cluster(majors, WindowKind.MAJOR) + self._cluster(minors, WindowKind.MINOR)
        # sorted() is stable: ties keep cluster-creation order
        entries = sorted(entries, key=lambda c: c.merged_start)
        entries = self._resolve_overlaps(entries)

        schedule = ConsensusSchedule(
            date=day,
            location=location,
            entries=entries,
            confidence_tier=confidence_tier(used),
            sources_used=used,
            sources_attempted=len(results),
            moon_phase=self._pick(successful, "moon_phase"),
            day_rating=self._pick(successful, "day_rating"),
            errors=errors,
            degraded=is_degraded(used, min_sources),
        )
        logger.info(
            "consensus.complete",
            entries=len(entries),
            sources_used=used,
            sources_attempted=len(results),
            tier=str(schedule.confidence_tier),
        )
        return schedule

    @staticmethod
    def _partition(results: Iterable[SourceResult]) -> tuple[list[TimeWindow], list[TimeWindow]]:
        majors: list[TimeWindow] = []
        minors: list[TimeWindow] = []
        for result in results:
            for window in result.windows:
                if window.kind == WindowKind.MAJOR:
                    majors.append(window)
                else:
                    minors.append(window)
        return majors, minors

    def _cluster(self, windows: list[TimeWindow], kind: WindowKind) -> list[ConsensusCluster]:
        groups: list[list[TimeWindow]] = []
        for window in windows:
            for group in groups:
                mean_start = sum(w.start for w in group) / len(group)
                if abs(window.start - mean_start) <= self.threshold_minutes:
                    group.append(window)
                    break
            else:
                groups.append([window])
        return [self._merge(group, kind) for group in groups]

    @staticmethod
    def _merge(group: list[TimeWindow], kind: WindowKind) -> ConsensusCluster:
        if len(group) == 1:
            merged_start, merged_end = group[0].start, group[0].end
        else:
            total_weight = sum(w.weight for w in group)
            merged_start = sum(w.start * w.weight for w in group) / total_weight
            merged_end = sum(w.end * w.weight for w in group) / total_weight

        agreement = len({w.source_id for w in group})
        return ConsensusCluster(
            kind=kind,
            members=list(group),
            merged_start=merged_start,
            merged_end=merged_end,
            agreement_count=agreement,
            quality=quality_for(agreement),
        )

    @staticmethod
    def _resolve_overlaps(entries: list[ConsensusCluster]) -> list[ConsensusCluster]:
        """Remove same-kind overlap, keeping the better-supported cluster intact.

        Greedy clustering compares starts only, so long windows more than the
        threshold apart can still overlap once merged. Clusters are visited by
        agreement (highest first, ties by start order). Each one loses the
        span already held by kept clusters of its kind; if that splits it, the
        longest remaining piece survives (ties to the earlier piece). A cluster
        clipped to nothing is dropped. Members and agreement never change.
        """
        order = sorted(range(len(entries)), key=lambda i: (-entries[i].agreement_count, i))
        kept: dict[WindowKind, list[tuple[float, float]]] = {}
        resolved = []
        for i in order:
            entry = entries[i]
            taken = kept.setdefault(entry.kind, [])
            pieces = [(entry.merged_start, entry.merged_end)]
            for t_start, t_end in taken:
                remaining = []
                for p_start, p_end in pieces:
                    if t_end <= p_start or t_start >= p_end:
                        remaining.append((p_start, p_end))
                        continue
                    if p_start < t_start:
                        remaining.append((p_start, t_start))
                    if t_end < p_end:
                        remaining.append((t_end, p_end))
                pieces = remaining
            if not pieces:
                logger.warning(
                    "consensus.cluster_absorbed",
                    kind=str(entry.kind),
                    sources=entry.sources,
                    agreement=entry.agreement_count,
                )
                continue
            # max() returns the first of equal lengths; pieces are in time order
            start, end = max(pieces, key=lambda p: p[1] - p[0])
            if (start, end) != (entry.merged_start, entry.merged_end):
                logger.debug("consensus.cluster_clipped", kind=str(entry.kind), sources=entry.sources)
            entry.merged_start, entry.merged_end = start, end
            taken.append((start, end))
            resolved.append((start, i, entry))
        return [entry for _, _, entry in sorted(resolved, key=lambda r: (r[0], r[1]))]

    @staticmethod
    def _pick(results: list[SourceResult], attr: str) -> Optional[object]:
        """First non-null value from the highest-confidence result, ties by input order."""
        best = None
        best_rank = -1
        for result in results:
            value = getattr(result, attr)
            if value is None:
                continue
            rank = Confidence(result.confidence).rank
            if rank > best_rank:
                best, best_rank = value, rank
        return best
