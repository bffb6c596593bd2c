"""Rule/heuristic analyzer: runs detectors concurrently and merges their findings."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from codescore.cancellation import CancellationToken, Deadline, checkpoint
from codescore.detectors import Detector
from codescore.errors import DetectorFailure, ReviewCancelled, ReviewTimeout
from codescore.models import Finding
from codescore.normalizer import SourceMap

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    findings: list[Finding] = field(default_factory=list)
    failed_detectors: list[str] = field(default_factory=list)


def _run_detector(
    detector: Detector,
    source: SourceMap,
    deadline: Deadline | None,
    cancel_token: CancellationToken | None,
) -> list[Finding]:
    checkpoint(cancel_token, deadline)
    try:
        return list(detector.inspect(source))
    except (ReviewCancelled, ReviewTimeout):
        raise
    except Exception as e:
        raise DetectorFailure(detector.rule_id, e) from e


def merge_findings(buffers: list[list[Finding]], line_count: int) -> list[Finding]:
    """Clamp lines, drop duplicates (same rule and line, keep the most severe), sort."""
    last_line = max(1, line_count)
    merged: dict[tuple[str, int], Finding] = {}
    for buffer in buffers:
        for finding in buffer:
            if finding.line > last_line:
                finding = finding.model_copy(update={"line": last_line})
            key = (finding.rule_id, finding.line)
            current = merged.get(key)
            if current is None or finding.kind.rank < current.kind.rank:
                merged[key] = finding
    return sorted(merged.values(), key=Finding.sort_key)


def analyze(
    source: SourceMap,
    detectors: list[Detector],
    *,
    max_workers: int = 4,
    deadline: Deadline | None = None,
    cancel_token: CancellationToken | None = None,
) -> AnalysisReport:
    """Run every detector over ``source``.

    Each detector writes only to its own buffer; buffers are merged in
    detector order so the result does not depend on thread scheduling.
    A failing detector is logged and excluded. Timeout and cancellation
    propagate as ReviewTimeout / ReviewCancelled.
    """
    if not detectors:
        return AnalysisReport()

    source.warm()
    checkpoint(cancel_token, deadline)
    stop = CancellationToken()
    source.stop = stop

    executor = ThreadPoolExecutor(
        max_workers=min(max_workers, len(detectors)),
        thread_name_prefix="codescore-detector",
    )
    finished = False
    try:
        futures: list[Future] = [
            executor.submit(_run_detector, d, source, deadline, cancel_token) for d in detectors
        ]
        timeout = deadline.remaining() if deadline is not None else None
        done, pending = wait(futures, timeout=timeout)

        buffers: list[list[Finding]] = []
        failed: list[str] = []
        timed_out = bool(pending)
        for detector, future in zip(detectors, futures):
            if future not in done:
                continue
            try:
                buffers.append(future.result())
            except DetectorFailure as e:
                logger.warning(f"{e}; excluding {detector.rule_id}")
                failed.append(detector.rule_id)
            except ReviewTimeout:
                timed_out = True

        if cancel_token is not None and cancel_token.cancelled:
            raise ReviewCancelled("Review was cancelled")
        if timed_out:
            partial = merge_findings(buffers, source.line_count)
            logger.warning(
                f"Review timed out after {deadline.timeout_ms} ms with "
                f"{len(pending)} detector(s) unfinished"
            )
            raise ReviewTimeout(deadline.timeout_ms, partial)

        finished = True
        return AnalysisReport(merge_findings(buffers, source.line_count), failed)
    finally:
        if not finished:
            # detectors still running see this through SourceMap.check()
            stop.cancel()
        executor.shutdown(wait=finished, cancel_futures=True)
