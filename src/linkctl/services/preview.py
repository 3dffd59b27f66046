"""PreviewService — scan a file for previewable links and drain the queue.

The CLI has no display, so a preview "succeeds" when the type's preview
capability accepts the link (for files: an existing image). Batching and
ordering are exactly what an interactive host would see.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from linkctl.domain.preview import BatchReport, PreviewScheduler
from linkctl.infrastructure.org_document import OrgDocument
from linkctl.infrastructure.regions import InMemoryRegionHost
from linkctl.services.base import BaseService
from linkctl.services.result import ErrorCode, ServiceResult
from linkctl.services.telemetry import trace_span, traced


class PreviewService(BaseService):
    """Runs the preview scheduler over whole files."""

    def scheduler_for(
        self,
        doc: OrgDocument,
        regions: InMemoryRegionHost,
        *,
        batch_size: int | None = None,
    ) -> PreviewScheduler:
        """Scheduler wired to *doc*, its region host and the workspace registry."""
        cfg = self._ws.settings.preview
        expander = self._ws.expander_for(doc)
        scheduler = PreviewScheduler(
            doc,
            self._ws.registry,
            regions,
            batch_size=batch_size or cfg.batch_size,
            delay=cfg.delay,
            expand=lambda raw: expander.expand(raw).text,
        )
        # Stale previews are released in old coordinates before spans shift.
        regions.attach(doc)
        return scheduler

    @traced
    def preview(
        self,
        path: Path | str,
        *,
        include_described: bool | None = None,
        batch_size: int | None = None,
    ) -> ServiceResult:
        doc = self._load(path, "preview")
        if not isinstance(doc, OrgDocument):
            return doc
        if batch_size is not None and batch_size < 1:
            return self._fail(
                "preview",
                ErrorCode.INVALID_BATCH_SIZE,
                "Batch size must be at least 1",
                batch_size=batch_size,
            )
        if include_described is None:
            include_described = self._ws.settings.preview.include_described

        regions = InMemoryRegionHost()
        scheduler = self.scheduler_for(doc, regions, batch_size=batch_size)
        queued = scheduler.schedule_region(0, len(doc.text), include_described=include_described)
        with trace_span("drain") as span:
            reports = scheduler.drain_all()
            if span is not None:
                span.annotate("batches", len(reports))

        previews = [item for i, report in enumerate(reports) for item in _report_items(i, report)]
        previews.sort(key=lambda item: item["start"])
        return ServiceResult(
            ok=True,
            op="preview",
            data={
                "path": str(doc.path),
                "queued": queued,
                "batches": len(reports),
                "batch_size": scheduler.batch_size,
                "succeeded": sum(len(r.succeeded) for r in reports),
                "failed": sum(len(r.failed) for r in reports),
                "previews": previews,
            },
        )


def _report_items(batch: int, report: BatchReport) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for ok, tasks in ((True, report.succeeded), (False, report.failed)):
        for task in tasks:
            items.append(
                {
                    "batch": batch,
                    "type": task.token.type,
                    "path": task.path,
                    "start": task.token.start,
                    "end": task.token.end,
                    "ok": ok,
                }
            )
    return items
