"""BaseService — shared foundation for linkctl services.

Every service receives a :class:`Workspace` at construction time. The
workspace owns the link type registry, plugin manager, abbreviation tables
and link store; services turn domain outcomes into ServiceResults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from linkctl.services.result import ErrorCode, ServiceResult

if TYPE_CHECKING:
    from linkctl.infrastructure.org_document import OrgDocument
    from linkctl.infrastructure.workspace import Workspace

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service-layer classes.

    Usage::

        class LinkService(BaseService):
            def parse(self, path: Path) -> ServiceResult:
                doc = self._load(path, "parse")
                ...
    """

    def __init__(self, workspace: Workspace) -> None:
        self._ws = workspace

    def _load(self, path: Path | str, op: str) -> OrgDocument | ServiceResult:
        """Load *path*, or return a ``NO_FILE`` failure for *op*."""
        p = Path(path)
        try:
            return self._ws.load_document(p)
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Cannot read %s: %s", p, exc)
            return self._fail(op, ErrorCode.NO_FILE, f"Cannot read file: {p}", path=str(p))

    @staticmethod
    def _fail(op: str, code: ErrorCode, message: str, **detail: object) -> ServiceResult:
        return ServiceResult.failure(op, code, message, **detail)
