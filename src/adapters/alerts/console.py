"""
Console reconciliation reporter adapter - Implements ReconciliationReporter protocol.

This module provides a log-based implementation of the domain's
reconciliation port, emitting a tagged record for every held
authorization that has no matching registration.
"""

import logging

from src.domain.exceptions import OrphanedAuthorization

logger = logging.getLogger(__name__)


class ConsoleReconciliationReporter:
    """
    Implements ReconciliationReporter protocol via logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The record is logged at ERROR level with a fixed tag so operators and
    a reconciliation job can find it in aggregated logs.
    """

    def report_orphaned_authorization(self, orphan: OrphanedAuthorization) -> None:
        """
        Log a held authorization that has no registration.

        Args:
            orphan: Authorization id, event id, email and timestamp of the failure
        """
        logger.error(
            "[ORPHANED_AUTHORIZATION] Authorization: %s Event: %s Email: %s At: %s",
            orphan.authorization_id,
            orphan.event_id,
            orphan.email,
            orphan.occurred_at.isoformat(),
        )
