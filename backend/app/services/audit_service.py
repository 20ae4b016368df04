"""
Bill Audit Service.

Glues the audit core to the API:
1. Vision model extraction (for uploaded files)
2. Normalization and audit against a rate card snapshot
3. Learning from the audited bill, run after the response is sent
"""

import logging
import time
from typing import Any, Mapping, Optional

from ml.audit.audit_engine import AuditResult, audit_bill, normalize_bill
from ml.audit.exceptions import InputMalformedError, StorageUnavailableError
from ml.audit.feedback import LearningReport, learn_from_bill
from ml.audit.rate_card import RateCardStore
from ml.audit.tier_table import CityTier
from ml.extraction.bill_extractor import ExtractionError, extract_bill
from ml.llm.llm_wrapper import LLMProvider

from app.core.metrics import (
    track_audit_result,
    track_extraction,
    track_learning,
    track_rejected_bill,
)
from app.core.sentry import capture_learning_failure

logger = logging.getLogger(__name__)


class BillAuditService:
    """
    Audits bills against a shared rate card store.

    The store is injected so the API, tests and scripts can each supply
    their own (JSON file, in-memory, ...).
    """

    def __init__(self, store: RateCardStore, overcharge_multiplier: float = 1.5):
        self.store = store
        self.overcharge_multiplier = overcharge_multiplier

    def _rate_card_snapshot(self) -> dict:
        try:
            return self.store.snapshot()
        except StorageUnavailableError as e:
            # Audits never fail because history is unreadable
            logger.warning(f"Rate card unavailable, using tier prices only: {e}")
            return {}

    def audit(
        self,
        raw_bill: Mapping[str, Any],
        tier_override: Optional[CityTier] = None,
        source: str = "json",
    ) -> AuditResult:
        """
        Audit an extracted bill.

        Args:
            raw_bill: Bill dict as produced by extraction.
            tier_override: Force a pricing tier (e.g. GOVERNMENT_SCHEME).
            source: Where the bill came from, for metrics ("upload", "json").

        Returns:
            AuditResult: Complete audited bill.

        Raises:
            InputMalformedError: If the bill cannot be audited.
        """
        start_time = time.perf_counter()

        try:
            bill = normalize_bill(raw_bill)
        except InputMalformedError as e:
            logger.warning(f"Rejected malformed bill ({e.field}): {e}")
            track_rejected_bill(e.field)
            raise

        result = audit_bill(
            bill,
            self._rate_card_snapshot(),
            tier_override=tier_override,
            overcharge_multiplier=self.overcharge_multiplier,
        )

        track_audit_result(
            tier=result.tier.value,
            source=source,
            flagged_count=len(result.flagged_items),
            potential_savings=result.potential_savings,
            duration_seconds=time.perf_counter() - start_time,
        )
        return result

    def analyze_upload(
        self,
        file_bytes: bytes,
        mime_type: str,
        provider: LLMProvider,
        filename: str = "bill",
        tier_override: Optional[CityTier] = None,
    ) -> AuditResult:
        """
        Extract a bill from an uploaded file and audit it.

        Raises:
            ExtractionError: If the vision model could not read the bill.
            InputMalformedError: If the extracted bill cannot be audited.
        """
        start_time = time.perf_counter()
        try:
            raw_bill = extract_bill(file_bytes, mime_type, provider=provider, filename=filename)
        except ExtractionError:
            track_extraction(time.perf_counter() - start_time, success=False)
            raise
        track_extraction(time.perf_counter() - start_time, success=True)

        return self.audit(raw_bill, tier_override=tier_override, source="upload")

    def learn(self, result: AuditResult) -> Optional[LearningReport]:
        """
        Feed an audited bill back into the rate card.

        Runs as a background task after the response; every failure is
        logged and reported, none is raised.
        """
        try:
            report = learn_from_bill(result, self.store)
        except Exception as e:
            logger.exception(f"Learning from bill failed: {e}")
            capture_learning_failure(e, result)
            return None

        try:
            rate_card_size = self.store.service_count()
        except StorageUnavailableError:
            rate_card_size = None
        track_learning(
            report.observations_recorded,
            report.observations_failed,
            rate_card_size=rate_card_size,
        )
        if not report.ok:
            logger.error(f"Learning completed with errors: {report.errors}")
        return report
