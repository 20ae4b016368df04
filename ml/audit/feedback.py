"""
Learning feedback loop.

After a bill is audited, its charged prices are written back into the
rate card so future audits compare against what hospitals actually
bill, and the bill is appended to the history.

Recording the charged price (rather than the standard price) means a
market that consistently overcharges pulls its own benchmark upward.
Which price is recorded is decided by ``observation_price`` so that
policy can be swapped without touching the audit engine.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from ml.audit.audit_engine import AuditedLineItem, AuditResult
from ml.audit.exceptions import StorageUnavailableError
from ml.audit.rate_card import RateCardStore

logger = logging.getLogger(__name__)

ObservationPolicy = Callable[[AuditedLineItem], float]


def charged_price(item: AuditedLineItem) -> float:
    """
    Default observation policy: learn from the price the hospital charged.

    Args:
        item: Audited line item.

    Returns:
        float: The charged price, flagged or not.
    """
    return item.price


@dataclass
class LearningReport:
    """Outcome of one learning pass."""
    observations_recorded: int = 0
    observations_failed: int = 0
    bill_recorded: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every observation and the history entry were written."""
        return not self.errors


def learn_from_bill(
    result: AuditResult,
    store: RateCardStore,
    observation_price: ObservationPolicy = charged_price,
    record_id: Optional[str] = None,
) -> LearningReport:
    """
    Feed an audited bill back into the rate card and bill history.

    Storage failures are logged and reported, never raised: the audit
    this learns from has already been returned to the user.

    Args:
        result: Completed audit.
        store: Reference price store to update.
        observation_price: Price to record for each item.
        record_id: History id for the bill (generated if omitted).

    Returns:
        LearningReport: Counts of recorded and failed writes.
    """
    report = LearningReport()
    city = result.city or "unknown"

    for item in result.line_items:
        price = observation_price(item)
        if not price or price <= 0:
            continue
        try:
            store.record_observation(item.service, price, city)
            report.observations_recorded += 1
        except (StorageUnavailableError, ValueError) as e:
            report.observations_failed += 1
            report.errors.append(f"{item.service}: {e}")
            logger.error(f"Failed to record price for '{item.service}': {e}")

    timestamp = datetime.now(timezone.utc).isoformat()
    bill_record = result.to_bill_record(record_id or uuid.uuid4().hex, timestamp)
    try:
        store.record_bill(bill_record)
        report.bill_recorded = True
    except StorageUnavailableError as e:
        report.errors.append(f"history: {e}")
        logger.error(f"Failed to save bill to history: {e}")

    logger.info(
        f"Learned from bill: recorded={report.observations_recorded}, "
        f"failed={report.observations_failed}, history={report.bill_recorded}"
    )
    return report
