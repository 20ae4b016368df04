"""
Audit engine for detecting overpriced line items on hospital bills.

Takes a bill as extracted by the vision model, resolves a standard
(fair) price for every line item, flags items charged well above it,
and totals what the patient could reclaim.

The engine is a pure function of the bill and a rate card snapshot:
nothing is stored here. Learning from the audited bill happens
separately in ml.audit.feedback.
"""

import logging
import math
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping, Optional, Union

from ml.audit.city_classifier import classify_city
from ml.audit.exceptions import InputMalformedError
from ml.audit.price_resolver import resolve_standard_price
from ml.audit.rate_card import LedgerEntry
from ml.audit.tier_table import CityTier, TierRates, get_tier_label, get_tier_rates

logger = logging.getLogger(__name__)

# Charges above this multiple of the standard price are flagged
OVERCHARGE_MULTIPLIER = 1.5

# Upstream models are not consistent about key names
SERVICE_KEYS = ("service", "name", "description")
PRICE_KEYS = ("price", "charged_price", "amount")
SUSPICIOUS_KEYS = ("flagged", "is_overpriced", "suspicious")

_CURRENCY_PATTERN = re.compile(r"(₹|rs\.?|inr|rupees|,|\s)", re.IGNORECASE)


@dataclass
class BillLineItem:
    """A line item as extracted, before auditing."""
    service: str
    price: float
    quantity: int = 1
    suspicious: bool = False


@dataclass
class NormalizedBill:
    """An extracted bill in canonical shape."""
    line_items: list[BillLineItem]
    hospital_name: str = ""
    patient_name: str = ""
    bill_date: str = ""
    city: str = ""
    total_amount: Optional[float] = None


@dataclass
class AuditedLineItem:
    """A line item annotated with its standard price and flag."""
    service: str
    quantity: int
    price: float
    standard_price: float
    flagged: bool
    savings: float
    suspicious: bool = False
    indeterminate: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AuditResult:
    """Audited bill returned to callers and handed to complaint drafting."""
    hospital_name: str
    patient_name: str
    bill_date: str
    city: str
    total_amount: float
    potential_savings: float
    city_tier: str
    tier: CityTier
    rate_tier: TierRates
    line_items: list[AuditedLineItem] = field(default_factory=list)

    @property
    def flagged_items(self) -> list[AuditedLineItem]:
        return [item for item in self.line_items if item.flagged]

    def to_dict(self) -> dict:
        return {
            "hospital_name": self.hospital_name,
            "patient_name": self.patient_name,
            "bill_date": self.bill_date,
            "city": self.city,
            "total_amount": self.total_amount,
            "potential_savings": self.potential_savings,
            "city_tier": self.city_tier,
            "tier": self.tier.value,
            "rate_tier": dict(self.rate_tier),
            "line_items": [item.to_dict() for item in self.line_items],
        }

    def to_bill_record(self, record_id: str, timestamp: str) -> dict:
        """Shape stored in the bill history."""
        return {
            "id": record_id,
            "timestamp": timestamp,
            "hospital_name": self.hospital_name,
            "patient_name": self.patient_name,
            "bill_date": self.bill_date,
            "city": self.city,
            "total_amount": self.total_amount,
            "potential_savings": self.potential_savings,
            "line_items": [item.to_dict() for item in self.line_items],
        }


def _first_present(item: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None and value != "":
            return value
    return None


def _parse_amount(value: Any, field_name: str) -> float:
    """Parse a price that may carry a currency symbol or separators."""
    if isinstance(value, bool):
        raise InputMalformedError(f"{field_name} must be a number, got {value!r}", field=field_name)
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        cleaned = _CURRENCY_PATTERN.sub("", str(value))
        try:
            amount = float(cleaned)
        except ValueError:
            raise InputMalformedError(
                f"{field_name} is not a valid amount: {value!r}", field=field_name
            )
    if not math.isfinite(amount):
        raise InputMalformedError(f"{field_name} must be a finite number, got {value!r}", field=field_name)
    if amount < 0:
        raise InputMalformedError(f"{field_name} must be non-negative, got {amount}", field=field_name)
    return amount


def _parse_quantity(value: Any) -> int:
    if value is None or value == "":
        return 1
    try:
        quantity = int(float(value))
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Unreadable quantity {value!r}, defaulting to 1")
        return 1
    return max(quantity, 1)


def _parse_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _as_text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def normalize_bill(raw_bill: Mapping[str, Any]) -> NormalizedBill:
    """
    Coerce an extracted bill into canonical shape.

    Accepts ``service``/``name`` and ``price``/``charged_price`` key
    variants, currency-formatted prices, and missing optional fields
    (names default to "", quantity to 1, the upstream flag to False).

    Args:
        raw_bill: Bill dictionary as returned by the extraction model.

    Returns:
        NormalizedBill: Canonical bill.

    Raises:
        InputMalformedError: If line items are missing or not a list, an
            item is not an object, has no service name, or has an invalid price.
    """
    if not isinstance(raw_bill, Mapping):
        raise InputMalformedError("Bill must be a JSON object", field="bill")

    raw_items = raw_bill.get("line_items")
    if raw_items is None:
        raw_items = raw_bill.get("items")
    if not isinstance(raw_items, list):
        raise InputMalformedError("line_items must be a list")

    line_items = []
    for index, raw_item in enumerate(raw_items):
        item_field = f"line_items[{index}]"
        if not isinstance(raw_item, Mapping):
            raise InputMalformedError(f"{item_field} must be an object", field=item_field)

        service = _as_text(_first_present(raw_item, SERVICE_KEYS))
        if not service:
            raise InputMalformedError(
                f"{item_field} is missing a service name", field=f"{item_field}.service"
            )

        raw_price = _first_present(raw_item, PRICE_KEYS)
        price = 0.0 if raw_price is None else _parse_amount(raw_price, f"{item_field}.price")

        line_items.append(BillLineItem(
            service=service,
            price=price,
            quantity=_parse_quantity(raw_item.get("quantity")),
            suspicious=_parse_flag(_first_present(raw_item, SUSPICIOUS_KEYS)),
        ))

    raw_total = raw_bill.get("total_amount")
    total_amount = None
    if raw_total is not None and raw_total != "":
        total_amount = _parse_amount(raw_total, "total_amount")

    return NormalizedBill(
        line_items=line_items,
        hospital_name=_as_text(raw_bill.get("hospital_name")),
        patient_name=_as_text(raw_bill.get("patient_name")),
        bill_date=_as_text(raw_bill.get("bill_date")),
        city=_as_text(raw_bill.get("city")),
        total_amount=total_amount,
    )


def audit_line_item(
    item: BillLineItem,
    city: str,
    rate_card: Mapping[str, LedgerEntry],
    tier_override: Optional[CityTier] = None,
    overcharge_multiplier: float = OVERCHARGE_MULTIPLIER,
) -> AuditedLineItem:
    """
    Resolve the standard price for one item and decide whether to flag it.

    An item is flagged when its price exceeds ``overcharge_multiplier``
    times the standard price, or when extraction already marked it
    suspicious. A non-positive standard price makes the ratio test
    indeterminate; only the upstream flag applies then.
    """
    # Judge against the same figure the result reports
    standard_price = round(resolve_standard_price(item.service, city, rate_card, tier_override), 2)

    indeterminate = standard_price <= 0
    overpriced = False
    if indeterminate:
        logger.warning(
            f"Standard price for '{item.service}' is {standard_price}, skipping ratio check"
        )
    else:
        overpriced = item.price / standard_price > overcharge_multiplier

    flagged = overpriced or item.suspicious
    savings = 0.0
    if flagged and not indeterminate:
        savings = round(max(item.price - standard_price, 0.0), 2)

    return AuditedLineItem(
        service=item.service,
        quantity=item.quantity,
        price=item.price,
        standard_price=standard_price,
        flagged=flagged,
        savings=savings,
        suspicious=item.suspicious,
        indeterminate=indeterminate,
    )


def audit_bill(
    bill: Union[NormalizedBill, Mapping[str, Any]],
    rate_card: Mapping[str, LedgerEntry],
    tier_override: Optional[CityTier] = None,
    overcharge_multiplier: float = OVERCHARGE_MULTIPLIER,
) -> AuditResult:
    """
    Audit a bill against standard prices.

    Args:
        bill: Normalized bill, or a raw extracted bill dict.
        rate_card: Rate card snapshot (service key -> LedgerEntry).
        tier_override: Price every item at this tier instead of the
            city's tier.
        overcharge_multiplier: Flagging threshold as a multiple of the
            standard price.

    Returns:
        AuditResult: Annotated bill with totals and potential savings.

    Raises:
        InputMalformedError: If a raw bill cannot be normalized.

    Example:
        >>> result = audit_bill({"city": "Mumbai", "line_items": [
        ...     {"service": "Room Rent", "price": 6000}]}, rate_card={})
        >>> result.line_items[0].standard_price
        4000.0
    """
    if not isinstance(bill, NormalizedBill):
        bill = normalize_bill(bill)

    tier = tier_override or classify_city(bill.city)
    logger.info(
        f"Starting audit: hospital='{bill.hospital_name}', city='{bill.city}', "
        f"tier={tier.value}, items={len(bill.line_items)}"
    )

    audited_items = [
        audit_line_item(item, bill.city, rate_card, tier_override, overcharge_multiplier)
        for item in bill.line_items
    ]

    if bill.total_amount is not None:
        total_amount = bill.total_amount
    else:
        total_amount = round(sum(item.price for item in audited_items), 2)

    potential_savings = round(
        sum(item.savings for item in audited_items if item.flagged), 2
    )

    result = AuditResult(
        hospital_name=bill.hospital_name,
        patient_name=bill.patient_name,
        bill_date=bill.bill_date,
        city=bill.city,
        total_amount=total_amount,
        potential_savings=potential_savings,
        city_tier=get_tier_label(tier),
        tier=tier,
        rate_tier=get_tier_rates(tier),
        line_items=audited_items,
    )

    logger.info(
        f"Audit complete: flagged={len(result.flagged_items)}/{len(audited_items)}, "
        f"potential_savings=₹{potential_savings:.2f}"
    )
    return result


def get_audit_summary(result: AuditResult) -> str:
    """
    Generate a human-readable summary of an audit.

    Args:
        result: Audit result.

    Returns:
        str: Formatted summary string.
    """
    lines = [
        f"Hospital: {result.hospital_name or 'Not specified'}",
        f"City: {result.city or 'Not specified'} ({result.city_tier})",
        f"Total Amount: ₹{result.total_amount:,.2f}",
        f"Potential Savings: ₹{result.potential_savings:,.2f}",
        f"Flagged Items: {len(result.flagged_items)}/{len(result.line_items)}",
    ]

    if result.line_items:
        lines.append("")
        lines.append("Line Items:")
        for item in result.line_items:
            marker = "FLAGGED" if item.flagged else "ok"
            lines.append(
                f"  [{marker}] {item.service}: charged ₹{item.price:,.2f}, "
                f"standard ₹{item.standard_price:,.2f}"
            )

    return "\n".join(lines)
