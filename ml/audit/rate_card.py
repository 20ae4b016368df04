"""
Reference price store (rate card) for learned service prices.

Keeps, per normalized service name, the most recent charged prices seen
on audited bills and their running average. The average is what the
price resolver prefers over static tier ceilings, so the rate card is
how the auditor adapts to real market prices over time.

The store also keeps a bounded audit trail of processed bills. Both
collections live in one document:

    {"bills": [...newest first...], "rateCard": {service_key: entry}}

Two backends:
- InMemoryRateCardStore: process-local, used in tests
- JsonHistoryStore: a JSON file on disk, written atomically
"""

import copy
import json
import logging
import math
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Union

from ml.audit.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)

MAX_PRICES_PER_SERVICE = 50
MAX_HISTORY_BILLS = 100

RateCard = dict  # service key -> LedgerEntry


def normalize_service(service_name: Optional[str]) -> str:
    """
    Normalize a service name into a rate card key.

    Idempotent: normalize_service(normalize_service(x)) == normalize_service(x).

    Args:
        service_name: Service name as printed on the bill.

    Returns:
        str: Lowercased, trimmed key ("" for missing names).
    """
    if not service_name:
        return ""
    return str(service_name).strip().lower()


def _utc_now() -> datetime:
    """Current time in UTC; the default clock for observation timestamps."""
    return datetime.now(timezone.utc)


@dataclass
class PriceObservation:
    """A single charged price seen on an audited bill."""
    price: float
    city: str
    timestamp: str

    def to_dict(self) -> dict:
        """Serialized form stored under an entry's "prices" list."""
        return {"price": self.price, "city": self.city, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> "PriceObservation":
        price = float(data["price"])
        if not math.isfinite(price) or price < 0:
            raise ValueError(f"stored price {price} is not a valid amount")
        return cls(
            price=price,
            city=data.get("city") or "unknown",
            timestamp=data.get("timestamp") or "",
        )


@dataclass
class LedgerEntry:
    """
    Price history for one service.

    Invariant: average_price is the arithmetic mean of the retained
    observations, recomputed on every change.
    """
    service_key: str
    observations: list[PriceObservation] = field(default_factory=list)
    average_price: float = 0.0
    last_updated: Optional[str] = None

    def add(self, observation: PriceObservation, max_observations: int = MAX_PRICES_PER_SERVICE) -> None:
        """Append an observation, evict the oldest beyond the cap, refresh the average."""
        self.observations.append(observation)
        if len(self.observations) > max_observations:
            self.observations = self.observations[-max_observations:]
        self._recompute()
        self.last_updated = observation.timestamp

    def _recompute(self) -> None:
        prices = [obs.price for obs in self.observations]
        self.average_price = sum(prices) / len(prices) if prices else 0.0

    @property
    def prices(self) -> list[float]:
        """
        Retained prices, oldest first.

        Returns:
            list[float]: At most max_observations prices.
        """
        return [obs.price for obs in self.observations]

    def to_dict(self) -> dict:
        """
        Serialize for the history document.

        Returns:
            dict: {"prices": [...], "averagePrice": float, "lastUpdated": str}
        """
        return {
            "prices": [obs.to_dict() for obs in self.observations],
            "averagePrice": self.average_price,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(
        cls,
        service_key: str,
        data: dict,
        max_observations: int = MAX_PRICES_PER_SERVICE,
    ) -> "LedgerEntry":
        """
        Rebuild an entry from the history document.

        Args:
            service_key: Normalized key the entry is stored under.
            data: Serialized entry as written by to_dict.
            max_observations: Retention cap; older prices are dropped.

        Returns:
            LedgerEntry: Entry with its average recomputed.

        Raises:
            KeyError, TypeError, ValueError: If a stored price is unreadable.
        """
        observations = [PriceObservation.from_dict(p) for p in data.get("prices", [])]
        entry = cls(
            service_key=service_key,
            observations=observations[-max_observations:],
            last_updated=data.get("lastUpdated"),
        )
        # Stored averages are not trusted; the mean is derived from the prices
        entry._recompute()
        return entry


class RateCardStore(ABC):
    """
    Base class for reference price stores.

    All reads and writes go through one re-entrant lock, so concurrent
    audits never lose an observation or see a half-updated average.
    State is loaded lazily on first access.
    """

    def __init__(
        self,
        max_prices_per_service: int = MAX_PRICES_PER_SERVICE,
        max_history_bills: int = MAX_HISTORY_BILLS,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.max_prices_per_service = max_prices_per_service
        self.max_history_bills = max_history_bills
        self._clock = clock
        self._lock = threading.RLock()
        self._rate_card: Optional[dict[str, LedgerEntry]] = None
        self._bills: Optional[list[dict]] = None

    @abstractmethod
    def _load(self) -> dict:
        """
        Read the backing document.

        Returns:
            dict: {"bills": list, "rateCard": dict} in serialized form.

        Raises:
            StorageUnavailableError: If the document cannot be read.
        """

    @abstractmethod
    def _persist(self, document: dict) -> None:
        """
        Write the backing document.

        Raises:
            OSError: If the document cannot be written.
        """

    def _ensure_loaded(self) -> None:
        if self._rate_card is not None:
            return

        document = self._load()
        stored_card = document.get("rateCard") or {}
        stored_bills = document.get("bills") or []
        if not isinstance(stored_card, dict):
            raise StorageUnavailableError(
                f"rateCard must be an object, got {type(stored_card).__name__}"
            )
        if not isinstance(stored_bills, list):
            raise StorageUnavailableError(
                f"bills must be a list, got {type(stored_bills).__name__}"
            )

        rate_card = {}
        for key, data in stored_card.items():
            service_key = normalize_service(key)
            if not service_key or not isinstance(data, dict):
                continue
            try:
                rate_card[service_key] = LedgerEntry.from_dict(
                    service_key, data, self.max_prices_per_service
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable rate card entry '{key}': {e}")

        self._rate_card = rate_card
        self._bills = [bill for bill in stored_bills if isinstance(bill, dict)][: self.max_history_bills]
        logger.info(
            f"Loaded rate card: {len(self._rate_card)} services, {len(self._bills)} bills"
        )

    def _document(self) -> dict:
        return {
            "bills": self._bills,
            "rateCard": {key: entry.to_dict() for key, entry in self._rate_card.items()},
        }

    def _flush(self) -> None:
        try:
            self._persist(self._document())
        except OSError as e:
            logger.error(f"Failed to persist rate card: {e}")
            raise StorageUnavailableError(f"Could not write rate card: {e}") from e

    def record_observation(self, service_key: str, price: float, city: Optional[str]) -> None:
        """
        Record a charged price for a service and persist the rate card.

        The in-memory rate card is updated before the write, so later
        audits in this process see the observation even if the write fails.

        Args:
            service_key: Service name (normalized here).
            price: Charged price.
            city: City the bill came from.

        Raises:
            ValueError: If the service name is empty or the price is negative
                or not finite.
            StorageUnavailableError: If the document cannot be read or written.
        """
        key = normalize_service(service_key)
        if not key:
            raise ValueError("service_key must not be empty")
        if not math.isfinite(price) or price < 0:
            raise ValueError(f"price must be a finite non-negative number, got {price}")

        with self._lock:
            self._ensure_loaded()
            observation = PriceObservation(
                price=float(price),
                city=city or "unknown",
                timestamp=self._clock().isoformat(),
            )
            entry = self._rate_card.get(key)
            if entry is None:
                entry = self._rate_card[key] = LedgerEntry(service_key=key)
            entry.add(observation, self.max_prices_per_service)
            logger.debug(f"Recorded {price} for '{key}', average now {entry.average_price:.2f}")
            self._flush()

    def average_price_for(self, service_key: str) -> Optional[float]:
        """Current average price for a service, or None if never observed."""
        key = normalize_service(service_key)
        with self._lock:
            self._ensure_loaded()
            entry = self._rate_card.get(key)
            if entry is None or not entry.observations:
                return None
            return entry.average_price

    def service_count(self) -> int:
        """
        Number of services on the rate card, without copying it.

        Raises:
            StorageUnavailableError: If the document cannot be read.
        """
        with self._lock:
            self._ensure_loaded()
            return len(self._rate_card)

    def snapshot(self) -> dict[str, LedgerEntry]:
        """
        Copy of the full rate card.

        Raises:
            StorageUnavailableError: If the document cannot be read.
        """
        with self._lock:
            self._ensure_loaded()
            return copy.deepcopy(self._rate_card)

    def record_bill(self, bill_record: dict) -> None:
        """
        Add a bill to the audit trail (newest first, bounded).

        Raises:
            StorageUnavailableError: If the document cannot be read or written.
        """
        with self._lock:
            self._ensure_loaded()
            self._bills.insert(0, copy.deepcopy(bill_record))
            del self._bills[self.max_history_bills:]
            self._flush()

    def recent_bills(self, limit: int = 10) -> list[dict]:
        """Most recent bills, newest first."""
        with self._lock:
            self._ensure_loaded()
            return copy.deepcopy(self._bills[:limit])


class InMemoryRateCardStore(RateCardStore):
    """Rate card store without durable storage."""

    def __init__(self, initial: Optional[dict] = None, **kwargs):
        super().__init__(**kwargs)
        self._initial = initial or {"bills": [], "rateCard": {}}

    def _load(self) -> dict:
        return copy.deepcopy(self._initial)

    def _persist(self, document: dict) -> None:
        pass


class JsonHistoryStore(RateCardStore):
    """
    Rate card store backed by a single JSON file.

    Writes go to a temporary file in the same directory which then
    replaces the target, so readers never see a partially written file.
    """

    def __init__(self, path: Union[str, Path], **kwargs):
        super().__init__(**kwargs)
        self.path = Path(path)

    def _load(self) -> dict:
        if not self.path.exists():
            logger.info(f"No history file at {self.path}, starting empty")
            return {"bills": [], "rateCard": {}}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read history file {self.path}: {e}")
            raise StorageUnavailableError(f"Could not read {self.path}: {e}") from e

        if not isinstance(document, dict):
            raise StorageUnavailableError(f"History file {self.path} is not a JSON object")
        return document

    def _persist(self, document: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
