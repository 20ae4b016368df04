#!/usr/bin/env python3
"""
BillBiopsy - Audit Demo

Walks through the adaptive audit cycle on an in-memory rate card:
a Mumbai bill is audited against metro ceilings, its charged prices
are learned, and a second bill is audited against the learned prices.

Usage:
    python run_demo.py
    python run_demo.py --pause    # wait for Enter between steps
"""

import argparse
import sys
from pathlib import Path

# Add project to path
sys.path.insert(0, str(Path(__file__).parent))

from ml.audit import (
    CityTier,
    InMemoryRateCardStore,
    audit_bill,
    get_audit_summary,
    get_tier_rates,
    learn_from_bill,
)


# Colors
class C:
    G = '\033[92m'   # Green
    Y = '\033[93m'   # Yellow
    R = '\033[91m'   # Red
    B = '\033[94m'   # Blue
    BOLD = '\033[1m'
    END = '\033[0m'


MUMBAI_BILL = {
    "hospital_name": "City Care Hospital",
    "patient_name": "Rajesh Sharma",
    "bill_date": "2024-03-20",
    "city": "Mumbai",
    "line_items": [
        {"service": "Private Room Rent", "price": 7500, "quantity": 3},
        {"service": "ICU Charges", "price": 9000, "quantity": 2},
        {"service": "MRI Brain", "price": 12000},
        {"service": "Doctor Consultation", "price": 1200},
    ],
}

FOLLOWUP_BILL = {
    "hospital_name": "Harbour Multispeciality",
    "patient_name": "Anita Desai",
    "bill_date": "2024-04-02",
    "city": "Mumbai",
    "line_items": [
        {"service": "Private Room Rent", "price": 9000},
        {"service": "MRI Brain", "price": 14000},
    ],
}


class Demo:
    def __init__(self, interactive: bool = False):
        self.interactive = interactive
        self.store = InMemoryRateCardStore()

    def pause(self, msg="Press Enter to continue..."):
        if self.interactive:
            input(f"\n{C.Y}{msg}{C.END}")

    def header(self, title: str):
        print(f"\n{C.BOLD}{C.B}{'=' * 70}{C.END}")
        print(f"{C.BOLD}{C.B}  {title}{C.END}")
        print(f"{C.BOLD}{C.B}{'=' * 70}{C.END}\n")

    def show_tiers(self):
        self.header("TIER CEILINGS")
        print(f"  {'Tier':<20} {'Room':>8} {'Consult':>8} {'ICU':>8} {'MRI':>8}")
        print(f"  {'-' * 56}")
        for tier in CityTier:
            rates = get_tier_rates(tier)
            print(
                f"  {tier.value:<20} {rates['room_private']:>8,} {rates['consultation']:>8,} "
                f"{rates['icu']:>8,} {rates['mri']:>8,}"
            )
        self.pause()

    def audit_and_learn(self, title: str, bill: dict):
        self.header(title)
        result = audit_bill(bill, self.store.snapshot())
        print(get_audit_summary(result))

        color = C.R if result.flagged_items else C.G
        print(f"\n  {color}{len(result.flagged_items)} item(s) flagged{C.END}")

        report = learn_from_bill(result, self.store)
        print(f"  Learned {report.observations_recorded} price observation(s)")
        self.pause()
        return result

    def show_rate_card(self):
        self.header("LEARNED RATE CARD")
        for key, entry in sorted(self.store.snapshot().items()):
            print(f"  {key:<25} avg ₹{entry.average_price:>10,.2f}  ({len(entry.observations)} obs)")
        self.pause()

    def show_scheme_comparison(self):
        self.header("GOVERNMENT SCHEME COMPARISON")
        result = audit_bill(
            MUMBAI_BILL,
            rate_card={},
            tier_override=CityTier.GOVERNMENT_SCHEME,
        )
        print(get_audit_summary(result))

    def run(self):
        self.show_tiers()
        self.audit_and_learn("FIRST AUDIT (tier ceilings)", MUMBAI_BILL)
        self.show_rate_card()
        self.audit_and_learn("SECOND AUDIT (learned prices)", FOLLOWUP_BILL)
        self.show_scheme_comparison()
        print(f"\n{C.G}Demo complete.{C.END}\n")


def main():
    parser = argparse.ArgumentParser(description="BillBiopsy audit demo")
    parser.add_argument("--pause", action="store_true", help="Wait for Enter between steps")
    args = parser.parse_args()

    try:
        Demo(interactive=args.pause).run()
    except KeyboardInterrupt:
        print(f"\n\n{C.Y}Demo interrupted.{C.END}\n")


if __name__ == "__main__":
    main()
