"""Refund policies for calculating cancellation refunds.

A refund policy is any callable taking the lead time (check-in instant
minus cancellation instant) and the settled amount in cents, and returning
the refund in cents. TieredRefundPolicy is the configurable default:

- Full refund (100%): cancel 14+ days before check-in
- Partial refund (50%): cancel 7-13 days before check-in
- No refund (0%): cancel less than 7 days before check-in

All amounts are in cents to avoid floating-point issues.
"""

import datetime as dt
from collections.abc import Callable, Sequence
from typing import NamedTuple, TypedDict

RefundPolicy = Callable[[dt.timedelta, int], int]


class RefundTier(NamedTuple):
    """Refund percentage granted when the lead time is at least min_lead."""

    min_lead: dt.timedelta
    percent: int
    name: str


class RefundCalculation(TypedDict):
    """Result of refund policy calculation."""

    refund_amount: int  # Amount in cents
    refund_percentage: int
    policy_tier: str  # tier name, or "none"
    lead_time: dt.timedelta
    description: str


class TieredRefundPolicy:
    """Step-function refund policy over cancellation lead time.

    Tiers are checked from the longest lead time down; the first tier
    whose min_lead the lead time reaches wins. Below every tier the refund
    is zero.
    """

    def __init__(self, tiers: Sequence[RefundTier]) -> None:
        for tier in tiers:
            if not 0 <= tier.percent <= 100:
                raise ValueError(f"Refund percent out of range: {tier.percent}")
        self.tiers = sorted(tiers, key=lambda t: t.min_lead, reverse=True)

    @classmethod
    def standard(
        cls,
        full_refund_days: int = 14,
        partial_refund_days: int = 7,
        partial_refund_percent: int = 50,
    ) -> "TieredRefundPolicy":
        """Full refund beyond full_refund_days, partial beyond partial_refund_days."""
        return cls(
            [
                RefundTier(dt.timedelta(days=full_refund_days), 100, "full"),
                RefundTier(dt.timedelta(days=partial_refund_days), partial_refund_percent, "partial"),
            ]
        )

    def calculate_refund_amount(
        self,
        payment_amount: int,
        lead_time: dt.timedelta,
    ) -> RefundCalculation:
        """Calculate refund amount based on cancellation lead time.

        Args:
            payment_amount: Settled payment amount in cents
            lead_time: Check-in instant minus cancellation instant (negative after check-in)

        Returns:
            RefundCalculation with refund amount and policy details
        """
        days = lead_time.days
        for tier in self.tiers:
            if lead_time >= tier.min_lead:
                # Integer division keeps cents exact
                refund_amount = (payment_amount * tier.percent) // 100
                return RefundCalculation(
                    refund_amount=refund_amount,
                    refund_percentage=tier.percent,
                    policy_tier=tier.name,
                    lead_time=lead_time,
                    description=(
                        f"{tier.name.capitalize()} refund ({tier.percent}%): cancelled "
                        f"{days} days before check-in (policy: {tier.min_lead.days}+ days)"
                    ),
                )

        if lead_time < dt.timedelta(0):
            description = "No refund: cancelled after check-in"
        else:
            description = f"No refund (0%): cancelled {days} days before check-in"
        return RefundCalculation(
            refund_amount=0,
            refund_percentage=0,
            policy_tier="none",
            lead_time=lead_time,
            description=description,
        )

    def __call__(self, lead_time: dt.timedelta, payment_amount: int) -> int:
        return self.calculate_refund_amount(payment_amount, lead_time)["refund_amount"]

    def get_policy_description(self) -> str:
        """Human-readable description of the policy."""
        lines = ["Cancellation Policy:"]
        for tier in self.tiers:
            lines.append(f"• {tier.min_lead.days}+ days before check-in: {tier.percent}% refund")
        lines.append("• Otherwise: No refund")
        return "\n".join(lines)


def no_refund_policy(lead_time: dt.timedelta, payment_amount: int) -> int:  # noqa: ARG001
    """Non-refundable rate."""
    return 0
