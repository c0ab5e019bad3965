"""Business rule constants shared by the queue and payout computations.

The values are immutable once loaded. ``tenure.core.config.Settings`` builds
an instance from the environment; tests construct their own with overrides.

    BR-1  joining fee
    BR-2  monthly fee
    BR-3  payout fund threshold and time requirement after launch
    BR-4  reward per winner
    BR-5  queue ordered by tenure
    BR-6  continuous tenure required for eligibility
    BR-7  retention fee deducted from every payout
    BR-8  default after a missed billing cycle plus grace period
    BR-9  tenure starts with the first qualifying payment
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class BusinessRules(BaseModel, frozen=True):
    joining_fee: Decimal = Field(default=Decimal("300"), gt=0)
    monthly_fee: Decimal = Field(default=Decimal("25"), gt=0)
    payout_threshold: Decimal = Field(default=Decimal("100000"), gt=0)
    reward_per_winner: Decimal = Field(default=Decimal("100000"), gt=0)
    retention_fee: Decimal = Field(default=Decimal("300"), ge=0)
    business_launch_date: date = date(2024, 1, 1)
    payout_months_required: int = Field(default=12, ge=0)
    billing_cycle_days: int = Field(default=30, ge=1)
    payment_grace_days: int = Field(default=30, ge=0)
    max_winners_per_payout: int = Field(default=2, ge=1)
    required_payout_approvals: int = Field(default=2, ge=1)
    tax_withholding_rate: Decimal = Field(default=Decimal("0.24"), ge=0, lt=1)
    membership_removal_delay_months: int = Field(default=12, ge=0)
    time_requirement_payments: int = Field(default=12, ge=0)

    @property
    def default_after_days(self) -> int:
        """Days without a payment after which a member is in default."""
        return self.billing_cycle_days + self.payment_grace_days


DEFAULT_RULES = BusinessRules()
