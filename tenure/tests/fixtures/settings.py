"""Settings fixtures for testing with isolated configuration.

Each fixture returns a fresh Settings instance (not the global singleton),
so tests can vary configuration without touching the environment.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal

import pytest

from tenure.core.config import Settings


@pytest.fixture
def test_settings_factory() -> Callable[..., Settings]:
    """Factory for creating isolated Settings instances.

    Usage:
        def test_production(test_settings_factory):
            settings = test_settings_factory(environment="production")
            assert settings.validate_config()
    """

    def _factory(**overrides: object) -> Settings:
        fields = {
            "database_url": "sqlite+aiosqlite:///:memory:",
            "environment": "test",
            "log_level": "debug",
            "activity_logging_enabled": True,
            "app_name": "tenure",
            "sqlalchemy_echo": False,
            "enable_metrics": True,
            "pagination_page_size": 50,
            "pagination_page_size_max": 200,
            "cors_allowed_origins_raw": "http://localhost:3000",
            "rate_limit_enabled": True,
            "rate_limit_per_minute": 100,
            "rate_limit_per_hour": 2000,
            "request_id_header": "X-Request-ID",
            "include_request_context_in_logs": False,
            "joining_fee": Decimal("300"),
            "monthly_fee": Decimal("25"),
            "payout_threshold": Decimal("100000"),
            "reward_per_winner": Decimal("100000"),
            "retention_fee": Decimal("300"),
            "business_launch_date": date(2024, 1, 1),
            "payout_months_required": 12,
            "billing_cycle_days": 30,
            "payment_grace_days": 30,
            "max_winners_per_payout": 2,
            "required_payout_approvals": 2,
            "tax_withholding_rate": Decimal("0.24"),
            "membership_removal_delay_months": 12,
            "time_requirement_payments": 12,
        }
        fields.update(overrides)

        # Fields are declared with env aliases; model_construct skips alias
        # handling and validation, which is fine for inputs the test controls.
        return Settings.model_construct(**fields)  # type: ignore[arg-type]

    return _factory


@pytest.fixture
def test_settings(test_settings_factory: Callable[..., Settings]) -> Settings:
    return test_settings_factory()
