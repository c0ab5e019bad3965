"""Model imports for SQLModel metadata discovery.

Alembic autogenerate uses SQLModel.metadata. Importing this module registers all
table models by importing their modules, so keep new models listed here.
"""

from tenure.models.activity_log import ActivityLog
from tenure.models.member import Member
from tenure.models.payment import Payment
from tenure.models.payout import Payout
from tenure.models.subscription import Subscription

__all__ = ["ActivityLog", "Member", "Payment", "Payout", "Subscription"]
