"""Request dependencies shared by the business rule routers.

Tests override these through ``app.dependency_overrides`` to pin the clock
or the rule constants.
"""

from datetime import datetime
from typing import Annotated

from fastapi import Depends

from tenure.core.config import settings
from tenure.engine.rules import BusinessRules
from tenure.models.base import utc_now


def get_business_rules() -> BusinessRules:
    return settings.business_rules


def get_now() -> datetime:
    return utc_now()


RulesDep = Annotated[BusinessRules, Depends(get_business_rules)]
NowDep = Annotated[datetime, Depends(get_now)]
