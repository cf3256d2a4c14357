from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


FREE_TIER_LIMIT = 3


class Tier(str, Enum):
    FREE = "free"
    PRO = "pro"


class Account(BaseModel):
    """
    Account carries the subscription tier and the monthly usage counter.

    The counter resets on the first instant of the month after the last
    rollover; `jobs_reset_date` always holds that next boundary.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    email: str = ""
    subscription_tier: Tier = Tier.FREE
    jobs_this_month: int = 0
    jobs_reset_date: datetime
    stripe_customer_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_pro(self) -> bool:
        return self.subscription_tier == Tier.PRO

    def remaining_free_jobs(self) -> Optional[int]:
        """Jobs left this cycle; None means unlimited."""
        if self.is_pro:
            return None
        return max(FREE_TIER_LIMIT - self.jobs_this_month, 0)
