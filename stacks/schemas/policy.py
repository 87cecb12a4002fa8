from decimal import Decimal
from pydantic import BaseModel, Field
from stacks import configs

class Policy(BaseModel):
    """Circulation rules in force; defaults come from stacks.configs."""
    loan_period_days: int = Field(default=configs.LOAN_PERIOD_DAYS, gt=0)
    hold_period_days: int = Field(default=configs.HOLD_PERIOD_DAYS, gt=0)
    loan_limit: int = Field(default=configs.LOAN_LIMIT, ge=0)
    max_renewals: int = Field(default=configs.MAX_RENEWALS, ge=0)
    fine_daily_rate: Decimal = Field(default=Decimal(configs.FINE_DAILY_RATE), ge=0)
    fine_cap: Decimal = Field(default=Decimal(configs.FINE_CAP), ge=0)
    block_extend_on_holds: bool = configs.BLOCK_EXTEND_ON_HOLDS
    allow_hold_when_available: bool = configs.ALLOW_HOLD_WHEN_AVAILABLE
    expiry_notice_hours: int = Field(default=configs.EXPIRY_NOTICE_HOURS, gt=0)
