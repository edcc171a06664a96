"""
Subscription and support models
"""
from typing import Optional, Literal
from pydantic import Field

from models.common import CamelModel


class CheckoutRequest(CamelModel):
    plan_type: Literal["starter", "gold", "platinum", "enterprise"]
    interval: Literal["month", "year", "lifetime"] = "month"
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class PortalRequest(CamelModel):
    return_url: Optional[str] = None


class EnterpriseInquiryRequest(CamelModel):
    name: str = Field(..., min_length=1)
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    message: str = Field(..., min_length=1)
