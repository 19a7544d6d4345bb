from .campaign_evaluator import (
    AppliedCampaign,
    CampaignEvaluation,
    CampaignEvaluator,
    ConditionGap,
    NearestCampaign,
)
from .order_lifecycle import OrderLifecycle, OrderTransition
from .shipping_calculator import ShippingCalculator, ShippingResult, ShippingSource
from .tax_calculator import LineTax, TaxBreakdown, TaxCalculator, TaxType

__all__ = [
    "AppliedCampaign",
    "CampaignEvaluation",
    "CampaignEvaluator",
    "ConditionGap",
    "NearestCampaign",
    "OrderLifecycle",
    "OrderTransition",
    "ShippingCalculator",
    "ShippingResult",
    "ShippingSource",
    "LineTax",
    "TaxBreakdown",
    "TaxCalculator",
    "TaxType",
]
