"""
Execution layer: fill models, slippage and fee models, and settlement helpers.

FillModel interface with one handler per order kind; DefaultFillModel for
bar-based backtests; explicit Outcome/Fault results instead of exceptions.
"""

from fillsim.execution.fees import FeeModel, NullFeeModel
from fillsim.execution.fill_model import DefaultFillModel, FillModel
from fillsim.execution.price_range import PriceRange, extract_price_range, reference_price
from fillsim.execution.settlement import DiagnosticsSink, apply_decision, log_fault, settle
from fillsim.execution.slippage import (
    BasisPointSlippageModel,
    ConstantSlippageModel,
    NullSlippageModel,
    SlippageModel,
    apply_slippage,
    slippage_model_from_settings,
)
from fillsim.execution.types import (
    DecisionState,
    Fault,
    FaultKind,
    FillModelError,
    FillOutcome,
    FillResult,
    InvalidMarketDataError,
    Outcome,
    UnsupportedOrderError,
)

__all__ = [
    "BasisPointSlippageModel",
    "ConstantSlippageModel",
    "DecisionState",
    "DefaultFillModel",
    "DiagnosticsSink",
    "Fault",
    "FaultKind",
    "FeeModel",
    "FillModel",
    "FillModelError",
    "FillOutcome",
    "FillResult",
    "InvalidMarketDataError",
    "NullFeeModel",
    "NullSlippageModel",
    "Outcome",
    "PriceRange",
    "SlippageModel",
    "UnsupportedOrderError",
    "apply_decision",
    "apply_slippage",
    "extract_price_range",
    "log_fault",
    "reference_price",
    "settle",
    "slippage_model_from_settings",
]
