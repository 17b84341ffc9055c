"""Loan and lease estimates from fixed rate tables."""

from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from toyotron.ai.tools.base import Tool, ToolContext

# Simple add-on interest by loan term
RATE_BY_TERM: dict[int, float] = {36: 0.05, 60: 0.08, 72: 0.10}
DEFAULT_RATE = 0.08

LEASE_MONTHLY_FACTOR = 0.012
LEASE_DOWN_FACTOR = 0.05
LEASE_TERM_MONTHS = 36

DISCLAIMER = (
    "These are rough estimates for illustration only. Actual rates, payments, and lease "
    "terms depend on credit approval, taxes, fees, and dealer offers. Contact a Toyota "
    "dealer for an official quote."
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class FinanceInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    vehicle_price: float = Field(ge=0, description="Vehicle price in dollars")
    down_payment_percent: float = Field(
        default=10, ge=0, le=100, description="Down payment as a percent of the price"
    )
    loan_term_months: Literal[36, 48, 60, 72] = Field(
        default=60, description="Loan term in months"
    )


def estimate_financing(
    vehicle_price: float, down_payment_percent: float = 10, loan_term_months: int = 60
) -> dict[str, Any]:
    """Pure loan/lease estimate. Amounts are whole dollars."""
    down_payment = round_half_up(vehicle_price * down_payment_percent / 100)
    loan_amount = vehicle_price - down_payment
    rate = RATE_BY_TERM.get(loan_term_months, DEFAULT_RATE)
    total_with_interest = round_half_up(loan_amount * (1 + rate))
    monthly_payment = round_half_up(total_with_interest / loan_term_months)

    return {
        "vehiclePrice": vehicle_price,
        "loan": {
            "downPayment": down_payment,
            "loanAmount": loan_amount,
            "termMonths": loan_term_months,
            "interestRate": rate,
            "totalWithInterest": total_with_interest,
            "monthlyPayment": monthly_payment,
        },
        "lease": {
            "monthlyPayment": round_half_up(vehicle_price * LEASE_MONTHLY_FACTOR),
            "downPayment": round_half_up(vehicle_price * LEASE_DOWN_FACTOR),
            "termMonths": LEASE_TERM_MONTHS,
        },
        "disclaimer": DISCLAIMER,
    }


class EstimateFinancingTool(Tool):
    input_model = FinanceInput

    @property
    def name(self) -> str:
        return "estimateFinancing"

    @property
    def description(self) -> str:
        return (
            "Estimate monthly loan and lease payments for a vehicle price. Use the msrp "
            "(or invoice if msrp is unavailable) from searchToyotaTrims results. Always "
            "mention that the numbers are estimates."
        )

    async def execute(self, params: FinanceInput, context: ToolContext) -> dict[str, Any]:
        return estimate_financing(
            params.vehicle_price, params.down_payment_percent, params.loan_term_months
        )
