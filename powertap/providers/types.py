from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any


class PaymentRail(str, Enum):
    STRIPE_TERMINAL = "stripe_terminal"
    NAYAX = "nayax"


@dataclass(frozen=True)
class ChargeRule:
    max_per_money: float
    one_money_unit: float
    hour_unit: int
    report_loss: float

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "ChargeRule":
        return cls(
            max_per_money=_number(data.get("maxPerMoney"), 0.0),
            one_money_unit=_number(data.get("oneMoneyUnit"), 0.0),
            hour_unit=int(_number(data.get("hourUnit"), 1)),
            report_loss=_number(data.get("reportLoss"), 0.0),
        )


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return float(default)
    try:
        number = float(value)
    except OverflowError:
        return float(default)
    # NaN and the infinities are valid JSON to Python's parser.
    return number if math.isfinite(number) else float(default)
