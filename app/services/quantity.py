"""
Quantity normalization against an exchange lot-size filter.

Exchanges reject orders whose quantity is below the instrument's minimum or
is not a whole multiple of its quantity step. Given the filter reported for a
symbol, `normalize_quantity` turns a desired quantity into the largest
compliant quantity not exceeding it (or the minimum, when the desired
quantity is smaller than that).

All arithmetic is done on `Decimal` values built from the decimal text of the
inputs, so 0.3 / 0.1 is exactly 3 and normalizing an already-normalized
quantity returns it unchanged.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP, localcontext
from typing import Any, Dict, Optional, Union

from app.errors import ExchangeError

Number = Union[int, float, str, Decimal]

# enough digits for any realistic quantity at the finest step an exchange reports
PRECISION = 60


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            # str() first so floats keep their shortest repr (0.1, not 0.1000000000000000055...)
            d = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValueError(f"not a number: {value!r}")
    if not d.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return d


def step_decimals(step: Number) -> int:
    """Decimal places implied by the step as written: "0.001" -> 3, "1" -> 0."""
    exponent = _to_decimal(step).as_tuple().exponent
    return max(0, -exponent) if isinstance(exponent, int) else 0


@dataclass(frozen=True)
class LotSizeFilter:
    min_qty: Decimal
    qty_step: Decimal
    decimals: int

    @classmethod
    def from_instrument(cls, instrument: Dict[str, Any]) -> "LotSizeFilter":
        """Build from one entry of /v5/market/instruments-info `result.list`.

        Linear contracts report minOrderQty/qtyStep; some categories use
        minTrdAmt/stepSize instead.
        """
        lot = instrument.get("lotSizeFilter") or {}
        min_text = lot.get("minOrderQty")
        if min_text is None:
            min_text = lot.get("minTrdAmt")
        step_text = lot.get("qtyStep")
        if step_text is None:
            step_text = lot.get("stepSize")

        if step_text is None:
            raise ExchangeError(f"lotSizeFilter has no quantity step: {lot}")
        try:
            step = _to_decimal(step_text)
            min_qty = _to_decimal(min_text) if min_text is not None else Decimal(0)
        except ValueError as e:
            raise ExchangeError(f"malformed lotSizeFilter {lot}: {e}")
        if step <= 0:
            raise ExchangeError(f"lotSizeFilter quantity step must be positive, got {step_text}")

        return cls(min_qty=min_qty, qty_step=step, decimals=step_decimals(step_text))

    def normalize(self, raw_qty: Number) -> float:
        return normalize_quantity(raw_qty, self.min_qty, self.qty_step, self.decimals)


def normalize_quantity(raw_qty: Number, min_qty: Number, step: Number, decimals: Optional[int] = None) -> float:
    """Clamp to min_qty, otherwise floor to a multiple of step; round to the step's precision.

    >>> normalize_quantity(0.127, "0.01", "0.01")
    0.12
    >>> normalize_quantity(0.003, "0.01", "0.01")
    0.01
    """
    raw = _to_decimal(raw_qty)
    minimum = _to_decimal(min_qty)
    step_d = _to_decimal(step)
    if step_d <= 0:
        raise ValueError(f"step must be positive, got {step}")
    if decimals is None:
        decimals = step_decimals(step)

    with localcontext() as ctx:
        ctx.prec = PRECISION
        try:
            if raw < minimum:
                qty = minimum
            else:
                qty = (raw / step_d).to_integral_value(rounding=ROUND_FLOOR) * step_d
                # a step larger than the raw quantity floors to zero
                if qty < minimum:
                    qty = minimum

            qty = qty.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
        except InvalidOperation:
            raise ValueError(f"quantity {raw_qty!r} is out of range for step {step}")
    # a minimum finer than the step must not be rounded away
    if qty < minimum:
        qty = minimum
    return float(qty)
