# services/portfolio/currency_converter.py
from __future__ import annotations

from typing import Optional


def convert(value: float, from_currency: Optional[str], to_currency: Optional[str], rate: float) -> float:
    """
    Convert `value` between USD and ARS using a single USD/ARS spot rate
    (ARS per 1 USD).

    Any pair other than USD<->ARS is returned unchanged. That is a policy:
    the app only deals in these two currencies, so an unknown label is
    treated as already being in the display currency.
    """
    src = (from_currency or "").upper()
    dst = (to_currency or "").upper()

    if src == dst:
        return value
    if src == "ARS" and dst == "USD":
        _check_rate(rate)
        return value / rate
    if src == "USD" and dst == "ARS":
        _check_rate(rate)
        return value * rate
    return value


def _check_rate(rate: float) -> None:
    if rate <= 0:
        raise ValueError(f"Exchange rate must be positive, got {rate}")
