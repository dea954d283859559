from .black_scholes import (
    call_price,
    cash_or_nothing_price,
    put_price,
    vanilla_greeks,
    vanilla_price,
)

__all__ = [
    "call_price",
    "put_price",
    "vanilla_price",
    "cash_or_nothing_price",
    "vanilla_greeks",
]
