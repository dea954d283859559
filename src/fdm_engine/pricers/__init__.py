from .fd_engines import (
    FdPriceResult,
    fd_black_scholes_price,
    fd_black_scholes_solver,
    fd_heston_solver,
)

__all__ = [
    "fd_black_scholes_solver",
    "fd_heston_solver",
    "FdPriceResult",
    "fd_black_scholes_price",
]
