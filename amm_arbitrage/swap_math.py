"""
Constant-product swap math on integer amounts.

Formulas follow the Uniswap V2 pair contract with the fee embedded in the
input amount:

    amountInWithFee = amountIn * (10000 - feeBps)
    amountOut = amountInWithFee * reserveOut / (reserveIn * 10000 + amountInWithFee)

All quantities are Python ints in the token's smallest unit, so nothing
overflows or rounds silently. Output amounts round down and input amounts
round up, which never quotes the trader more than the curve allows.
"""

from decimal import Decimal

from .utils import BPS_DENOMINATOR


def _fee_multiplier(fee_bps: int) -> int:
    if not 0 <= fee_bps < BPS_DENOMINATOR:
        raise ValueError(f"fee_bps must be in [0, 10000): {fee_bps}")
    return BPS_DENOMINATOR - fee_bps


def get_amount_out(
    amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int = 30
) -> int:
    """
    Calculate output amount for an exact-input swap.

    Args:
        amount_in: Input token amount
        reserve_in: Reserve of input token
        reserve_out: Reserve of output token
        fee_bps: Pool fee in basis points

    Returns:
        Output amount, or 0 for non-positive input or an empty pool
    """
    if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return 0

    amount_in_with_fee = amount_in * _fee_multiplier(fee_bps)
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * BPS_DENOMINATOR + amount_in_with_fee
    return numerator // denominator


def get_amount_in(
    amount_out: int, reserve_in: int, reserve_out: int, fee_bps: int = 30
) -> int:
    """
    Calculate the input required to receive ``amount_out``.

    Returns 0 when the request is impossible: non-positive output, an empty
    pool, or an output that would drain the whole ``reserve_out``.
    """
    if amount_out <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return 0
    if amount_out >= reserve_out:
        return 0

    numerator = reserve_in * amount_out * BPS_DENOMINATOR
    denominator = (reserve_out - amount_out) * _fee_multiplier(fee_bps)
    return numerator // denominator + 1


def price_impact(
    amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int = 30
) -> Decimal:
    """
    Price impact of a trade in percent.

    ``(spot - execution) / spot * 100`` where spot is reserve_out/reserve_in
    and execution is amount_out/amount_in. Includes the fee. Informational
    only.
    """
    if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return Decimal(0)

    spot = Decimal(reserve_out) / Decimal(reserve_in)
    amount_out = get_amount_out(amount_in, reserve_in, reserve_out, fee_bps)
    execution = Decimal(amount_out) / Decimal(amount_in)
    return (spot - execution) / spot * 100


def profit_bps(start_amount: int, end_amount: int) -> int:
    """Profit in whole basis points of ``start_amount``; 0 for no profit."""
    if start_amount <= 0:
        return 0
    diff = end_amount - start_amount
    if diff <= 0:
        return 0
    return diff * BPS_DENOMINATOR // start_amount


def min_amount_out(amount_out: int, slippage_bps: int) -> int:
    """Lower bound on output after applying a slippage tolerance."""
    return amount_out * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def spot_price(
    reserve0: int, reserve1: int, decimals0: int = 18, decimals1: int = 18
) -> Decimal:
    """Price of one whole token0 expressed in token1, decimals adjusted."""
    if reserve0 <= 0 or reserve1 <= 0:
        return Decimal(0)
    r0 = Decimal(reserve0) / (Decimal(10) ** decimals0)
    r1 = Decimal(reserve1) / (Decimal(10) ** decimals1)
    return r1 / r0
