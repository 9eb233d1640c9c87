from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ..models.trade import Trade

TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class TradeStats:
    total: int
    wins: int
    losses: int
    winrate: Decimal
    total_pnl: Decimal


def to_decimal(value) -> Decimal:
    """Convert a stored result to Decimal without going through binary float repr"""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_stats(results: Iterable[Optional[Decimal]]) -> TradeStats:
    """
    Aggregate realized P&L values.

    A trade with a result of exactly zero is neither a win nor a loss but
    still counts toward the total used for the win rate.
    """
    total = 0
    wins = 0
    losses = 0
    total_pnl = Decimal("0")

    for raw in results:
        value = to_decimal(raw)
        total += 1
        total_pnl += value
        if value > 0:
            wins += 1
        elif value < 0:
            losses += 1

    if total:
        winrate = (Decimal(wins) * 100 / Decimal(total)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    else:
        winrate = Decimal("0")

    return TradeStats(
        total=total,
        wins=wins,
        losses=losses,
        winrate=winrate,
        total_pnl=total_pnl,
    )


async def stats(db: AsyncSession, owner_id: int) -> TradeStats:
    query = select(Trade.result).where(Trade.user_id == owner_id)
    result = await db.execute(query)
    return compute_stats(result.scalars().all())
