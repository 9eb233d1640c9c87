from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from ..database import get_db
from ..services import stats_aggregator
from ..services.token_issuer import TokenClaims
from .auth import get_current_claims

router = APIRouter()


class TradingStatsResponse(BaseModel):
    totalTrades: int
    wins: int
    losses: int
    winrate: float
    totalPnl: float


@router.get("", response_model=TradingStatsResponse)
async def get_trading_stats(
    claims: TokenClaims = Depends(get_current_claims), db: AsyncSession = Depends(get_db)
):
    """Get the caller's win/loss statistics, computed fresh on every call"""
    stats = await stats_aggregator.stats(db, claims.id)

    return TradingStatsResponse(
        totalTrades=stats.total,
        wins=stats.wins,
        losses=stats.losses,
        winrate=float(stats.winrate),
        totalPnl=float(stats.total_pnl),
    )
