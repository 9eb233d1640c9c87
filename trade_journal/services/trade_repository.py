from decimal import Decimal
from typing import Annotated, List, Optional
import logging
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, delete, desc
from ..models.trade import Trade, TradeSide
from ..errors import InvalidInput, Internal, NotFound, validation_message
from ..logging_config import get_audit_logger

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

# Matches the Numeric(20, 8) columns on Trade
Price = Annotated[Decimal, Field(max_digits=20, decimal_places=8)]

# Largest id a 64-bit INTEGER primary key can hold
MAX_TRADE_ID = 2**63 - 1


class TradeCreate(BaseModel):
    """Fields accepted when journaling a trade (sl/tp are the wire names)"""

    model_config = ConfigDict(extra="forbid")

    pair: str
    side: TradeSide
    entry: Price
    sl: Optional[Price] = None
    tp: Optional[Price] = None
    result: Price = Decimal("0")
    note: Optional[str] = None

    @field_validator('sl', 'tp', 'note', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        # Form posts send empty strings for untouched inputs
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('result', mode='before')
    @classmethod
    def default_result(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return Decimal("0")
        return v

    @field_validator('pair')
    @classmethod
    def normalize_pair(cls, v):
        v = v.strip().upper()
        if len(v) > 20:
            raise ValueError('Pair is too long (max 20 characters)')
        return v

    @field_validator('side', mode='before')
    @classmethod
    def normalize_side(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


REQUIRED_FIELDS = ("pair", "side", "entry")


def parse_trade_fields(data: dict) -> TradeCreate:
    """Validate a loosely typed body (JSON or form) into TradeCreate"""
    for field in REQUIRED_FIELDS:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidInput("Pair, side, and entry are required")

    try:
        return TradeCreate.model_validate(data)
    except ValidationError as e:
        raise InvalidInput(validation_message(e.errors()))


class TradeRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, owner_id: int, fields: TradeCreate, image_url: Optional[str] = None) -> Trade:
        trade = Trade(
            user_id=owner_id,
            pair=fields.pair,
            side=fields.side.value,
            entry=fields.entry,
            stop_loss=fields.sl,
            take_profit=fields.tp,
            result=fields.result,
            note=fields.note,
            image_url=image_url,
        )
        self.db.add(trade)

        try:
            await self.db.commit()
            await self.db.refresh(trade)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to insert trade for user {owner_id}: {e}")
            raise Internal("Failed to add trade")

        audit_logger.info(
            f"TRADE_ADDED | user_id={owner_id} | trade_id={trade.id} | "
            f"{trade.side} {trade.pair} @ {trade.entry} | result={trade.result}"
        )
        return trade

    async def list(self, owner_id: int) -> List[Trade]:
        query = (
            select(Trade)
            .where(Trade.user_id == owner_id)
            .order_by(desc(Trade.created_at), desc(Trade.id))
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def delete(self, trade_id: int, owner_id: int):
        """Delete a trade owned by owner_id; someone else's trade looks absent"""
        if not 1 <= trade_id <= MAX_TRADE_ID:
            raise NotFound("Trade not found or unauthorized")

        query = delete(Trade).where(Trade.id == trade_id, Trade.user_id == owner_id)
        result = await self.db.execute(query)
        await self.db.commit()

        if result.rowcount == 0:
            raise NotFound("Trade not found or unauthorized")

        audit_logger.info(f"TRADE_DELETED | user_id={owner_id} | trade_id={trade_id}")
