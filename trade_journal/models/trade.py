from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import Column, Integer, String, Text, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


def utc_now():
    return datetime.now(timezone.utc)


class Trade(Base):
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    pair = Column(String(20), nullable=False)
    side = Column(String(4), nullable=False)  # 'BUY' or 'SELL'
    entry = Column(Numeric(20, 8), nullable=False)
    stop_loss = Column(Numeric(20, 8), nullable=True)
    take_profit = Column(Numeric(20, 8), nullable=True)
    result = Column(Numeric(20, 8), nullable=False, default=0)  # Realized P&L
    note = Column(Text, nullable=True)
    image_url = Column(String(255), nullable=True)  # Relative URL of the chart screenshot
    # Application-assigned, microsecond resolution
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    # Relationships
    user = relationship("User", back_populates="trades")
