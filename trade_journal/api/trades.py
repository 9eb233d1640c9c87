from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime, timezone
import json
import logging
from ..database import get_db
from ..errors import InvalidInput
from ..models.trade import Trade
from ..services.attachment_handler import AttachmentHandler
from ..services.token_issuer import TokenClaims
from ..services.trade_repository import TradeRepository, parse_trade_fields
from .auth import get_current_claims

logger = logging.getLogger(__name__)

router = APIRouter()

IMAGE_FIELD = "image"


# Pydantic models
class TradeResponse(BaseModel):
    id: int
    user_id: int
    pair: str
    side: str
    entry: float
    sl: Optional[float]
    tp: Optional[float]
    result: float
    note: Optional[str]
    image_url: Optional[str]
    created_at: datetime


class TradeCreatedResponse(BaseModel):
    message: str
    tradeId: int


class MessageResponse(BaseModel):
    message: str


def as_utc(value: datetime) -> datetime:
    # SQLite drops the offset, stored values are always UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_response(trade: Trade) -> TradeResponse:
    return TradeResponse(
        id=trade.id,
        user_id=trade.user_id,
        pair=trade.pair,
        side=trade.side,
        entry=float(trade.entry),
        sl=float(trade.stop_loss) if trade.stop_loss is not None else None,
        tp=float(trade.take_profit) if trade.take_profit is not None else None,
        result=float(trade.result or 0),
        note=trade.note,
        image_url=trade.image_url,
        created_at=as_utc(trade.created_at),
    )


# Dependencies
def get_trade_repository(db: AsyncSession = Depends(get_db)) -> TradeRepository:
    return TradeRepository(db)


def get_attachment_handler(request: Request) -> AttachmentHandler:
    return request.app.state.attachment_handler


async def read_trade_body(request: Request):
    """
    Read a create-trade body sent either as a form (with an optional image
    part) or as a JSON object. Returns the plain fields and the upload.
    """
    content_type = request.headers.get("content-type", "")
    upload = None

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        data = {}
        for key, value in form.multi_items():
            if key == IMAGE_FIELD:
                if isinstance(value, UploadFile) and value.filename:
                    upload = value
                elif isinstance(value, str) and value:
                    raise InvalidInput("image must be sent as a file")
                continue
            data[key] = value
        return data, upload

    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidInput("Malformed JSON body")

    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data, upload


@router.get("", response_model=List[TradeResponse])
async def get_trades(
    claims: TokenClaims = Depends(get_current_claims),
    repo: TradeRepository = Depends(get_trade_repository),
):
    """Get the caller's trades, newest first"""
    trades = await repo.list(claims.id)
    return [to_response(trade) for trade in trades]


@router.post("", response_model=TradeCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_trade(
    request: Request,
    claims: TokenClaims = Depends(get_current_claims),
    repo: TradeRepository = Depends(get_trade_repository),
    attachments: AttachmentHandler = Depends(get_attachment_handler),
):
    """Journal a trade, optionally with a chart screenshot"""
    data, upload = await read_trade_body(request)
    fields = parse_trade_fields(data)

    image_url = await attachments.store(upload) if upload is not None else None

    try:
        trade = await repo.create(claims.id, fields, image_url=image_url)
    except Exception:
        if image_url:
            attachments.remove(image_url)
        raise

    logger.info(f"📝 {claims.username} journaled {trade.side} {trade.pair} (trade {trade.id})")
    return TradeCreatedResponse(message="Trade added successfully", tradeId=trade.id)


@router.delete("/{trade_id}", response_model=MessageResponse)
async def delete_trade(
    trade_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    repo: TradeRepository = Depends(get_trade_repository),
):
    """Delete one of the caller's trades. The attachment file is left in place."""
    await repo.delete(trade_id, claims.id)
    return MessageResponse(message="Trade deleted successfully")
