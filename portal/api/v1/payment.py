"""
WatchPay recharge endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session
from portal.database import get_db
from portal.api.deps import get_current_user
from portal.models.user import User
from portal.schemas.payment import WatchPayCreate
from portal.services.payment_service import (
    CallbackRejected, create_watchpay_order, get_order, handle_watchpay_callback,
    order_to_item, resolve_recharge_amount,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/watchpay/create")
def create_order(
    body: WatchPayCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a PENDING recharge order and hand the client the gateway's pay info."""
    amount = resolve_recharge_amount(
        current_user,
        amount=body.amount,
        amount_needed=body.amountNeeded,
        required=body.required,
    )
    return create_watchpay_order(db, current_user, amount)


@router.post("/watchpay/callback", response_class=PlainTextResponse)
async def watchpay_callback(request: Request, db: Session = Depends(get_db)):
    """
    Asynchronous notification from the gateway (form encoded).
    The gateway only treats the literal body "success" as acknowledged.
    """
    try:
        if request.headers.get("content-type", "").startswith("application/json"):
            params = await request.json()
        else:
            form = await request.form()
            params = dict(form)
    except ValueError:
        params = None

    if not isinstance(params, dict):
        return PlainTextResponse("Bad request", status_code=status.HTTP_400_BAD_REQUEST)

    logger.info("WatchPay callback received for %s", params.get("mchOrderNo"))
    try:
        ack = handle_watchpay_callback(db, params)
    except CallbackRejected as e:
        return PlainTextResponse(e.text, status_code=e.status_code)
    return PlainTextResponse(ack)


@router.get("/watchpay/status/{order_id}")
def order_status(order_id: str, db: Session = Depends(get_db)):
    """Poll an order by id or merchant order number."""
    order = get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return {"ok": True, "status": order.status, "order": order_to_item(order)}
