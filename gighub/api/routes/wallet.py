"""
Wallet API Routes
=================

  GET  /api/v1/wallet            -- Balance and visible history
  POST /api/v1/wallet/withdraw   -- Request a withdrawal
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query, status

from gighub.api.deps import CurrentUser, DBSession, NotifierDep
from gighub.api.errors import unwrap
from gighub.api.schemas.wallet import TransactionOut, WalletOut, WithdrawRequest
from gighub.services import walletService

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("", response_model=WalletOut, summary="Wallet balance and history")
async def get_wallet(
    db: DBSession,
    current_user: CurrentUser,
    user_type: Optional[str] = Query(default=None, pattern=r"^(client|provider)$"),
) -> WalletOut:
    wallet = await walletService.get_wallet(
        db, current_user.id, user_type or current_user.user_type.value
    )
    return WalletOut.model_validate(wallet)


@router.post(
    "/withdraw",
    response_model=TransactionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Request a withdrawal",
)
async def withdraw(
    body: WithdrawRequest,
    db: DBSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
) -> TransactionOut:
    tx = unwrap(
        await walletService.request_withdrawal(
            db, current_user, body.user_type, body.amount, notifier
        )
    )
    return TransactionOut.model_validate(tx)
