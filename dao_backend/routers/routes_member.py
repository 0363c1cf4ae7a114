from fastapi import APIRouter, Depends, Path

from dao_backend.governance.context import GovernanceContext
from dao_backend.governance.members import get_or_create_member
from dao_backend.utils.constants import EVM_ADDRESS_PATTERN

from .deps import get_governance, ok

router = APIRouter(prefix="/member", tags=["member"])


@router.get("/{wallet_address}")
def read_member(
    wallet_address: str = Path(..., pattern=EVM_ADDRESS_PATTERN),
    ctx: GovernanceContext = Depends(get_governance),
) -> dict:
    """Return the member for a wallet, registering it on first sight."""
    return ok(get_or_create_member(ctx, wallet_address))
