from fastapi import APIRouter, Depends

from services.vault.src.vault.db.repository import OperationsRepository
from services.vault.src.vault.domain.registry import normalize_address
from services.vault.src.vault.routes.dependencies import get_operations_repository
from services.vault.src.vault.schemas.responses import OperationResponse, OperationsResponse

router = APIRouter(tags=["operations"])


@router.get("/operations/{user_address}", response_model=OperationsResponse)
def get_user_operations(
    user_address: str,
    repository: OperationsRepository = Depends(get_operations_repository),
) -> OperationsResponse:
    """Committed deposits, withdrawals, borrows and repayments, oldest first."""
    user = normalize_address(user_address)
    return OperationsResponse(
        user_address=user,
        operations=[
            OperationResponse(
                kind=op.kind.value,
                user_address=op.user_address,
                asset_address=op.asset_address,
                requested_amount=str(op.requested_amount),
                actual_amount=str(op.actual_amount),
                scaled_delta=str(op.scaled_delta),
                refund=str(op.refund),
                timestamp=op.timestamp,
            )
            for op in repository.get_operations(user)
        ],
    )
