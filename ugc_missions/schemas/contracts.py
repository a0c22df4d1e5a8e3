from decimal import Decimal
from typing import Literal

from pydantic import BaseModel


class ContractCreateRequest(BaseModel):
    amount: Decimal


class ContractPreviewRequest(BaseModel):
    kind: Literal["direct", "mandate"]
    # Application id for direct contracts, mission id for mandate contracts.
    key: str
    amount: Decimal
