"""Maps failed Results onto HTTP errors."""
from __future__ import annotations

from fastapi import HTTPException

from eligibility.domain.common.result import CONFLICT, NOT_FOUND, Result

_STATUS_BY_CODE = {NOT_FOUND: 404, CONFLICT: 409}


def raise_for_failure(result: Result) -> None:
    if not result.is_success:
        raise HTTPException(status_code=_STATUS_BY_CODE.get(result.code, 400), detail=result.error)
