"""
Translation of service-layer exceptions into HTTP errors.

Usage in a route:

    with service_errors():
        application = await service.submit(application_id, current_user)
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, status

from app.core.errors import (
    ApplicationNotFound,
    ConflictError,
    DistrictAccessDenied,
    GatewayError,
    WorkflowError,
)

logger = logging.getLogger(__name__)


def _detail(error: WorkflowError):
    if error.extra:
        return {"message": error.message, **error.extra}
    return error.message


@contextmanager
def service_errors() -> Iterator[None]:
    """
    Map domain exceptions raised inside the block to HTTPException.

    HTTPException passes through untouched; anything unexpected is
    logged with its traceback and reported as a 500.
    """
    try:
        yield
    except HTTPException:
        raise
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_detail(e))
    except WorkflowError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_detail(e))
    except ApplicationNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except DistrictAccessDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except GatewayError as e:
        logger.error(f"Payment gateway error: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )
