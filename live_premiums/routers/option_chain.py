import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from live_premiums.models.premiums import ChainStatus, ChainTableRow, ErrorResponse
from live_premiums.routers.premiums import get_chain_cache
from live_premiums.services.chain_cache import ChainCache, NoChainAvailable
from live_premiums.utils.chain_table import build_chain_table
from live_premiums.utils.premiums import format_expiry

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/option-chain",
    response_model=List[ChainTableRow],
    responses={
        200: {"description": "Successfully retrieved option chain data"},
        500: {"model": ErrorResponse, "description": "Option chain unavailable"},
    },
)
def option_chain(
    expiry: Optional[str] = Query(None),
    chain_cache: ChainCache = Depends(get_chain_cache),
):
    """
    List the cached option chain, one record per strike.

    Args:
        expiry (str): Expiry as YYYYMMDD; all expiries are listed when omitted
            or malformed

    Returns:
        List[ChainTableRow]: Strike, expiry and call/put last traded prices
    """
    request_id = datetime.now().strftime("%Y%m%d%H%M%S%f")
    logger.info(f"Request {request_id} - Processing option chain request, expiry={expiry}")

    try:
        chain = chain_cache.get_current()
        table = build_chain_table(chain, format_expiry(expiry))
        response_data = table.to_dict(orient="records")

        logger.info(f"Request {request_id} - Returning {len(response_data)} option chain rows")
        return response_data

    except NoChainAvailable as e:
        logger.error(f"Request {request_id} - {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "No chain available"},
        )

    except Exception as e:
        logger.error(f"Request {request_id} - Unexpected error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "An unexpected error occurred while processing your request"},
        )


@router.get("/chain-status", response_model=ChainStatus)
def chain_status(chain_cache: ChainCache = Depends(get_chain_cache)):
    """Report the age and size of the cached option chain."""
    cache_status = chain_cache.status()
    return ChainStatus(
        has_snapshot=cache_status.has_snapshot,
        is_fresh=cache_status.is_fresh,
        ttl_seconds=cache_status.ttl_seconds,
        fetched_at=cache_status.fetched_at,
        age_seconds=cache_status.age_seconds,
        row_count=cache_status.row_count,
    )
