import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from live_premiums.models.premiums import ErrorResponse, LivePremiums, PremiumPair
from live_premiums.services.chain_cache import ChainCache, NoChainAvailable
from live_premiums.utils.premiums import format_expiry, resolve_premium

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter()


class InvalidRequest(Exception):
    """Raised when required query parameters are missing"""
    pass


def get_chain_cache(request: Request) -> ChainCache:
    return request.app.state.chain_cache


def require_params(message: str, *values: Optional[str]) -> None:
    if not all(value and value.strip() for value in values):
        raise InvalidRequest(message)


@router.get(
    "/fetch-live",
    response_model=LivePremiums,
    responses={
        200: {"description": "Premiums for the sell and hedge legs"},
        400: {"model": ErrorResponse, "description": "Missing sellCall or sellPut"},
        500: {"model": ErrorResponse, "description": "Option chain unavailable"},
    },
)
def fetch_live(
    sell_call: Optional[str] = Query(None, alias="sellCall"),
    sell_put: Optional[str] = Query(None, alias="sellPut"),
    hedge_call: Optional[str] = Query(None, alias="hedgeCall"),
    hedge_put: Optional[str] = Query(None, alias="hedgePut"),
    expiry: Optional[str] = Query(None),
    chain_cache: ChainCache = Depends(get_chain_cache),
):
    """
    Get last traded premiums for a short strangle and its optional hedges.

    Args:
        sellCall (str): Strike of the call being sold
        sellPut (str): Strike of the put being sold
        hedgeCall (str): Strike of the hedge call, premium 0 when omitted
        hedgePut (str): Strike of the hedge put, premium 0 when omitted
        expiry (str): Expiry as YYYYMMDD; rows of any expiry are used when omitted

    Returns:
        LivePremiums: Premium of every leg and the expiry used
    """
    request_id = datetime.now().strftime("%Y%m%d%H%M%S%f")
    logger.info(f"Request {request_id} - fetch-live sellCall={sell_call} sellPut={sell_put} "
                f"hedgeCall={hedge_call} hedgePut={hedge_put} expiry={expiry}")

    try:
        require_params("sellCall and sellPut required", sell_call, sell_put)

        formatted_expiry = format_expiry(expiry) if expiry else None
        chain = chain_cache.get_current()

        result = LivePremiums(
            sellCallPremium=resolve_premium(chain, sell_call, "CE", formatted_expiry),
            sellPutPremium=resolve_premium(chain, sell_put, "PE", formatted_expiry),
            hedgeCallPremium=resolve_premium(chain, hedge_call, "CE", formatted_expiry) if hedge_call else 0,
            hedgePutPremium=resolve_premium(chain, hedge_put, "PE", formatted_expiry) if hedge_put else 0,
            expiry=formatted_expiry or "any",
        )
        logger.info(f"Request {request_id} - Successfully resolved live premiums")
        return result

    except InvalidRequest as e:
        logger.error(f"Request {request_id} - Invalid parameters: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})

    except NoChainAvailable as e:
        logger.error(f"Request {request_id} - {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "No chain available"},
        )

    except Exception as e:
        logger.error(f"Request {request_id} - fetch-live error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to fetch live premiums"},
        )


@router.get(
    "/fetch-premiums",
    response_model=PremiumPair,
    responses={
        400: {"model": ErrorResponse, "description": "Missing call or put"},
        500: {"model": ErrorResponse, "description": "Option chain unavailable"},
    },
)
def fetch_premiums(
    call: Optional[str] = Query(None),
    put: Optional[str] = Query(None),
    chain_cache: ChainCache = Depends(get_chain_cache),
):
    """Get last traded premiums for one call strike and one put strike, any expiry."""
    request_id = datetime.now().strftime("%Y%m%d%H%M%S%f")
    logger.info(f"Request {request_id} - fetch-premiums call={call} put={put}")

    try:
        require_params("call and put required", call, put)

        chain = chain_cache.get_current()
        return PremiumPair(
            callPremium=resolve_premium(chain, call, "CE"),
            putPremium=resolve_premium(chain, put, "PE"),
        )

    except InvalidRequest as e:
        logger.error(f"Request {request_id} - Invalid parameters: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})

    except NoChainAvailable as e:
        logger.error(f"Request {request_id} - {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "fetch_failed", "message": str(e)},
        )

    except Exception as e:
        logger.error(f"Request {request_id} - fetch-premiums error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "fetch_failed", "message": "Failed to fetch premiums"},
        )
