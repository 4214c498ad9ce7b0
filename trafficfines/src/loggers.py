from typing import Optional
from trafficfines.src.db import AccessToken
from trafficfines.src import openobserve
from trafficfines.src.schemas import RequestInfo


def logEvent(
    token: Optional[AccessToken],
    requestInfo: RequestInfo,
    data: dict,
) -> None:
    """
    Log an event to OpenObserve with request and user context.

    Args:
        token (AccessToken | None): Authenticated user token, None for public endpoints.
        requestInfo (RequestInfo): Metadata about the current request.
        data (dict): Additional event-specific details to include in the log.
            Callers must leave out password digests, access tokens and OTP codes.

    Notes:
        - Automatically attaches `_app_id`, `_method`, `_path` and `_user_id`.
    """
    logDetails = {
        "_method": requestInfo.method,
        "_path": requestInfo.path,
        "_app_id": requestInfo.app_id,
    }
    if isinstance(token, AccessToken):
        logDetails["_user_id"] = token.user_id

    logDetails.update(data)
    openobserve.logEvent(logDetails)
