from __future__ import annotations

"""
Playback Access • Share-link endpoint
=====================================

Route Index
-----------
- POST /playback/access   → decide access for a token + proof, return a share link
- POST /                  → same handler, kept for clients of the original root path

Request body
------------
    {"tokenId": "tok1",
     "authSig": {"sig": "0x…", "derivedVia": "delegated-action",
                 "signedMessage": "{…}", "address": "0xAbC…"}}

Responses
---------
- 200 `{"data": "<share link>"}` with no-store headers.
- 400 unreadable body / signed payload / undeterminable video.
- 401 denied (one message for every cause).
- 404 unknown token.
- 500 Redis, database or storage failure.
"""

import logging

from fastapi import APIRouter, Depends, Request

from playback_access.api.deps import get_access_engine
from playback_access.api.http_utils import get_client_ip, json_no_store
from playback_access.schemas.access import AccessRequest, ErrorResponse, ShareLinkResponse
from playback_access.services.access import AccessDecisionEngine, AuthProof

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Playback Access"])
root_router = APIRouter(tags=["Playback Access"])
__all__ = ["router", "root_router", "request_playback_access"]

_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Bad request"},
    401: {"model": ErrorResponse, "description": "Unauthorized"},
    404: {"model": ErrorResponse, "description": "Video metadata not found"},
    500: {"model": ErrorResponse, "description": "Dependency failure"},
}


@router.post(
    "/playback/access",
    summary="Authorize playback and return a time-limited share link",
    response_model=ShareLinkResponse,
    responses=_RESPONSES,
)
async def request_playback_access(
    payload: AccessRequest,
    request: Request,
    engine: AccessDecisionEngine = Depends(get_access_engine),
):
    proof = AuthProof.from_auth_sig(payload.auth_sig)
    logger.info(
        "Playback access request token=%s method=%s address=%s ip=%s",
        payload.token_id or "-",
        proof.derivation_method or "-",
        proof.claimed_address or "-",
        get_client_ip(request),
    )
    url = await engine.authorize_and_issue(payload.token_id, proof)
    return json_no_store(ShareLinkResponse(data=url))


root_router.add_api_route(
    "/",
    request_playback_access,
    methods=["POST"],
    summary="Authorize playback (root path)",
    response_model=ShareLinkResponse,
    responses=_RESPONSES,
)
