"""
HTTP surface for the deployer (FastAPI).

    GET  /owner                 -> {"owner"}
    POST /owner                 {"newOwner"}
    GET  /bundle                -> {"hash", "size", "active", "executedCount"}
    POST /bundle/approve        {"root", "size"}
    POST /bundle/cancel
    POST /actions/execute       {"action", "proof"}
    GET  /actions/{index}       -> {"index", "executed"}
    GET  /ledger/history        -> [entry, ...]

The caller address is read from the X-Caller-Address header. Owner-only
routes reject calls whose header does not match the current owner. The
header is not authenticated here; deployments put the server behind a
gateway that authenticates callers.

Errors are returned as {"error": {"code", "message"}}.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chugsplash.bundle.actions import action_from_dict
from chugsplash.bundle.builder import ActionProof
from chugsplash.core.deployer import ChugSplashDeployer
from chugsplash.protocol.enums import ErrorCode
from chugsplash.protocol.errors import ChugSplashError, ValidationError

logger = logging.getLogger(__name__)

CALLER_HEADER = "X-Caller-Address"

STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.NOT_OWNER: 403,
    ErrorCode.BUNDLE_ALREADY_ACTIVE: 409,
    ErrorCode.NO_ACTIVE_BUNDLE: 409,
    ErrorCode.ALREADY_EXECUTED: 409,
    ErrorCode.INVALID_PROOF: 422,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.LEDGER_INTEGRITY: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("request body must be JSON")
    if not isinstance(body, dict):
        raise ValidationError("request body must be a JSON object")
    return body


def _caller(request: Request) -> Optional[str]:
    return request.headers.get(CALLER_HEADER)


def _bundle_view(deployer: ChugSplashDeployer) -> Dict[str, Any]:
    return {
        "hash": deployer.current_bundle_hash(),
        "size": deployer.current_bundle_size(),
        "active": deployer.has_active_bundle(),
        "executedCount": deployer.executed_count(),
    }


def create_app(deployer: ChugSplashDeployer) -> FastAPI:
    app = FastAPI(title="ChugSplash Deployer", version="0.1.0")

    @app.exception_handler(ChugSplashError)
    async def handle_chugsplash_error(request: Request, exc: ChugSplashError):
        status = STATUS_BY_CODE.get(exc.code, 500)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status, content={"error": exc.to_dict()})

    @app.get("/owner")
    async def get_owner():
        return {"owner": deployer.owner()}

    @app.post("/owner")
    async def set_owner(request: Request):
        body = await _json_body(request)
        if "newOwner" not in body:
            raise ValidationError("newOwner is required")
        deployer.set_owner(_caller(request), body["newOwner"])
        return {"owner": deployer.owner()}

    @app.get("/bundle")
    async def get_bundle():
        return _bundle_view(deployer)

    @app.post("/bundle/approve")
    async def approve_bundle(request: Request):
        body = await _json_body(request)
        if "root" not in body or "size" not in body:
            raise ValidationError("root and size are required")
        deployer.approve_transaction_bundle(_caller(request), body["root"], body["size"])
        return _bundle_view(deployer)

    @app.post("/bundle/cancel")
    async def cancel_bundle(request: Request):
        deployer.cancel_transaction_bundle(_caller(request))
        return _bundle_view(deployer)

    @app.post("/actions/execute")
    async def execute_action(request: Request):
        body = await _json_body(request)
        action = action_from_dict(body.get("action"))
        proof = ActionProof.from_dict(body.get("proof"))
        deployer.execute_action(action, proof, caller=_caller(request))
        return {"index": proof.action_index, **_bundle_view(deployer)}

    @app.get("/actions/{index}")
    async def get_action_status(index: int):
        return {"index": index, "executed": deployer.is_action_executed(index)}

    @app.get("/ledger/history")
    async def get_history():
        return [entry.to_dict() for entry in deployer.ledger.history()]

    return app
