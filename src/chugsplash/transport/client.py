"""
HTTP client for a remote deployer.

Mirrors the ChugSplashDeployer operation surface and re-raises the typed
errors returned by the server.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from chugsplash.bundle.actions import Action, action_to_dict
from chugsplash.bundle.builder import ActionProof
from chugsplash.protocol.errors import ChugSplashError, error_from_code

from .http import CALLER_HEADER


class DeployerClient:
    """
    Talks to the FastAPI surface in chugsplash.transport.http.

    `caller` is sent as the X-Caller-Address header on every request.
    """

    def __init__(
        self,
        url: str,
        *,
        caller: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._url = url.rstrip("/")
        self._caller = caller
        self._timeout = timeout
        self._session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._caller:
            headers[CALLER_HEADER] = self._caller
        return headers

    def _decode(self, response) -> Any:
        data = response.json()
        if response.status_code >= 400:
            err = data.get("error") if isinstance(data, dict) else None
            if not err:
                raise ChugSplashError(f"HTTP {response.status_code}: {data!r}")
            raise error_from_code(err.get("code", ""), err.get("message", ""))
        return data

    def _get(self, path: str) -> Any:
        response = self._session.get(
            self._url + path,
            headers=self._headers(),
            timeout=self._timeout,
        )
        return self._decode(response)

    def _post(self, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        response = self._session.post(
            self._url + path,
            json=body or {},
            headers=self._headers(),
            timeout=self._timeout,
        )
        return self._decode(response)

    # ------------------------------------------------------------------
    # Operation surface
    # ------------------------------------------------------------------

    def owner(self) -> str:
        return self._get("/owner")["owner"]

    def set_owner(self, new_owner: str) -> None:
        self._post("/owner", {"newOwner": new_owner})

    def approve_transaction_bundle(self, root: str, size: int) -> None:
        self._post("/bundle/approve", {"root": root, "size": size})

    def cancel_transaction_bundle(self) -> None:
        self._post("/bundle/cancel")

    def current_bundle_hash(self) -> str:
        return self._get("/bundle")["hash"]

    def current_bundle_size(self) -> int:
        return self._get("/bundle")["size"]

    def has_active_bundle(self) -> bool:
        return self._get("/bundle")["active"]

    def execute_action(self, action: Action, proof: ActionProof) -> None:
        self._post(
            "/actions/execute",
            {"action": action_to_dict(action), "proof": proof.to_dict()},
        )

    def is_action_executed(self, index: int) -> bool:
        return self._get(f"/actions/{index}")["executed"]

    def history(self) -> List[Dict[str, Any]]:
        return self._get("/ledger/history")
