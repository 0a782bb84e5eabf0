"""
smswallet/services/wallet_backend.py

Purpose: Client for the external wallet backend

- Ledger operations (payments, sells, club money, loans) live in the
  backend; this service only forwards confirmed commands
- Every call either returns the backend's accepted result or raises
  WalletBackendError
- Handlers get the backend injected; without one they refuse to act
"""

from typing import Any, Dict, List, Optional, Protocol

import httpx

from smswallet.core.exceptions import WalletBackendError
from smswallet.core.logging import get_logger

logger = get_logger(__name__)


class WalletBackend(Protocol):
    """
    Operations the SMS handlers need from the wallet backend.

    Each method returns the backend's result dict once the request was
    accepted, and raises WalletBackendError otherwise.
    """

    async def submit_payment(
        self, sender: str, recipient: str, amount: float, currency: str, note: Optional[str] = None
    ) -> Dict[str, Any]: ...

    async def sell(self, phone: str, amount: float, currency: str) -> Dict[str, Any]: ...

    async def get_balance(self, phone: str) -> Dict[str, Any]: ...

    async def accept_loan(self, phone: str) -> Dict[str, Any]: ...

    async def get_transaction(self, phone: str, transaction_id: str) -> Dict[str, Any]: ...

    async def register_merchant(self, phone: str, name: str) -> Dict[str, Any]: ...

    async def merchant_report(self, phone: str) -> Dict[str, Any]: ...

    async def create_club(self, phone: str, name: str, members: List[str]) -> Dict[str, Any]: ...

    async def club_deposit(self, phone: str, club_name: str, amount: float, currency: str) -> Dict[str, Any]: ...

    async def propose_payout(
        self, phone: str, club_name: str, amount: float, recipient: str
    ) -> Dict[str, Any]: ...

    async def vote(self, phone: str, club_name: str, proposal_id: str, vote: str) -> Dict[str, Any]: ...


class HttpWalletBackend:
    """
    WalletBackend over a JSON HTTP API.

    Responses must be 2xx JSON objects; a body with "accepted": false is
    treated as a rejection.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._headers = {"X-API-Key": api_key} if api_key else {}
        self._timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Sends one request and returns the decoded result.

        Raises:
            WalletBackendError: On network errors, timeouts, non-2xx
                responses, non-object bodies and explicit rejections
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=payload, params=params)

        except httpx.TimeoutException as e:
            logger.error(f"Wallet backend timeout on {method} {path}")
            raise WalletBackendError("Wallet backend timed out", details={"path": path}) from e
        except httpx.RequestError as e:
            logger.error(f"Wallet backend unreachable on {method} {path}: {e}")
            raise WalletBackendError("Wallet backend unreachable", details={"path": path}) from e

        if response.status_code >= 400:
            logger.error(f"Wallet backend rejected {method} {path}: HTTP {response.status_code}")
            raise WalletBackendError(
                f"Wallet backend returned HTTP {response.status_code}",
                details={"path": path, "status_code": response.status_code},
            )

        try:
            result = response.json()
        except ValueError as e:
            raise WalletBackendError("Wallet backend returned invalid JSON", details={"path": path}) from e

        if not isinstance(result, dict):
            raise WalletBackendError("Wallet backend returned an unexpected body", details={"path": path})

        if result.get("accepted") is False:
            logger.warning(f"Wallet backend declined {method} {path}")
            raise WalletBackendError(
                "Wallet backend declined the request",
                details={"path": path, "reason": result.get("reason")},
            )

        return result

    async def submit_payment(self, sender, recipient, amount, currency, note=None):
        return await self._request("POST", "/payments", {
            "from": sender,
            "to": recipient,
            "amount": amount,
            "currency": currency,
            "note": note,
        })

    async def sell(self, phone, amount, currency):
        return await self._request("POST", "/sells", {"phone": phone, "amount": amount, "currency": currency})

    async def get_balance(self, phone):
        return await self._request("GET", f"/wallets/{phone}/balance")

    async def accept_loan(self, phone):
        return await self._request("POST", "/loans/accept", {"phone": phone})

    async def get_transaction(self, phone, transaction_id):
        return await self._request("GET", f"/transactions/{transaction_id}", params={"phone": phone})

    async def register_merchant(self, phone, name):
        return await self._request("POST", "/merchants", {"phone": phone, "name": name})

    async def merchant_report(self, phone):
        return await self._request("GET", f"/merchants/{phone}/report")

    async def create_club(self, phone, name, members):
        return await self._request("POST", "/clubs", {"creator": phone, "name": name, "members": members})

    async def club_deposit(self, phone, club_name, amount, currency):
        return await self._request("POST", "/clubs/deposits", {
            "phone": phone,
            "club": club_name,
            "amount": amount,
            "currency": currency,
        })

    async def propose_payout(self, phone, club_name, amount, recipient):
        return await self._request("POST", "/clubs/proposals", {
            "phone": phone,
            "club": club_name,
            "amount": amount,
            "recipient": recipient,
        })

    async def vote(self, phone, club_name, proposal_id, vote):
        return await self._request("POST", "/clubs/votes", {
            "phone": phone,
            "club": club_name,
            "proposalId": proposal_id,
            "vote": vote,
        })
