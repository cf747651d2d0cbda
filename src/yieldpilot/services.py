"""HTTP clients for the wallet-custody and execution hand-off services."""

import logging
import time
from typing import Any

import httpx

from .errors import ServiceError
from .logging import JSONLLogger
from .memory import is_valid_address

logger = logging.getLogger(__name__)


class _JSONService:
    """Shared POST-JSON plumbing with a bounded timeout."""

    service_name = "service"

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Service root, without a trailing slash.
            timeout: Seconds allowed per request.
            transport: Custom httpx transport (tests).
            event_logger: Optional structured logger for call outcomes.
        """
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._events = event_logger

    async def _post(
        self,
        operation: str,
        path: str,
        payload: dict[str, Any],
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        start_time = time.time()
        error: str | None = None
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                return await client.post(
                    f"{self.base_url}{path}",
                    json=payload,
                    params=params,
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            error = f"Request timed out after {self._timeout}s"
            raise ServiceError(f"{self.service_name} {operation}: {error}") from e
        except httpx.RequestError as e:
            error = f"Request failed: {e}"
            raise ServiceError(f"{self.service_name} {operation}: {error}") from e
        finally:
            if self._events:
                self._events.log_external_call(
                    self.service_name,
                    operation,
                    error is None,
                    duration_ms=(time.time() - start_time) * 1000,
                    error=error,
                )

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}


class CustodyClient(_JSONService):
    """Looks up and creates multisig wallets bound to (agent, user) pairs."""

    service_name = "custody"

    async def get_multisig(self, agent_address: str, user_address: str) -> str | None:
        """Find the multisig bound to an agent/user pair.

        Returns:
            The multisig address, or None when the service knows none.

        Raises:
            ServiceError: Transport failure or an unexpected HTTP status.
        """
        response = await self._post(
            "get_multisig",
            "/wallet/get/multisig",
            {"agentAddress": agent_address, "userAddress": user_address},
        )
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise ServiceError(
                f"custody get_multisig: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        body = self._json(response)
        if body.get("error"):
            logger.warning("Custody lookup returned error: %s", body["error"])
            return None

        address = body.get("multisig_address") or (body.get("data") or {}).get("safeAddress")
        return address if is_valid_address(address) else None

    async def create_multisig(self, agent_id: str, agent_address: str, user_address: str) -> str:
        """Create a multisig for an agent/user pair.

        Returns:
            The new multisig address.

        Raises:
            ServiceError: The request failed or no address came back.
        """
        response = await self._post(
            "create_multisig",
            "/wallet/create",
            {"agentId": agent_id, "agentAddress": agent_address, "userAddress": user_address},
        )
        if not response.is_success:
            raise ServiceError(
                f"custody create_multisig: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        body = self._json(response)
        if body.get("error"):
            raise ServiceError(f"custody create_multisig: {body['error']}")

        address = (body.get("data") or {}).get("safeAddress")
        if not is_valid_address(address):
            raise ServiceError("custody create_multisig: response carried no safe address")
        return address


class ExecutorClient(_JSONService):
    """Asks the execution service to run a registered task."""

    service_name = "executor"

    async def execute_task(self, task_id: str, agent_id: str) -> dict[str, Any]:
        """Request execution of a task.

        Returns:
            The service's JSON body.

        Raises:
            ServiceError: Transport failure or non-2xx status.
        """
        response = await self._post(
            "execute_task",
            "/task/execute",
            {"txUUID": task_id, "agentId": agent_id},
            params={"taskId": task_id},
        )
        if not response.is_success:
            raise ServiceError(
                f"executor execute_task: HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        return self._json(response)
