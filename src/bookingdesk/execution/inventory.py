"""HTTP client for the external hotel inventory service."""

import logging
from typing import Any

import httpx

from bookingdesk.utils.exceptions import BookingRejected, InventoryUnavailable

logger = logging.getLogger(__name__)

# Failures where the request never reached the server, so a POST is safe to resend.
_NOT_SENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


class InventoryClient:
    """Thin client for ``GET /rooms`` and ``POST /book``. Owns no state."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_retries: int = 2,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the inventory client.

        Args:
            base_url: Base URL of the inventory service
            timeout: Request timeout in seconds
            max_retries: Extra attempts after a transport failure
            headers: Default headers to include in requests
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.default_headers = headers or {}
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.timeout,
                headers=self.default_headers,
                transport=self._transport,
            )
        return self._client

    def list_rooms(self) -> list[dict[str, Any]]:
        """Fetch available rooms.

        Raises:
            InventoryUnavailable: On transport errors or unexpected responses
        """
        body = self._request("GET", "/rooms")
        if isinstance(body, list):
            return body
        if isinstance(body, dict) and isinstance(body.get("rooms"), list):
            return body["rooms"]
        raise InventoryUnavailable(f"Unexpected rooms payload: {type(body).__name__}")

    def create_booking(
        self,
        room_id: int,
        full_name: str,
        email: str,
        nights: int,
    ) -> dict[str, Any]:
        """Create a booking remotely.

        Returns:
            The service's payload, including ``bookingId`` and ``totalPrice``

        Raises:
            InventoryUnavailable: Transport error, timeout or 5xx
            BookingRejected: The service refused the booking (4xx)
        """
        body = self._request(
            "POST",
            "/book",
            json={"roomId": room_id, "fullName": full_name, "email": email, "nights": nights},
        )
        if not isinstance(body, dict):
            raise InventoryUnavailable("Booking response is not a JSON object")
        return body

    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        """Send a request with bounded retries and map failures to exceptions."""
        url = f"{self.base_url}{path}"
        attempts = self.max_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                response = self.client.request(method, url, json=json)
            except httpx.TransportError as e:
                retryable = method == "GET" or isinstance(e, _NOT_SENT_ERRORS)
                if retryable and attempt < attempts:
                    logger.warning(
                        "Inventory %s %s failed (attempt %d/%d): %s",
                        method, path, attempt, attempts, e,
                    )
                    continue
                raise InventoryUnavailable(f"Inventory {method} {path} failed: {e}") from e

            if response.status_code >= 500:
                raise InventoryUnavailable(
                    f"Inventory {method} {path} returned {response.status_code}"
                )
            if response.status_code >= 400:
                raise BookingRejected(
                    f"Inventory rejected {method} {path}: {response.text}",
                    status_code=response.status_code,
                )

            try:
                return response.json() if response.content else {}
            except ValueError as e:
                raise InventoryUnavailable(f"Inventory {method} {path} returned invalid JSON") from e

        raise InventoryUnavailable(f"Inventory {method} {path} failed")

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "InventoryClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class MockInventoryClient(InventoryClient):
    """Mock inventory client for testing."""

    def __init__(
        self,
        rooms: list[dict[str, Any]] | None = None,
        booking_response: dict[str, Any] | None = None,
        error: Exception | None = None,
    ):
        """Initialize mock client.

        Args:
            rooms: Rooms returned by ``list_rooms``
            booking_response: Payload returned by ``create_booking``
            error: Exception raised by every call instead of answering
        """
        super().__init__(base_url="http://inventory.test")
        self.rooms = rooms or []
        self.booking_response = booking_response or {"bookingId": "MOCK-1", "totalPrice": 100}
        self.error = error
        self.call_history: list[dict[str, Any]] = []

    def list_rooms(self) -> list[dict[str, Any]]:
        self.call_history.append({"operation": "list_rooms"})
        if self.error:
            raise self.error
        return list(self.rooms)

    def create_booking(
        self,
        room_id: int,
        full_name: str,
        email: str,
        nights: int,
    ) -> dict[str, Any]:
        self.call_history.append({
            "operation": "create_booking",
            "room_id": room_id,
            "full_name": full_name,
            "email": email,
            "nights": nights,
        })
        if self.error:
            raise self.error
        return dict(self.booking_response)
