"""Provider chain and the shared SMS-API client.

Both supported services expose the same order / check / cancel shape
over form-encoded POSTs, so :class:`SmsApiProvider` implements the whole
protocol and subclasses only supply country ids and status rules.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from onboard.browser.actions import Clock, SystemClock
from onboard.exceptions import OtpProviderError
from onboard.otp import with_retries

if TYPE_CHECKING:
    from onboard.settings.config import Settings

logger = logging.getLogger(__name__)

OTP_PATTERN = re.compile(r"\b\d{4,6}\b")


def extract_code(message: str) -> str | None:
    """Pull a 4-6 digit code out of an SMS body."""
    match = OTP_PATTERN.search(message or "")
    return match.group(0) if match else None


class OtpProvider(Protocol):
    name: str

    async def wait_for_otp(self, user_id: int, country_code: str, timeout_s: float) -> str | None: ...


class OtpChain:
    """Try each provider in order until one yields a code.

    Provider errors are logged and the next provider is tried; ``None``
    means every provider gave up.
    """

    def __init__(self, providers: Sequence[OtpProvider]) -> None:
        self.providers = list(providers)

    async def wait_for_otp(self, user_id: int, country_code: str, timeout_s: float) -> str | None:
        for provider in self.providers:
            logger.info("Waiting for OTP from %s (user %d, country %s)", provider.name, user_id, country_code)
            try:
                code = await provider.wait_for_otp(user_id, country_code, timeout_s)
            except OtpProviderError as exc:
                logger.warning("OTP provider %s failed: %s", provider.name, exc.reason)
                continue
            if code:
                return code
            logger.info("No OTP from %s within %.0fs", provider.name, timeout_s)
        return None

    async def aclose(self) -> None:
        for provider in self.providers:
            closer = getattr(provider, "aclose", None)
            if closer is not None:
                await closer()


class SmsApiProvider:
    """Number-rental SMS API client (order, poll, cancel).

    Args:
        api_key: Provider API key.
        base_url: API root, e.g. ``https://api.smspool.net``.
        client: Shared ``httpx.AsyncClient``; one is created when omitted.
        clock: Time source for the poll loop.
        poll_interval_s: Delay between ``/sms/check`` calls.
    """

    name = "sms-api"
    service_id = "962"
    countries: dict[str, str] = {}

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
        poll_interval_s: float = 5.0,
        request_timeout_s: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=request_timeout_s)
        self._clock = clock or SystemClock()
        self._poll_interval_s = poll_interval_s

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    @with_retries(max_retries=2, backoff_seconds=1.0, retryable_exceptions=(httpx.TransportError,))
    async def _post(self, path: str, **fields: str) -> dict[str, Any]:
        response = await self._client.post(f"{self._base_url}{path}", data={"key": self._api_key, **fields})
        if response.status_code >= 400:
            raise OtpProviderError(self.name, f"HTTP {response.status_code} from {path}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise OtpProviderError(self.name, f"non-JSON response from {path}") from exc
        if not isinstance(payload, dict):
            raise OtpProviderError(self.name, f"unexpected payload from {path}")
        if payload.get("success") == 0:
            raise OtpProviderError(self.name, str(payload.get("message") or f"{path} rejected"))
        return payload

    # ------------------------------------------------------------------
    # API operations
    # ------------------------------------------------------------------

    async def balance(self) -> float:
        data = await self._post("/request/balance")
        try:
            return float(data.get("balance", 0))
        except (TypeError, ValueError):
            return 0.0

    async def order(self, country_code: str) -> str:
        """Rent a number for the configured service and return the order id."""
        country = self.countries.get(country_code.upper())
        if country is None:
            raise OtpProviderError(self.name, f"unsupported country {country_code}")
        data = await self._post("/purchase/sms", country=country, service=self.service_id, quantity="1")
        order_id = data.get("orderid") or data.get("order_id")
        if not order_id:
            raise OtpProviderError(self.name, "purchase returned no order id")
        logger.info("%s order %s placed for country %s", self.name, order_id, country_code)
        return str(order_id)

    def _check_accepted(self, data: dict[str, Any]) -> bool:
        return True

    async def check(self, order_id: str) -> str | None:
        """Return the code for *order_id* if an SMS has arrived."""
        data = await self._post("/sms/check", orderid=order_id)
        if not self._check_accepted(data):
            return None
        code = extract_code(str(data.get("sms") or data.get("message") or ""))
        if code is None and data.get("code"):
            code = str(data["code"])
        return code

    async def cancel(self, order_id: str) -> None:
        try:
            await self._post("/sms/cancel", orderid=order_id)
        except OtpProviderError as exc:
            logger.warning("%s cancel of order %s failed: %s", self.name, order_id, exc.reason)

    async def wait_for_otp(self, user_id: int, country_code: str, timeout_s: float) -> str | None:
        """Order a number and poll until a code arrives or *timeout_s* elapses.

        Raises:
            OtpProviderError: On API failure or an empty balance.
        """
        if await self.balance() <= 0:
            raise OtpProviderError(self.name, "insufficient balance")
        order_id = await self.order(country_code)
        deadline = self._clock.monotonic() + timeout_s
        while self._clock.monotonic() < deadline:
            code = await self.check(order_id)
            if code:
                logger.info("%s delivered a %d-digit code for user %d", self.name, len(code), user_id)
                return code
            await self._clock.sleep(self._poll_interval_s)
        logger.info("%s order %s timed out after %.0fs; cancelling", self.name, order_id, timeout_s)
        await self.cancel(order_id)
        return None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def build_otp_chain(
    settings: Settings,
    *,
    clock: Clock | None = None,
    client: httpx.AsyncClient | None = None,
) -> OtpChain:
    """Build the primary/fallback chain from configured API keys."""
    from onboard.otp.smsman import SmsManProvider
    from onboard.otp.smspool import SmsPoolProvider

    otp = settings.otp
    providers: list[SmsApiProvider] = []
    common: dict[str, Any] = {
        "client": client,
        "clock": clock,
        "poll_interval_s": otp.poll_interval_s,
        "request_timeout_s": otp.request_timeout_s,
    }
    if otp.smspool_api_key:
        providers.append(SmsPoolProvider(otp.smspool_api_key, base_url=otp.smspool_base_url, **common))
    if otp.smsman_api_key:
        providers.append(SmsManProvider(otp.smsman_api_key, base_url=otp.smsman_base_url, **common))
    if not providers:
        logger.warning("No OTP provider keys configured; phone verification will fail")
    return OtpChain(providers)
