"""Account directory client.

Resolves a company/device-owner code to its account status. The account
service itself (CRUD, billing) lives elsewhere; this only asks whether a code
belongs to an active, paying account.
"""

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field


class AccountStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_code: str = Field(alias="accountCode")
    is_active: bool = Field(default=False, alias="isActive")
    is_paid: bool = Field(default=False, alias="isPaid")
    name: str | None = None

    @property
    def is_paying(self) -> bool:
        return self.is_active and self.is_paid


class AccountDirectory:
    """Looks accounts up over HTTP, with a static allow-list for offline use.

    Codes in `paid_account_codes` are treated as active paying accounts
    without a network call. With no base URL configured every other code is
    unknown.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        paid_account_codes: tuple[str, ...] = (),
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self.paid_account_codes = {c.strip().upper() for c in paid_account_codes if c.strip()}
        self.timeout = timeout
        self._transport = transport

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        return headers

    async def lookup(self, account_code: str | None) -> AccountStatus | None:
        """Return the account status, or None if unknown or unreachable."""
        code = (account_code or "").strip().upper()
        if not code:
            return None

        if code in self.paid_account_codes:
            return AccountStatus(account_code=code, is_active=True, is_paid=True)

        if not self.base_url:
            logger.debug("Account directory not configured; {} is unknown", code)
            return None

        url = f"{self.base_url}/accounts/{code}"
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(url, headers=self._build_headers(), timeout=self.timeout)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            # Unreachable directory degrades to "not a paying account"
            logger.warning("Account lookup for {} failed: {}", code, e)
            return None

        logger.debug("Account lookup {}: {}", code, data)
        return AccountStatus.model_validate(data)

    async def is_paid_account(self, account_code: str | None) -> bool:
        status = await self.lookup(account_code)
        return status is not None and status.is_paying
