"""Session resource model: API endpoint and per-capability accounts."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from packages.jmap_sdk.capabilities import JMAP_CORE
from packages.jmap_sdk.errors import SessionError


class Session(BaseModel):
    """The subset of the session object this client reads."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    api_url: str = Field(alias="apiUrl", min_length=1)
    primary_accounts: dict[str, str] = Field(
        default_factory=dict, alias="primaryAccounts"
    )
    accounts: dict[str, dict[str, Any]] = Field(default_factory=dict)
    capabilities: dict[str, Any] = Field(default_factory=dict)
    username: str | None = None
    state: str | None = None

    @classmethod
    def from_json(cls, data: Any) -> Session:
        """Decode a session document, raising ``SessionError`` on bad shape."""
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            first = exc.errors()[0]
            where = ".".join(str(part) for part in first.get("loc", ())) or "session"
            raise SessionError(
                message=f"invalid session resource at {where}: {first.get('msg', 'invalid value')}"
            ) from None

    def account_id(self, capability: str = JMAP_CORE) -> str:
        """Return the primary account for ``capability``.

        Vendor capabilities are often absent from ``primaryAccounts``; those
        fall back to the core capability's account.
        """
        account = self.primary_accounts.get(capability) or self.primary_accounts.get(
            JMAP_CORE
        )
        if not account:
            raise SessionError(
                message=f"session has no primary account for {capability}"
            )
        return account
