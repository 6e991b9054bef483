"""Session credentials passed by value to every report run."""

from enum import Enum

from pydantic import BaseModel, Field

ODATA_PATH = "/CoreAPI/Odata"


class AuthMode(str, Enum):
    """How requests are authenticated against Nimbus."""

    CREDENTIAL = "credential"
    APP_TOKEN = "apptoken"


class Session(BaseModel):
    """Immutable credential bundle for one Nimbus connection."""

    base_url: str
    auth_mode: AuthMode = AuthMode.CREDENTIAL
    # Credential-based auth
    user_id: int | None = None
    auth_token: str | None = None
    # App token auth
    app_token: str | None = Field(default=None, repr=False)
    username: str | None = None

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def odata_base(self) -> str:
        """Get the OData root, e.g. ``https://host/CoreAPI/Odata``."""
        return f"{self.base_url.rstrip('/')}{ODATA_PATH}"

    @property
    def secret(self) -> str | None:
        """The token that must never appear in logs."""
        if self.auth_mode == AuthMode.APP_TOKEN:
            return self.app_token
        return self.auth_token

    def is_complete(self) -> bool:
        """Check that the fields required by the auth mode are present."""
        if not self.base_url:
            return False
        if self.auth_mode == AuthMode.APP_TOKEN:
            return bool(self.app_token and self.username)
        return self.user_id is not None and bool(self.auth_token)

    def headers(self) -> dict[str, str]:
        """Build request headers for this session.

        Nimbus answers with XML unless JSON is requested explicitly, so the
        Accept header is always set.
        """
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.auth_mode == AuthMode.APP_TOKEN:
            if self.app_token:
                headers["Authorization"] = f"Bearer {self.app_token}"
                headers["AppToken"] = self.app_token
            if self.username:
                headers["Username"] = self.username
            return headers

        if self.user_id is not None:
            headers["UserID"] = str(self.user_id)
        if self.auth_token:
            # Nimbus requires both the bearer header and AuthenticationToken
            headers["Authorization"] = f"Bearer {self.auth_token}"
            headers["AuthenticationToken"] = self.auth_token
        return headers
