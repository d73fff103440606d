# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Identity provider REST client.

Talks to a Clerk-compatible backend API:

- POST   /users                 create a username/password account
- DELETE /users/{id}            delete an account
- GET    /users?limit=&offset=  list accounts, paginated

Accounts are created without an email address; password checks are
skipped because the temporary password is replaced on first login.

Example:
    client = IdentityProviderClient(settings.identity_provider)
    identity_id = await client.create_account("baatare", "99123456BE$", metadata)
    await client.close()
"""

import logging
from typing import Any

import httpx

from src.core.config.settings import IdentityProviderSettings
from src.domains.provisioning.exceptions import IdentityProviderError
from src.domains.provisioning.ports import IdentityMetadata, IdentityProvider

logger = logging.getLogger(__name__)


class IdentityProviderClient(IdentityProvider):
    """httpx-based identity provider adapter.

    Attributes:
        _client: Shared async HTTP client.
        _page_size: Page size for username listing.
        _max_pages: Page cap for username listing.
    """

    def __init__(
        self,
        settings: IdentityProviderSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Identity provider settings.
            transport: Optional transport override (tests use MockTransport).
        """
        self._page_size = settings.page_size
        self._max_pages = settings.max_pages
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            headers=settings.auth_headers,
            timeout=settings.timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def create_account(
        self,
        username: str,
        password: str,
        metadata: IdentityMetadata,
    ) -> str:
        """Create an account and return its identity id.

        Raises:
            IdentityProviderError: If the provider rejects the request or
                cannot be reached.
        """
        payload = {
            "username": username,
            "password": password,
            "skip_password_checks": True,
            "public_metadata": metadata.to_public_metadata(),
        }

        try:
            response = await self._client.post("/users", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Identity creation rejected: username=%s, status=%s",
                username,
                e.response.status_code,
            )
            raise IdentityProviderError(
                _error_message(e.response),
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error("Identity provider unreachable: %s", str(e))
            raise IdentityProviderError(f"Identity provider unreachable: {str(e)}") from e

        # Accepted but unreadable: the account may exist without a known id
        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                "Identity creation answered without JSON: username=%s, status=%s",
                username,
                response.status_code,
            )
            raise IdentityProviderError(
                f"Identity provider accepted the request but returned no JSON body "
                f"(HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

        identity_id = data.get("id") if isinstance(data, dict) else None
        if not identity_id:
            raise IdentityProviderError(
                "Identity provider response has no id",
                status_code=response.status_code,
            )

        logger.debug("Identity created: username=%s, identity_id=%s", username, identity_id)
        return str(identity_id)

    async def delete_account(self, identity_id: str) -> None:
        """Delete an account by identity id.

        Raises:
            IdentityProviderError: If the delete fails.
        """
        try:
            response = await self._client.delete(f"/users/{identity_id}")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise IdentityProviderError(
                _error_message(e.response),
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"Identity provider unreachable: {str(e)}") from e

        logger.info("Identity deleted: identity_id=%s", identity_id)

    async def list_usernames(self) -> set[str]:
        """Return every username, following offset pagination.

        Paging stops on a short or empty page, or on a page that repeats
        accounts already seen (a provider that ignores offset). More than
        max_pages full pages is treated as a provider fault.

        Raises:
            IdentityProviderError: If any page cannot be fetched or the page
                cap is exceeded.
        """
        usernames: set[str] = set()
        seen_accounts: set[str] = set()
        offset = 0

        for _ in range(self._max_pages):
            try:
                response = await self._client.get(
                    "/users",
                    params={"limit": self._page_size, "offset": offset},
                )
                response.raise_for_status()
                page = _users_of(response.json())
            except httpx.HTTPStatusError as e:
                raise IdentityProviderError(
                    _error_message(e.response),
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                raise IdentityProviderError(f"Identity provider unreachable: {str(e)}") from e
            except ValueError as e:
                raise IdentityProviderError(
                    f"Identity provider returned an unreadable user page at offset {offset}",
                    status_code=response.status_code,
                ) from e

            keys = {str(user.get("id") or user.get("username")) for user in page}
            if not keys - seen_accounts:
                break
            seen_accounts |= keys
            usernames.update(user["username"] for user in page if user.get("username"))

            if len(page) < self._page_size:
                break
            offset += self._page_size
        else:
            raise IdentityProviderError(
                f"Username listing exceeded {self._max_pages} pages of {self._page_size}"
            )

        return usernames


def _users_of(body: Any) -> list[dict[str, Any]]:
    # The list endpoint answers with a bare array or a {"data": [...]} envelope
    if isinstance(body, dict):
        return body.get("data", [])
    return body


def _error_message(response: httpx.Response) -> str:
    """First error message of a provider error body, or the raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors:
        first = errors[0]
        return first.get("long_message") or first.get("message") or str(first)
    return response.text or f"HTTP {response.status_code}"
