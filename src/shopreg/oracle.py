"""Existence oracles answering whether a user id is known to the user registry."""

import http.client
import json
import logging
import urllib.error
import urllib.request
from typing import Any, Protocol

from shopreg.errors import OracleUnavailable
from shopreg.schemas import User
from shopreg.store import RecordStore

logger = logging.getLogger(__name__)


class ExistenceOracle(Protocol):
    def exists(self, user_id: int) -> bool: ...


class StoreExistenceOracle:
    """Checks a user store living in the same process."""

    def __init__(self, user_store: RecordStore[User]) -> None:
        self._user_store = user_store

    def exists(self, user_id: int) -> bool:
        return self._user_store.get(user_id) is not None


class RemoteExistenceOracle:
    """Asks the user service over HTTP: GET {base_url}/users/{id}/exists.

    Transport failures and 5xx answers are retried ``retries`` times before
    raising OracleUnavailable. Any other unusable answer raises it at once.
    An unreachable user service is never reported as a missing user.
    """

    def __init__(self, base_url: str, timeout_seconds: float = 2.0, retries: int = 1) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.retries = retries

    def _probe_url(self, user_id: int) -> str:
        return f"{self.base_url}/users/{user_id}/exists"

    def _fetch(self, url: str) -> dict[str, Any]:
        req = urllib.request.Request(url, headers={"Accept": "application/json"}, method="GET")
        with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
            body = resp.read().decode("utf-8")
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        return data

    def exists(self, user_id: int) -> bool:
        if user_id < 1:
            # Store ids start at 1; the probe would reject these with 400.
            return False
        url = self._probe_url(user_id)
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                data = self._fetch(url)
            except urllib.error.HTTPError as e:
                if e.code < 500:
                    logger.warning("User service rejected existence probe %s: HTTP %s", url, e.code)
                    raise OracleUnavailable(f"User service answered HTTP {e.code}") from e
                reason = f"HTTP {e.code}"
                last_error: Exception = e
            except (OSError, http.client.HTTPException) as e:
                # URLError, socket timeouts, dropped connections and garbled HTTP
                reason = str(getattr(e, "reason", e))
                last_error = e
            except ValueError as e:
                logger.warning("User service sent a malformed existence answer for %s: %s", url, e)
                raise OracleUnavailable("User service sent a malformed answer") from e
            else:
                exists = data.get("exists")
                if not isinstance(exists, bool):
                    logger.warning("User service existence answer for %s lacks a boolean: %s", url, data)
                    raise OracleUnavailable("User service sent a malformed answer")
                return exists

            if attempt < attempts:
                logger.warning("Existence probe %s failed (%s), retrying (%d/%d)", url, reason, attempt, attempts - 1)
        logger.error("User service unreachable for user %s after %d attempt(s): %s", user_id, attempts, reason)
        raise OracleUnavailable() from last_error


def build_oracle(config: dict[str, Any], user_store: RecordStore[User] | None = None) -> ExistenceOracle:
    """Build the oracle selected by ``config['oracle']['mode']``."""
    oracle_config = config["oracle"]
    if oracle_config["mode"] == "local":
        if user_store is None:
            raise ValueError("oracle.mode 'local' needs an in-process user store (run with --service all)")
        return StoreExistenceOracle(user_store)
    return RemoteExistenceOracle(
        oracle_config["user_service_url"],
        timeout_seconds=float(oracle_config["timeout_seconds"]),
        retries=int(oracle_config["retries"]),
    )
