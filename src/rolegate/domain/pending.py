"""In-memory table of outstanding verification requests."""

from __future__ import annotations

import secrets
import string
from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .addresses import normalize_address
from .errors import PendingRequestExistsError
from .model import VerificationRequest

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime, timedelta

log = getLogger(__name__)

REQUEST_CODE_LENGTH: Final[int] = 6
REQUEST_CODE_ALPHABET: Final[str] = string.ascii_uppercase + string.digits
_MAX_CODE_ATTEMPTS: Final[int] = 64

CodeFactory = Callable[[], str]


def generate_request_code() -> str:
    return "".join(secrets.choice(REQUEST_CODE_ALPHABET) for _ in range(REQUEST_CODE_LENGTH))


def normalize_request_code(code: str) -> str:
    return code.strip().upper()


class PendingRequestStore:
    """Requests keyed by code; at most one live request per address."""

    def __init__(self, *, code_factory: CodeFactory = generate_request_code) -> None:
        self._code_factory = code_factory
        self._requests: dict[str, VerificationRequest] = {}

    def __len__(self) -> int:
        return len(self._requests)

    def __iter__(self) -> Iterator[VerificationRequest]:
        return iter(list(self._requests.values()))

    def create(
        self,
        *,
        claimant_id: str,
        claimant_label: str,
        address: str,
        origin_context: str | None,
        now: datetime,
    ) -> VerificationRequest:
        normalized = normalize_address(address)
        if self.find_by_address(normalized) is not None:
            raise PendingRequestExistsError(normalized)

        request = VerificationRequest(
            code=self._unused_code(),
            claimant_id=claimant_id,
            claimant_label=claimant_label,
            address=normalized,
            origin_context=origin_context,
            created_at=now,
        )
        self._requests[request.code] = request
        log.info(
            "Pending request %s created for %s by %s", request.code, normalized, claimant_label
        )
        return request

    def find_by_code(self, code: str) -> VerificationRequest | None:
        return self._requests.get(normalize_request_code(code))

    def find_by_address(self, address: str) -> VerificationRequest | None:
        normalized = normalize_address(address)
        for request in self._requests.values():
            if request.address == normalized:
                return request
        return None

    def remove(self, code: str) -> VerificationRequest | None:
        return self._requests.pop(normalize_request_code(code), None)

    def sweep_expired(self, now: datetime, timeout: timedelta) -> list[str]:
        expired = [
            code for code, request in self._requests.items() if request.is_expired(now, timeout)
        ]
        for code in expired:
            request = self._requests.pop(code)
            log.info("Pending request %s for %s expired", code, request.address)
        return expired

    def _unused_code(self) -> str:
        for _ in range(_MAX_CODE_ATTEMPTS):
            code = normalize_request_code(self._code_factory())
            if code not in self._requests:
                return code
            log.debug("Request code collision on %s, regenerating", code)
        raise RuntimeError("Could not generate an unused request code")
