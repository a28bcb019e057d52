import re
from dataclasses import dataclass
from urllib.parse import unquote_plus

# ASCII only; str.isalnum() would also accept non-Latin digits and letters
_CLAIM_PARAM_RE = re.compile(r"[A-Za-z0-9.,\-:/_]*")

_FIELD_NAMES = {
    "key": "key",
    "token": "token",
    "rooms": "rooms",
    "url": "base_url",
}


class InvalidClaimParameters(ValueError):
    """A claim request is missing a required field or has a forbidden character."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


@dataclass
class ClaimRequest:
    key: str | None = None
    token: str | None = None
    rooms: str | None = None
    base_url: str | None = None

    @property
    def room_ids(self) -> list[str]:
        if not self.rooms:
            return []
        return [room for room in self.rooms.split(",") if room]


def parse_claim_query(query: str | None) -> ClaimRequest:
    """
    Parse ``key``, ``token``, ``rooms`` and ``url`` out of a raw query string.

    Pairs with an empty name or an empty value are skipped, so ``token=`` reads
    as "not supplied". Unknown names are ignored.
    """
    request = ClaimRequest()
    if not query:
        return request

    for pair in query.split("&"):
        if not pair:
            continue
        name, _, value = pair.partition("=")
        name = unquote_plus(name)
        value = unquote_plus(value)
        if not name or not value:
            continue
        field = _FIELD_NAMES.get(name)
        if field is not None:
            setattr(request, field, value)

    return request


def is_valid_claim_param(value: str) -> bool:
    return _CLAIM_PARAM_RE.fullmatch(value) is not None


def validate_claim_request(request: ClaimRequest) -> None:
    """Raise InvalidClaimParameters unless token, url and (optional) rooms are usable."""
    if not request.token:
        raise InvalidClaimParameters("token", "missing")
    if not request.base_url:
        raise InvalidClaimParameters("url", "missing")
    if not is_valid_claim_param(request.token):
        raise InvalidClaimParameters("token", "invalid characters")
    if not is_valid_claim_param(request.base_url):
        raise InvalidClaimParameters("url", "invalid characters")
    if request.rooms is not None and not is_valid_claim_param(request.rooms):
        raise InvalidClaimParameters("rooms", "invalid characters")
