"""Discovery call that binds a credential to a team and an API address."""

import secrets
from dataclasses import dataclass
from typing import Any, Optional

from .errors import TranslateError
from .transport import HttpTransport


@dataclass(frozen=True)
class HelloResult:
    """Routing information returned by the ``hello`` endpoint.

    Attributes:
        team_name: Team that owns the credential.
        addr: Host that serves the team's ledgers.
        addr_ttl_seconds: How long ``addr`` may be used before asking again.
        discharge: Discharge token for macaroon credentials, if any.
    """
    team_name: str
    addr: str
    addr_ttl_seconds: int
    discharge: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HelloResult":
        return cls(
            team_name=data["team_name"],
            addr=data["addr"],
            addr_ttl_seconds=int(data.get("addr_ttl_seconds") or 0),
            discharge=data.get("discharge") or None,
        )


class Hello:
    def __init__(self, api: HttpTransport):
        self.api = api

    def call(self) -> HelloResult:
        body = self.api.post(secrets.token_hex(10), "/hello", {}).parsed_body
        try:
            return HelloResult.from_dict(body)
        except (KeyError, TypeError, ValueError) as e:
            raise TranslateError("hello", body, e) from e
