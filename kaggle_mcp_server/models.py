# Copyright (c) 2023-2024 Datalayer, Inc.
#
# BSD 3-Clause License

"""
Data models shared by the resolver, the transport and the tools.
"""

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, SecretStr


class KaggleCredentials(BaseModel):
    """Kaggle API credentials, built once at startup."""

    model_config = ConfigDict(frozen=True)

    username: str
    key: SecretStr

    @classmethod
    def from_values(cls, username: str | None, key: str | None) -> "KaggleCredentials":
        return cls(username=username or "", key=SecretStr(key or ""))

    @property
    def configured(self) -> bool:
        return bool(self.username and self.key.get_secret_value())

    @property
    def authorization_header(self) -> str:
        token = f"{self.username}:{self.key.get_secret_value()}".encode("utf-8")
        return f"Basic {base64.b64encode(token).decode('ascii')}"


@dataclass(frozen=True)
class ResourceKind:
    """A family of Kaggle resources addressed by handle or web URL."""

    label: str
    url_root: str
    min_path_segments: int = 4


DATASET = ResourceKind(label="dataset", url_root="datasets")
NOTEBOOK = ResourceKind(label="notebook", url_root="code")


class IdentifierSource(str, Enum):
    HANDLE = "handle"
    URL = "url"


@dataclass(frozen=True)
class Identifier:
    """A resolved owner/slug pair plus the origin to address it on."""

    owner: str
    slug: str
    origin: str
    source: IdentifierSource
    raw: str

    @property
    def handle(self) -> str:
        return f"{self.owner}/{self.slug}"


@dataclass(frozen=True)
class Success:
    payload: Any


@dataclass(frozen=True)
class Failure:
    reason: str


UpstreamOutcome = Union[Success, Failure]
