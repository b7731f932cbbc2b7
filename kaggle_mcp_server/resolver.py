# Copyright (c) 2023-2024 Datalayer, Inc.
#
# BSD 3-Clause License

"""
Identifier resolution for Kaggle resources.

A dataset or notebook can be named either by a compact handle
(``owner_slug/resource_slug``) or by its web URL
(``https://www.kaggle.com/datasets/owner_slug/resource_slug``). This module
validates both forms, picks one of them, and turns the result into the API
endpoint for a given operation.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import quote, unquote, urlsplit

import httpx

import kaggle_mcp_server.config as config
from kaggle_mcp_server.models import Identifier, IdentifierSource, ResourceKind
from kaggle_mcp_server.utils import slugify_title

logger = logging.getLogger(__name__)

API_V1 = "api/v1"
API_V1_KERNELS = f"{API_V1}/kernels"
API_V1_KERNELS_PULL = f"{API_V1_KERNELS}/pull"
API_V1_KERNELS_STATUS = f"{API_V1_KERNELS}/status"
API_V1_KERNELS_PUSH = f"{API_V1_KERNELS}/push"
API_V1_DATASETS_LIST = f"{API_V1}/datasets/list"
CROISSANT_DOWNLOAD_SUFFIX = "croissant/download"


class InvalidIdentifier(ValueError):
    """Raised when a handle or URL cannot name a Kaggle resource."""


@dataclass(frozen=True)
class ValidationRule:
    """A named predicate with the message reported when it fails."""

    name: str
    check: Callable[[str, ResourceKind], bool]
    message: Callable[[ResourceKind], str]


def _run_rules(rules: list[ValidationRule], value: str, kind: ResourceKind) -> None:
    for rule in rules:
        if not rule.check(value, kind):
            logger.debug(f"Identifier {value!r} failed rule {rule.name}")
            raise InvalidIdentifier(rule.message(kind))


###############################################################################
# Handle validation
###############################################################################


def _has_owner_and_slug(value: str, kind: ResourceKind) -> bool:
    parts = value.split("/")
    return len(parts) == 2 and all(parts)


HANDLE_RULES: list[ValidationRule] = [
    ValidationRule(
        name="owner_and_slug",
        check=_has_owner_and_slug,
        message=lambda kind: f"Kaggle slugs must contain an owner slug and {kind.label} slug",
    ),
]


def parse_handle(value: str, kind: ResourceKind) -> tuple[str, str]:
    """Split a handle into (owner, slug), raising InvalidIdentifier if malformed."""
    _run_rules(HANDLE_RULES, value, kind)
    owner, slug = value.split("/")
    return owner, slug


###############################################################################
# URL validation
###############################################################################


def _is_absolute_url(value: str, kind: ResourceKind) -> bool:
    try:
        parts = urlsplit(value)
        # Accessing the port validates it.
        parts.port
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def _is_allowed_domain(value: str, kind: ResourceKind) -> bool:
    return urlsplit(value).hostname in config.ALLOWED_DOMAINS


def _has_resource_path(value: str, kind: ResourceKind) -> bool:
    segments = urlsplit(value).path.split("/")
    if len(segments) < kind.min_path_segments:
        return False
    _, root, owner, slug = segments[:4]
    return root == kind.url_root and bool(owner) and bool(slug)


URL_RULES: list[ValidationRule] = [
    ValidationRule(
        name="absolute_url",
        check=_is_absolute_url,
        message=lambda kind: "Kaggle URL must be an absolute http(s) URL",
    ),
    ValidationRule(
        name="allowed_domain",
        check=_is_allowed_domain,
        message=lambda kind: (
            f"URL must be from one of the following domains: {', '.join(config.ALLOWED_DOMAINS)}"
        ),
    ),
    ValidationRule(
        name="path_shape",
        check=_has_resource_path,
        message=lambda kind: (
            f"URL path must start with /{kind.url_root} and have <owner_slug>/<{kind.label}_slug>"
        ),
    ),
]


def parse_resource_url(value: str, kind: ResourceKind) -> tuple[str, str, str]:
    """Split a Kaggle web URL into (origin, owner, slug)."""
    _run_rules(URL_RULES, value, kind)
    parts = urlsplit(value)
    _, _, owner, slug = parts.path.split("/")[:4]
    owner, slug = unquote(owner), unquote(slug)
    origin = f"{parts.scheme}://{parts.hostname}"
    if parts.port:
        origin = f"{origin}:{parts.port}"
    return origin, owner, slug


def validate_handle(kind: ResourceKind) -> Callable[[Optional[str]], Optional[str]]:
    """Build a pydantic-compatible validator for handles of the given kind."""

    def _validate(value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_handle(value, kind)
        return value

    return _validate


def validate_resource_url(kind: ResourceKind) -> Callable[[Optional[str]], Optional[str]]:
    """Build a pydantic-compatible validator for URLs of the given kind."""

    def _validate(value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_resource_url(value, kind)
        return value

    return _validate


###############################################################################
# Resolution
###############################################################################


def resolve_identifier(
    kind: ResourceKind,
    handle: Optional[str] = None,
    url: Optional[str] = None,
) -> Identifier:
    """Resolve a handle or URL to a single Identifier.

    The handle takes priority: when both are given the URL is ignored.
    """
    if handle is not None:
        owner, slug = parse_handle(handle, kind)
        return Identifier(
            owner=owner,
            slug=slug,
            origin=config.DEFAULT_ORIGIN,
            source=IdentifierSource.HANDLE,
            raw=handle,
        )
    if url is not None:
        origin, owner, slug = parse_resource_url(url, kind)
        return Identifier(
            owner=owner,
            slug=slug,
            origin=origin,
            source=IdentifierSource.URL,
            raw=url,
        )
    raise InvalidIdentifier(
        f"No identifier provided: pass either a {kind.label} handle or a Kaggle URL"
    )


def resolve_kernel_slug(username: str, title: str) -> str:
    """Derive the full ``owner/slug`` kernel id a notebook title is pushed under."""
    slug = slugify_title(title)
    if not slug:
        raise InvalidIdentifier(
            f"Notebook title {title!r} must contain at least one letter or digit"
        )
    return f"{username}/{slug}"


###############################################################################
# Endpoints
###############################################################################


def join_url(origin: str, *segments: str) -> str:
    """Join an origin and path segments with exactly one '/' between each."""
    parts = [origin.rstrip("/")]
    parts.extend(segment.strip("/") for segment in segments)
    return "/".join(parts)


def _quoted(identifier: Identifier) -> tuple[str, str]:
    return quote(identifier.owner, safe=""), quote(identifier.slug, safe="")


def croissant_endpoint(identifier: Identifier) -> str:
    return join_url(identifier.origin, *_quoted(identifier), CROISSANT_DOWNLOAD_SUFFIX)


def kernel_status_endpoint(identifier: Identifier) -> str:
    url = httpx.URL(
        join_url(identifier.origin, API_V1_KERNELS_STATUS),
        params={"userName": identifier.owner, "kernelSlug": identifier.slug},
    )
    return str(url)


def kernel_pull_endpoint(identifier: Identifier) -> str:
    return join_url(identifier.origin, API_V1_KERNELS_PULL, *_quoted(identifier))


def kernel_push_endpoint() -> str:
    return join_url(config.DEFAULT_ORIGIN, API_V1_KERNELS_PUSH)


def dataset_search_endpoint() -> str:
    return join_url(config.DEFAULT_ORIGIN, API_V1_DATASETS_LIST)
