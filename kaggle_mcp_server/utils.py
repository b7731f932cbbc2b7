# Copyright (c) 2023-2024 Datalayer, Inc.
#
# BSD 3-Clause License

import json
import re
import unicodedata
from typing import Any

from mcp.types import TextContent

from kaggle_mcp_server.models import Failure

NOTEBOOK_KERNELSPEC = {
    "display_name": "Python 3 (ipykernel)",
    "language": "python",
    "name": "python3",
}

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify_title(title: str) -> str:
    """Turn a notebook title into a Kaggle kernel slug.

    Accents are folded to ASCII, the result is lower-cased, and every run of
    characters other than letters and digits becomes a single hyphen.
    Returns an empty string when nothing usable is left.
    """
    folded = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG_CHARS.sub("-", folded.lower()).strip("-")


def build_notebook_document(source: str) -> dict[str, Any]:
    """Build a single code cell notebook holding the given source."""
    return {
        "nbformat": 4,
        "nbformat_minor": 5,
        "cells": [
            {
                "cell_type": "code",
                "source": source,
                "metadata": {},
                "outputs": [],
                "execution_count": None,
            }
        ],
        "metadata": {"kernelspec": dict(NOTEBOOK_KERNELSPEC)},
    }


def text_result(text: str) -> list[TextContent]:
    """Wrap text in the single text block every tool returns."""
    return [TextContent(type="text", text=text)]


def failure_text(message: str, failure: Failure | None = None, verbose: bool = False) -> str:
    if verbose and failure is not None:
        return f"{message}: {failure.reason}"
    return message


def dump_payload(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    return json.dumps(payload)
