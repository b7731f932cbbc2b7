# Copyright (c) 2023-2024 Datalayer, Inc.
#
# BSD 3-Clause License

"""
MCP Tool Implementations for Kaggle dataset and notebook operations.

Each tool resolves its identifier, makes one call to the Kaggle API and
returns exactly one text block, whether the call succeeded or not.
"""

import json
import logging
from typing import Annotated, Optional

from mcp.server import FastMCP
from mcp.types import TextContent
from pydantic import AfterValidator, Field

import kaggle_mcp_server.config as config
from kaggle_mcp_server.models import (
    DATASET,
    NOTEBOOK,
    Failure,
    Identifier,
    KaggleCredentials,
    Success,
    UpstreamOutcome,
)
from kaggle_mcp_server.resolver import (
    InvalidIdentifier,
    croissant_endpoint,
    dataset_search_endpoint,
    kernel_pull_endpoint,
    kernel_push_endpoint,
    kernel_status_endpoint,
    resolve_identifier,
    resolve_kernel_slug,
    validate_handle,
    validate_resource_url,
)
from kaggle_mcp_server.transport import KaggleTransport
from kaggle_mcp_server.utils import build_notebook_document, dump_payload, failure_text, text_result

logger = logging.getLogger(__name__)


# Input types
# ===========

DatasetUrl = Annotated[
    Optional[str],
    AfterValidator(validate_resource_url(DATASET)),
    Field(description="The full Kaggle Dataset URL to get metadata for."),
]
DatasetHandle = Annotated[
    Optional[str],
    AfterValidator(validate_handle(DATASET)),
    Field(description="The dataset handle (in the form of <owner_slug>/<dataset_slug>) to get metadata for."),
]
AttachedDatasetHandle = Annotated[
    str,
    AfterValidator(validate_handle(DATASET)),
    Field(description="The dataset (in the form of <owner_slug>/<dataset_slug>) to attach to the notebook."),
]
NotebookUrl = Annotated[
    Optional[str],
    AfterValidator(validate_resource_url(NOTEBOOK)),
    Field(description="The full Kaggle Notebook URL."),
]
NotebookHandle = Annotated[
    Optional[str],
    AfterValidator(validate_handle(NOTEBOOK)),
    Field(description="The notebook handle (in the form of <owner_slug>/<notebook_slug>)."),
]
SearchQuery = Annotated[
    str,
    Field(description="The search term to use when querying datasets on Kaggle."),
]
NotebookContent = Annotated[
    str,
    Field(description="The notebook content to put in the Kaggle notebook."),
]
NotebookTitle = Annotated[
    str,
    Field(description="The title of the notebook being created."),
]


class KaggleTools:
    """The Kaggle tools, bound to one credential and one transport."""

    def __init__(
        self,
        credentials: KaggleCredentials,
        transport: Optional[KaggleTransport] = None,
        verbose_errors: Optional[bool] = None,
    ):
        self._username = credentials.username
        self._transport = transport or KaggleTransport(credentials)
        self._verbose_errors = config.VERBOSE_ERRORS if verbose_errors is None else verbose_errors

    def _failure(self, message: str, failure: Failure | None = None) -> list[TextContent]:
        return text_result(failure_text(message, failure, self._verbose_errors))

    @staticmethod
    def _resolved(identifier: Identifier, endpoint: str) -> str:
        logger.info(f"Resolved {identifier.source.value} {identifier.raw!r} to {endpoint}")
        return endpoint

    def _wrap(self, outcome: UpstreamOutcome, failure_message: str) -> list[TextContent]:
        if isinstance(outcome, Failure):
            return self._failure(failure_message, outcome)
        if not outcome.payload:
            return self._failure(failure_message, Failure("empty response"))
        return text_result(dump_payload(outcome.payload))

    # Dataset Tools
    # =============

    async def get_dataset_metadata(
        self,
        kaggle_url: DatasetUrl = None,
        dataset_handle: DatasetHandle = None,
    ) -> list[TextContent]:
        """Get the Croissant (JSON-LD) metadata document of a Kaggle dataset."""
        logger.info(f"get-dataset-metadata called with kaggle_url={kaggle_url!r}, dataset_handle={dataset_handle!r}")
        try:
            identifier = resolve_identifier(DATASET, handle=dataset_handle, url=kaggle_url)
        except InvalidIdentifier as e:
            return self._failure(f"Failed to retrieve Croissant: {e}")

        outcome = await self._transport.get(self._resolved(identifier, croissant_endpoint(identifier)))
        return self._wrap(outcome, f"Failed to retrieve Croissant for {identifier.raw}")

    async def search_datasets(self, search_query: SearchQuery) -> list[TextContent]:
        """Search Kaggle datasets and return the first page of results."""
        logger.info(f"search-kaggle-datasets called with search_query={search_query!r}")
        outcome = await self._transport.get_json(
            dataset_search_endpoint(),
            params={"search": search_query, "page": 1},
        )
        message = f"Failed to find results for {search_query}"
        if isinstance(outcome, Failure):
            return self._failure(message, outcome)
        if not isinstance(outcome.payload, list) or not outcome.payload:
            return self._failure(message, Failure(f"no results: {json.dumps(outcome.payload)}"))
        return text_result(json.dumps(outcome.payload))

    # Notebook Tools
    # ==============

    async def make_notebook_with_dataset(
        self,
        notebook_content: NotebookContent,
        notebook_title: NotebookTitle,
        dataset_handle: AttachedDatasetHandle,
    ) -> list[TextContent]:
        """Push a single-cell Python notebook to Kaggle with one dataset attached."""
        logger.info(
            f"make-kaggle-notebook-with-dataset called with notebook_title={notebook_title!r}, "
            f"dataset_handle={dataset_handle!r}"
        )
        message = f"Failed to create notebook {notebook_title!r} with dataset {dataset_handle}"
        try:
            dataset = resolve_identifier(DATASET, handle=dataset_handle)
            kernel_slug = resolve_kernel_slug(self._username, notebook_title)
        except InvalidIdentifier as e:
            return self._failure(f"{message}: {e}")

        body = {
            "text": json.dumps(build_notebook_document(notebook_content)),
            "datasetDataSources": [dataset.handle],
            "newTitle": notebook_title,
            "slug": kernel_slug,
            "language": "python",
            "kernelType": "notebook",
        }
        outcome = await self._transport.post(kernel_push_endpoint(), body)
        if isinstance(outcome, Success) and isinstance(outcome.payload, dict) and outcome.payload.get("error"):
            logger.error(f"Kaggle rejected notebook push for {kernel_slug}: {outcome.payload['error']}")
            outcome = Failure(str(outcome.payload["error"]))
        return self._wrap(outcome, message)

    async def get_notebook_status(
        self,
        kaggle_url: NotebookUrl = None,
        notebook_handle: NotebookHandle = None,
    ) -> list[TextContent]:
        """Get the run status of a Kaggle notebook."""
        logger.info(f"get-kaggle-notebook-status called with kaggle_url={kaggle_url!r}, notebook_handle={notebook_handle!r}")
        try:
            identifier = resolve_identifier(NOTEBOOK, handle=notebook_handle, url=kaggle_url)
        except InvalidIdentifier as e:
            return self._failure(f"Failed to retrieve notebook status: {e}")

        outcome = await self._transport.get(self._resolved(identifier, kernel_status_endpoint(identifier)))
        return self._wrap(outcome, f"Failed to retrieve notebook status for {identifier.raw}")

    async def get_notebook_content(
        self,
        kaggle_url: NotebookUrl = None,
        notebook_handle: NotebookHandle = None,
    ) -> list[TextContent]:
        """Get the source and metadata of a Kaggle notebook."""
        logger.info(f"get-kaggle-notebook-content called with kaggle_url={kaggle_url!r}, notebook_handle={notebook_handle!r}")
        try:
            identifier = resolve_identifier(NOTEBOOK, handle=notebook_handle, url=kaggle_url)
        except InvalidIdentifier as e:
            return self._failure(f"Failed to retrieve notebook: {e}")

        outcome = await self._transport.get(self._resolved(identifier, kernel_pull_endpoint(identifier)))
        return self._wrap(outcome, f"Failed to retrieve notebook for {identifier.raw}")


def register_tools(mcp_server: FastMCP, tools: KaggleTools):
    """Register all MCP tools with the provided FastMCP server instance."""

    # Dataset tools
    mcp_server.tool(
        name="get-dataset-metadata",
        description=(
            "Get the metadata for a Kaggle dataset in Croissant (JSON-LD) format. This metadata contains "
            "information about the dataset overall, as well as schema-level information about any tabular "
            "files contained within the dataset. Pass either kaggle_url or dataset_handle; the handle wins "
            "when both are given."
        ),
    )(tools.get_dataset_metadata)
    mcp_server.tool(
        name="search-kaggle-datasets",
        description="Using a provided search query, search for datasets on Kaggle.",
    )(tools.search_datasets)

    # Notebook tools
    mcp_server.tool(
        name="make-kaggle-notebook-with-dataset",
        description="Make a notebook on Kaggle using the provided notebook content and dataset handle.",
    )(tools.make_notebook_with_dataset)
    mcp_server.tool(
        name="get-kaggle-notebook-status",
        description=(
            "Get the status of a Kaggle Notebook. Pass either kaggle_url or notebook_handle; "
            "the handle wins when both are given."
        ),
    )(tools.get_notebook_status)
    mcp_server.tool(
        name="get-kaggle-notebook-content",
        description=(
            "Get the contents of a Kaggle Notebook. Pass either kaggle_url or notebook_handle; "
            "the handle wins when both are given."
        ),
    )(tools.get_notebook_content)
