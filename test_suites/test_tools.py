"""
Unit tests for the Kaggle MCP tools, with the Kaggle API faked out.
"""

import json
import unittest
from typing import Callable
from unittest import mock

import httpx

import kaggle_mcp_server.config as config
from kaggle_mcp_server.models import KaggleCredentials
from kaggle_mcp_server.tools import KaggleTools
from kaggle_mcp_server.transport import KaggleTransport

CROISSANT = '{"@context": {"@language": "en"}, "@type": "sc:Dataset", "name": "ds1"}'


class ToolsTestCase(unittest.IsolatedAsyncioTestCase):
    """Runs each tool against a fake Kaggle that records every request"""

    verbose_errors = False

    def setUp(self):
        patcher = mock.patch.object(config, "DEFAULT_ORIGIN", "https://www.kaggle.com")
        patcher.start()
        self.addCleanup(patcher.stop)

        self.requests: list[httpx.Request] = []
        self.respond: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(200, text=CROISSANT)

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.respond(request)

        credentials = KaggleCredentials.from_values("alice", "s3cret")
        transport = KaggleTransport(credentials, http_transport=httpx.MockTransport(handler))
        self.tools = KaggleTools(credentials, transport=transport, verbose_errors=self.verbose_errors)

    def assertSingleText(self, result) -> str:
        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].type, "text")
        return result[0].text


class TestGetDatasetMetadata(ToolsTestCase):
    async def test_handle_builds_croissant_endpoint(self):
        result = await self.tools.get_dataset_metadata(dataset_handle="owner1/ds1")

        self.assertEqual(self.assertSingleText(result), CROISSANT)
        self.assertEqual(str(self.requests[0].url), "https://www.kaggle.com/owner1/ds1/croissant/download")

    async def test_url_builds_same_endpoint(self):
        await self.tools.get_dataset_metadata(kaggle_url="https://www.kaggle.com/datasets/owner1/ds1")

        self.assertEqual(str(self.requests[0].url), "https://www.kaggle.com/owner1/ds1/croissant/download")

    async def test_handle_takes_priority(self):
        await self.tools.get_dataset_metadata(
            kaggle_url="https://www.kaggle.com/datasets/other/thing",
            dataset_handle="owner1/ds1",
        )

        self.assertEqual(str(self.requests[0].url), "https://www.kaggle.com/owner1/ds1/croissant/download")

    async def test_payload_passed_through_verbatim(self):
        body = '{\n  "name":   "spaced"\n}\n'
        self.respond = lambda request: httpx.Response(200, text=body)

        result = await self.tools.get_dataset_metadata(dataset_handle="owner1/ds1")

        self.assertEqual(self.assertSingleText(result), body)

    async def test_upstream_failure(self):
        self.respond = lambda request: httpx.Response(404, text="missing")

        result = await self.tools.get_dataset_metadata(dataset_handle="owner1/ds1")

        text = self.assertSingleText(result)
        self.assertEqual(text, "Failed to retrieve Croissant for owner1/ds1")

    async def test_empty_body_is_failure(self):
        self.respond = lambda request: httpx.Response(200, text="")

        result = await self.tools.get_dataset_metadata(kaggle_url="https://www.kaggle.com/datasets/owner1/ds1")

        self.assertEqual(
            self.assertSingleText(result),
            "Failed to retrieve Croissant for https://www.kaggle.com/datasets/owner1/ds1",
        )

    async def test_no_identifier_is_rendered_not_raised(self):
        result = await self.tools.get_dataset_metadata()

        text = self.assertSingleText(result)
        self.assertTrue(text.startswith("Failed to retrieve Croissant"))
        self.assertIn("No identifier provided", text)
        self.assertEqual(self.requests, [])

    async def test_reserved_characters_do_not_change_the_endpoint(self):
        await self.tools.get_dataset_metadata(dataset_handle="owner1/ds1#x")

        url = self.requests[0].url
        self.assertEqual(url.raw_path, b"/owner1/ds1%23x/croissant/download")
        self.assertEqual(url.fragment, "")

    async def test_resolution_is_logged_with_its_source(self):
        with self.assertLogs("kaggle_mcp_server.tools", level="INFO") as logs:
            await self.tools.get_dataset_metadata(dataset_handle="owner1/ds1")
            await self.tools.get_dataset_metadata(kaggle_url="https://www.kaggle.com/datasets/owner1/ds1")

        resolved = [line for line in logs.output if "Resolved" in line]
        self.assertEqual(len(resolved), 2)
        self.assertIn("Resolved handle 'owner1/ds1'", resolved[0])
        self.assertIn("Resolved url 'https://www.kaggle.com/datasets/owner1/ds1'", resolved[1])

    async def test_repeated_calls_are_not_cached(self):
        first = await self.tools.get_dataset_metadata(dataset_handle="owner1/ds1")
        second = await self.tools.get_dataset_metadata(dataset_handle="owner1/ds1")

        self.assertEqual(len(self.requests), 2)
        self.assertEqual(first, second)


class TestSearchDatasets(ToolsTestCase):
    async def test_results_returned_as_json(self):
        results = [{"ref": "owner1/flowers", "title": "Flowers"}]
        self.respond = lambda request: httpx.Response(200, json=results)

        result = await self.tools.search_datasets("flowers")

        self.assertEqual(json.loads(self.assertSingleText(result)), results)
        request = self.requests[0]
        self.assertEqual(request.url.path, "/api/v1/datasets/list")
        self.assertEqual(request.url.params["search"], "flowers")
        self.assertEqual(request.url.params["page"], "1")

    async def test_empty_results_are_failure(self):
        self.respond = lambda request: httpx.Response(200, json=[])

        result = await self.tools.search_datasets("flowers")

        text = self.assertSingleText(result)
        self.assertIn("Failed", text)
        self.assertIn("flowers", text)

    async def test_non_list_results_are_failure(self):
        self.respond = lambda request: httpx.Response(200, json={"error": "bad"})

        result = await self.tools.search_datasets("flowers")

        self.assertEqual(self.assertSingleText(result), "Failed to find results for flowers")

    async def test_upstream_failure(self):
        self.respond = lambda request: httpx.Response(500, text="boom")

        result = await self.tools.search_datasets("flowers")

        self.assertEqual(self.assertSingleText(result), "Failed to find results for flowers")


class TestMakeNotebookWithDataset(ToolsTestCase):
    async def test_push_body(self):
        self.respond = lambda request: httpx.Response(200, json={"ref": "/code/alice/my-notebook", "error": ""})

        result = await self.tools.make_notebook_with_dataset(
            notebook_content="import pandas as pd",
            notebook_title="My Notebook",
            dataset_handle="owner1/ds1",
        )

        self.assertEqual(
            json.loads(self.assertSingleText(result)),
            {"ref": "/code/alice/my-notebook", "error": ""},
        )
        request = self.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), "https://www.kaggle.com/api/v1/kernels/push")

        body = json.loads(request.content)
        self.assertEqual(body["slug"], "alice/my-notebook")
        self.assertEqual(body["newTitle"], "My Notebook")
        self.assertEqual(body["datasetDataSources"], ["owner1/ds1"])
        self.assertEqual(body["language"], "python")
        self.assertEqual(body["kernelType"], "notebook")

        notebook = json.loads(body["text"])
        self.assertEqual(notebook["nbformat"], 4)
        self.assertEqual(len(notebook["cells"]), 1)
        self.assertEqual(notebook["cells"][0]["cell_type"], "code")
        self.assertEqual(notebook["cells"][0]["source"], "import pandas as pd")
        self.assertEqual(notebook["metadata"]["kernelspec"]["name"], "python3")

    async def test_title_is_sanitized(self):
        self.respond = lambda request: httpx.Response(200, json={"ref": "/code/alice/eda-v2"})

        await self.tools.make_notebook_with_dataset("x = 1", "EDA: v2!", "owner1/ds1")

        self.assertEqual(json.loads(self.requests[0].content)["slug"], "alice/eda-v2")

    async def test_unusable_title_skips_push(self):
        result = await self.tools.make_notebook_with_dataset("x = 1", "???", "owner1/ds1")

        text = self.assertSingleText(result)
        self.assertTrue(text.startswith("Failed to create notebook"))
        self.assertEqual(self.requests, [])

    async def test_upstream_error_field_is_failure(self):
        self.respond = lambda request: httpx.Response(200, json={"error": "Notebook title too short"})

        result = await self.tools.make_notebook_with_dataset("x = 1", "Nb", "owner1/ds1")

        self.assertEqual(
            self.assertSingleText(result),
            "Failed to create notebook 'Nb' with dataset owner1/ds1",
        )

    async def test_upstream_failure(self):
        self.respond = lambda request: httpx.Response(403, text="forbidden")

        result = await self.tools.make_notebook_with_dataset("x = 1", "My Notebook", "owner1/ds1")

        self.assertIn("Failed to create notebook", self.assertSingleText(result))


class TestNotebookStatusAndContent(ToolsTestCase):
    async def test_status_from_handle(self):
        self.respond = lambda request: httpx.Response(200, text='{"status": "complete"}')

        result = await self.tools.get_notebook_status(notebook_handle="owner2/nb1")

        self.assertEqual(self.assertSingleText(result), '{"status": "complete"}')
        self.assertEqual(
            str(self.requests[0].url),
            "https://www.kaggle.com/api/v1/kernels/status?userName=owner2&kernelSlug=nb1",
        )

    async def test_status_from_url(self):
        await self.tools.get_notebook_status(kaggle_url="https://www.kaggle.com/code/owner2/nb1")

        self.assertEqual(
            str(self.requests[0].url),
            "https://www.kaggle.com/api/v1/kernels/status?userName=owner2&kernelSlug=nb1",
        )

    async def test_status_failure(self):
        self.respond = lambda request: httpx.Response(404, text="")

        result = await self.tools.get_notebook_status(notebook_handle="owner2/nb1")

        self.assertEqual(self.assertSingleText(result), "Failed to retrieve notebook status for owner2/nb1")

    async def test_content_paths_match(self):
        await self.tools.get_notebook_content(notebook_handle="owner2/nb1")
        await self.tools.get_notebook_content(kaggle_url="https://www.kaggle.com/code/owner2/nb1")

        urls = [str(request.url) for request in self.requests]
        self.assertEqual(urls, ["https://www.kaggle.com/api/v1/kernels/pull/owner2/nb1"] * 2)

    async def test_query_characters_stay_in_the_pull_path(self):
        await self.tools.get_notebook_content(notebook_handle="owner2/nb1?a=b")

        url = self.requests[0].url
        self.assertEqual(url.raw_path, b"/api/v1/kernels/pull/owner2/nb1%3Fa%3Db")
        self.assertEqual(url.query, b"")

    async def test_encoded_url_gives_same_slug_on_both_endpoints(self):
        kaggle_url = "https://www.kaggle.com/code/owner2/my%20nb"
        await self.tools.get_notebook_status(kaggle_url=kaggle_url)
        await self.tools.get_notebook_content(kaggle_url=kaggle_url)

        status, pull = self.requests
        self.assertNotIn("%2520", str(status.url))
        self.assertEqual(status.url.params["kernelSlug"], "my nb")
        self.assertEqual(pull.url.raw_path, b"/api/v1/kernels/pull/owner2/my%20nb")

    async def test_content_failure(self):
        self.respond = lambda request: httpx.Response(500, text="")

        result = await self.tools.get_notebook_content(kaggle_url="https://www.kaggle.com/code/owner2/nb1")

        self.assertEqual(
            self.assertSingleText(result),
            "Failed to retrieve notebook for https://www.kaggle.com/code/owner2/nb1",
        )

    async def test_no_identifier(self):
        status = await self.tools.get_notebook_status()
        content = await self.tools.get_notebook_content()

        self.assertIn("No identifier provided", self.assertSingleText(status))
        self.assertIn("No identifier provided", self.assertSingleText(content))
        self.assertEqual(self.requests, [])


class TestVerboseErrors(ToolsTestCase):
    verbose_errors = True

    async def test_reason_is_appended(self):
        self.respond = lambda request: httpx.Response(401, text="Unauthorized")

        result = await self.tools.get_notebook_content(notebook_handle="owner2/nb1")

        text = self.assertSingleText(result)
        self.assertTrue(text.startswith("Failed to retrieve notebook for owner2/nb1: "))
        self.assertIn("401", text)


if __name__ == "__main__":
    unittest.main()
