import asyncio
import json
import httpx
import pytest
from mcp.server.fastmcp.exceptions import ToolError
import main
from auth import StaticCredentialProvider
from client import AzureReposClient
from conftest import DIFFS_PATH, blob_path, change, pr_path, pull_request


@pytest.fixture
def tool_client(monkeypatch, fake_devops):
    def _get_client():
        http = httpx.AsyncClient(transport=httpx.MockTransport(fake_devops))
        return AzureReposClient(StaticCredentialProvider("abc"), http_client=http)

    monkeypatch.setattr(main, "get_client", _get_client)
    return fake_devops


def test_get_pr_changes_tool(tool_client, pr_url):
    tool_client.add_json("GET", pr_path(), pull_request())
    tool_client.add_json("GET", DIFFS_PATH, {"changes": [
        change("add", "/hello.txt", object_id="n1"),
        change("edit", "/app.py", object_id="n2", original_object_id="o2"),
    ]})
    tool_client.add_text(blob_path("n1"), "hello\n")
    tool_client.add_text(blob_path("n2"), "a\nx\n")
    tool_client.add_text(blob_path("o2"), "a\nb\n")

    result = asyncio.run(main.get_pr_changes(pr_url))

    assert result["success"] is True
    assert result["changesCount"] == 2
    added, edited = result["changes"]
    assert added == {"path": "/hello.txt", "patch": "--- a/hello.txt\n+++ b/hello.txt\n@@ -0,0 +1,1 @@\n+hello\n"}
    assert edited["originalContent"] == "a\nb\n"
    # ツールの結果はJSONとして返せること
    json.dumps(result)


def test_get_pr_changes_tool_reports_errors(tool_client, pr_url):
    tool_client.add_json("GET", pr_path(), pull_request(status="abandoned"))

    with pytest.raises(ToolError, match="^Error fetching PR changes: The PR is not active"):
        asyncio.run(main.get_pr_changes(pr_url))


def test_get_pr_changes_tool_invalid_url(tool_client):
    with pytest.raises(ToolError, match="Invalid Azure DevOps PR URL format"):
        asyncio.run(main.get_pr_changes("https://example.com/nope"))


def test_post_pr_comment_tool(tool_client, pr_url):
    tool_client.add_json("POST", pr_path() + "/threads", {"id": 7})

    result = asyncio.run(main.post_pr_comment(pr_url, "Looks good", "/app.py", 3, 1, 3, 10))

    assert result == {"success": True}
    payload = json.loads(tool_client.requests[0].content)
    assert payload["threadContext"]["rightFileStart"] == {"line": 3, "offset": 1}


def test_post_pr_comment_tool_reports_errors(tool_client, pr_url):
    tool_client.add_json("POST", pr_path() + "/threads", {"message": "denied"}, status_code=403)

    with pytest.raises(ToolError, match="^Error posting comment: Failed to create thread: HTTP 403"):
        asyncio.run(main.post_pr_comment(pr_url, "Looks good", "/app.py", 3, 1, 3, 10))


def test_tools_keep_working_after_error(tool_client, pr_url):
    with pytest.raises(ToolError):
        asyncio.run(main.get_pr_changes(pr_url))

    tool_client.add_json("POST", pr_path() + "/threads", {"id": 7})
    assert asyncio.run(main.post_pr_comment(pr_url, "ok", "/a.py", 1, 1, 1, 2)) == {"success": True}


def test_tools_are_registered():
    tools = asyncio.run(main.mcp.list_tools())
    names = {tool.name for tool in tools}

    assert names == {"get_pr_changes", "post_pr_comment"}
    schema = next(tool for tool in tools if tool.name == "post_pr_comment").inputSchema
    assert set(schema["required"]) == {
        "prUrl", "comment", "filePath",
        "rightFileStartLine", "rightFileStartOffset", "rightFileEndLine", "rightFileEndOffset",
    }


def test_parse_args_authentication():
    args = main.parse_args(["--authentication", "pat"])

    assert args.authentication == "pat"

    with pytest.raises(SystemExit):
        main.parse_args(["--authentication", "kerberos"])


def test_parse_args_log_level():
    assert main.parse_args(["--log-level", "debug"]).log_level == "DEBUG"

    with pytest.raises(SystemExit):
        main.parse_args(["--log-level", "verbose"])
