import pytest
import os
import sys

# Add project root to sys.path so we can import client
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import httpx
from auth import StaticCredentialProvider
from azure_arbiter import AzureReposArbiter
from client import AzureReposClient

PR_URL = "https://dev.azure.com/contoso/Web%20Shop/_git/storefront/pullrequest/42"
BASE_URL = "https://dev.azure.com/contoso/Web%20Shop/_apis/git/repositories/storefront"


class FakeAzureDevOps:
    """Azure DevOps REST APIの代わりに応答を返すhttpx用のハンドラ

    routes: (メソッド, パス) -> httpx.Response または Responseを返す関数
    requests: 受け取ったリクエストの記録
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, response):
        self.routes[(method, path)] = response

    def add_json(self, method, path, payload, status_code=200):
        self.add(method, path, httpx.Response(status_code, json=payload))

    def add_text(self, path, text, status_code=200):
        self.add("GET", path, httpx.Response(status_code, text=text))

    def paths(self):
        return [request.url.path for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if callable(route):
            return route(request)
        return route


REPO_PATH = "/contoso/Web Shop/_apis/git/repositories/storefront"  # httpx.URL.path はデコード済み


def pr_path(pr_id=42):
    return f"{REPO_PATH}/pullRequests/{pr_id}"


def blob_path(sha):
    return f"{REPO_PATH}/blobs/{sha}"


DIFFS_PATH = f"{REPO_PATH}/diffs/commits"


def pull_request(status="active", merge_status="succeeded", source="refs/heads/feature/login", target="refs/heads/main"):
    return {
        "pullRequestId": 42,
        "status": status,
        "mergeStatus": merge_status,
        "sourceRefName": source,
        "targetRefName": target,
        "title": "Add login page",
    }


def change(change_type, path, object_id=None, original_object_id=None, object_type="blob", url="default"):
    item = {"gitObjectType": object_type, "path": path}
    if url == "default":
        url = f"{BASE_URL}/items{path}"
    if url is not None:
        item["url"] = url
    if object_id:
        item["objectId"] = object_id
    if original_object_id:
        item["originalObjectId"] = original_object_id
    return {"changeType": change_type, "item": item}


@pytest.fixture
def fake_devops():
    return FakeAzureDevOps()


@pytest.fixture
def make_arbiter(fake_devops):
    """FakeAzureDevOpsに接続したAzureReposArbiterを作る関数を返す"""

    def _make(provider=None):
        http = httpx.AsyncClient(transport=httpx.MockTransport(fake_devops))
        client = AzureReposClient(provider or StaticCredentialProvider("abc"), http_client=http)
        return AzureReposArbiter(client)

    return _make


@pytest.fixture
def pr_url():
    return PR_URL
