import asyncio
from typing import List, Optional
from urllib.parse import quote
from azure.devops.v7_1.git.models import (
    Comment,
    CommentPosition,
    CommentThreadContext,
    GitPullRequestCommentThread,
)
from client import API_VERSION, AzureReposClient
from errors import (
    BranchResolutionFailed,
    NoChangesFound,
    NoEligibleFiles,
    PullRequestHasConflicts,
    PullRequestNotActive,
)
from logger import get_logger
from models import ChangeEntry, CommentRequest, CommitDiffs, FileDiff, FileItem, PrLocator, PullRequestSummary
from pr_locator import parse_pr_url
from unified_diff_generator import UnifiedDiffGenerator

"""
AzureReposClient からの応答を加工して、MCPとしての結果を返す。
"""

logger = get_logger()

HOST = "https://dev.azure.com"
BRANCH_PREFIX = "refs/heads/"
MAX_CHANGES = 2000  # diffs/commits APIが一度に返す件数の上限
SUPPORTED_CHANGE_TYPES = ("add", "edit")


def get_base_url(locator: PrLocator) -> str:
    return f"{HOST}/{locator.organization}/{locator.project}/_apis/git/repositories/{locator.repository}"


def get_pr_details_url(base_url: str, pull_request_id: int) -> str:
    return f"{base_url}/pullRequests/{pull_request_id}?api-version={API_VERSION}"


def get_diffs_url(base_url: str, source_branch: str, target_branch: str) -> str:
    return (
        f"{base_url}/diffs/commits?baseVersion={target_branch}&targetVersion={source_branch}"
        f"&$top={MAX_CHANGES}&api-version={API_VERSION}"
    )


def get_blob_url(base_url: str, sha: str) -> str:
    return f"{base_url}/blobs/{sha}?api-version={API_VERSION}"


def get_thread_url(base_url: str, pull_request_id: int) -> str:
    return f"{base_url}/pullRequests/{pull_request_id}/threads?api-version={API_VERSION}"


def is_eligible_change(change: ChangeEntry) -> bool:
    """差分を生成する対象の変更か判定

    追加・編集されたファイル（blob）で、パスとURLがあるもののみ対象とする。
    削除・リネーム・移動、フォルダ（tree）は対象外。
    """
    item = change.item
    return (
        change.changeType.lower() in SUPPORTED_CHANGE_TYPES
        and item.gitObjectType == "blob"
        and bool(item.path)
        and bool(item.url)
    )


def branch_short_name(ref_name: Optional[str]) -> str:
    """refs/heads/ を取り除き、URLクエリに使えるようにエンコードしたブランチ名"""
    name = ref_name or ""
    if name.startswith(BRANCH_PREFIX):
        name = name[len(BRANCH_PREFIX):]
    return quote(name, safe="")


async def gather_or_cancel(*coros) -> list:
    """コルーチンを並行実行し、結果を引数の順序で返す

    いずれかが失敗（または呼び出し側が取り消し）した時点で残りのタスクを取り消し、
    最初の例外をそのまま送出する。
    """
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


class AzureReposArbiter:

    def __init__(self, client: AzureReposClient, diff_generator: UnifiedDiffGenerator = None):
        """
        Args:
            client: AzureReposClientのインスタンス
            diff_generator: UnifiedDiffGeneratorのインスタンス（省略時は新規作成）
        """
        self.client = client
        self.diff_generator = diff_generator or UnifiedDiffGenerator()

    async def get_pull_request(self, base_url: str, pull_request_id: int) -> PullRequestSummary:
        """プルリクエストの詳細を取得し、レビュー可能な状態か確認

        Raises:
            PullRequestNotActive: statusがactiveでない場合
            PullRequestHasConflicts: mergeStatusがsucceededでない場合
        """
        pr = await self.client.send(
            "GET",
            get_pr_details_url(base_url, pull_request_id),
            "Failed to get PR details",
            response_model=PullRequestSummary,
        )

        if pr.status != "active":
            raise PullRequestNotActive(pr.status)
        if pr.mergeStatus != "succeeded":
            raise PullRequestHasConflicts(pr.mergeStatus)

        return pr

    async def get_changes(self, base_url: str, source_branch: str, target_branch: str) -> List[ChangeEntry]:
        diffs = await self.client.send(
            "GET",
            get_diffs_url(base_url, source_branch, target_branch),
            "Failed to get git changes",
            response_model=CommitDiffs,
        )
        return diffs.changes

    async def get_blob_content(self, base_url: str, sha: Optional[str]) -> Optional[str]:
        """blobの内容を取得（blob IDがない側はNone）"""
        if not sha:
            return None
        return await self.client.get_text(get_blob_url(base_url, sha), "Failed to download blob content")

    async def get_file_diff(self, base_url: str, item: FileItem) -> FileDiff:
        # 変更前後の内容を並行して取得
        original_content, modified_content = await gather_or_cancel(
            self.get_blob_content(base_url, item.originalObjectId),
            self.get_blob_content(base_url, item.objectId),
        )

        patch = self.diff_generator.generate_file_diff(
            original_content=original_content or "",
            modified_content=modified_content or "",
            file_path=item.path,
        )
        return FileDiff(path=item.path, originalContent=original_content, patch=patch)

    async def resolve_changes(self, locator: PrLocator) -> List[FileDiff]:
        """プルリクエストで追加・編集された全ファイルのUnified Diffを取得

        Args:
            locator: 対象のプルリクエスト

        Returns:
            変更一覧と同じ順序のFileDiffのリスト

        Note:
            - ファイルごとのblob取得と差分生成は並行して実行されます
            - いずれかのファイルで失敗した場合は残りの処理を取り消し、全体を失敗とします
        """
        base_url = get_base_url(locator)

        pr = await self.get_pull_request(base_url, locator.pullRequestId)

        source_branch = branch_short_name(pr.sourceRefName)
        target_branch = branch_short_name(pr.targetRefName)
        if not source_branch or not target_branch:
            raise BranchResolutionFailed()

        changes = await self.get_changes(base_url, source_branch, target_branch)
        if not changes:
            raise NoChangesFound()

        items = [change.item for change in changes if is_eligible_change(change)]
        if not items:
            raise NoEligibleFiles()

        logger.debug(
            f"PR {locator.pullRequestId}: {len(items)} of {len(changes)} changes eligible for diff"
        )

        # gatherは結果を引数の順序で返すため、完了順に関係なく変更一覧の順序が保たれる
        return await gather_or_cancel(*(self.get_file_diff(base_url, item) for item in items))

    async def get_pr_changes(self, pr_url: str) -> List[FileDiff]:
        return await self.resolve_changes(parse_pr_url(pr_url))

    async def publish_comment(self, locator: PrLocator, request: CommentRequest) -> None:
        """ファイルの指定範囲にコメントスレッドを作成

        Args:
            locator: 対象のプルリクエスト
            request: コメント本文と位置（変更後のファイル側の行・列）

        Note:
            行・列の妥当性はここでは検証せず、Azure DevOps側の判断に任せます。
        """
        thread = GitPullRequestCommentThread(
            comments=[Comment(content=request.text)],
            thread_context=CommentThreadContext(
                file_path=request.path,
                right_file_start=CommentPosition(line=request.startLine, offset=request.startOffset),
                right_file_end=CommentPosition(line=request.endLine, offset=request.endOffset),
            ),
        )

        base_url = get_base_url(locator)
        await self.client.send(
            "POST",
            get_thread_url(base_url, locator.pullRequestId),
            "Failed to create thread",
            body=thread.serialize(),
        )

    async def post_pr_comment(self, pr_url: str, request: CommentRequest) -> None:
        await self.publish_comment(parse_pr_url(pr_url), request)
