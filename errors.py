from typing import Optional

"""
レビュー支援サーバーで発生するエラー。
メッセージはそのままツールの結果としてAIに返されるため、英語の文章で記述する。
"""


class AzureReviewError(Exception):
    """このサーバーが送出するすべてのエラーの基底クラス"""


class InvalidLocator(AzureReviewError):
    def __init__(self, url: str):
        super().__init__(f"Invalid Azure DevOps PR URL format: {url}")
        self.url = url


class MissingCredential(AzureReviewError):
    def __init__(self):
        super().__init__(
            "Personal Access Token (PAT) not found in AZURE_DEVOPS_PAT environment variable."
        )


class AuthenticationFailed(AzureReviewError):
    def __init__(self, detail: Optional[str] = None):
        message = "Failed to obtain Azure DevOps OAuth token."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class RemoteRequestFailed(AzureReviewError):
    """Azure DevOps APIが2xx以外を返した（または通信自体に失敗した）

    Args:
        status: HTTPステータスコード（通信エラーの場合はNone）
        reason: ステータスの理由句またはエラー内容
        context: 呼び出し元の操作名（例: "Failed to get PR details"）
    """

    def __init__(self, status: Optional[int], reason: str, context: str):
        if status is None:
            message = f"{context}: {reason}"
        else:
            message = f"{context}: HTTP {status}: {reason}"
        super().__init__(message)
        self.status = status
        self.reason = reason
        self.context = context


class MalformedResponse(AzureReviewError):
    def __init__(self, context: str, detail: str):
        super().__init__(f"{context}: unexpected response format ({detail})")
        self.context = context


class PullRequestNotActive(AzureReviewError):
    def __init__(self, status: str):
        super().__init__(f"The PR is not active (status: {status}).")
        self.status = status


class PullRequestHasConflicts(AzureReviewError):
    def __init__(self, merge_status: Optional[str]):
        super().__init__(f"The PR has merge conflict (mergeStatus: {merge_status}).")
        self.merge_status = merge_status


class BranchResolutionFailed(AzureReviewError):
    def __init__(self):
        super().__init__("Could not determine source or target branch from PR details.")


class NoChangesFound(AzureReviewError):
    def __init__(self):
        super().__init__("No changed files found in this PR.")


class NoEligibleFiles(AzureReviewError):
    def __init__(self):
        super().__init__("No supported code file found in this PR.")
