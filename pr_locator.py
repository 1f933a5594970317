import re
from errors import InvalidLocator
from models import PrLocator

# 組織・プロジェクト・リポジトリは "/" を含まないセグメント、IDは10進数
_SUFFIX = r"/([^/?#]+)/_git/([^/?#]+)/pullrequest/([0-9]+)/?(?:[?#].*)?"

_DEV_AZURE_PATTERN = re.compile(
    r"https://dev\.azure\.com/([^/?#]+)" + _SUFFIX, re.IGNORECASE
)
_VISUAL_STUDIO_PATTERN = re.compile(
    r"https://([^./?#]+)\.visualstudio\.com" + _SUFFIX, re.IGNORECASE
)


def parse_pr_url(url: str) -> PrLocator:
    """PRのURLから組織・プロジェクト・リポジトリ・PR IDを取り出す

    対応する形式:
        https://dev.azure.com/{organization}/{project}/_git/{repository}/pullrequest/{id}
        https://{organization}.visualstudio.com/{project}/_git/{repository}/pullrequest/{id}

    Args:
        url: プルリクエストのURL

    Returns:
        PrLocator

    Raises:
        InvalidLocator: どちらの形式にも一致しない、またはIDが1未満の場合
    """
    candidate = url.strip() if isinstance(url, str) else ""

    for pattern in (_DEV_AZURE_PATTERN, _VISUAL_STUDIO_PATTERN):
        match = pattern.fullmatch(candidate)
        if not match:
            continue

        organization, project, repository, raw_id = match.groups()
        pull_request_id = int(raw_id, 10)
        if pull_request_id < 1:
            raise InvalidLocator(url)

        return PrLocator(
            organization=organization,
            project=project,
            repository=repository,
            pullRequestId=pull_request_id,
        )

    raise InvalidLocator(url)
