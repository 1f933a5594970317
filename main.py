import argparse
from typing import Optional
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from auth import create_credential_provider
from azure_arbiter import AzureReposArbiter
from client import AzureReposClient
from config import LOG_LEVELS, get_settings
from logger import configure_logger, get_logger
from models import CommentRequest

logger = get_logger()

# Create an MCP server
mcp = FastMCP("azure-devops-pr-helper")

# プロセス全体で共有するCredential Provider（起動時に一度だけ作成）
_credential_provider = None


def set_credential_provider(provider) -> None:
    global _credential_provider
    _credential_provider = provider


def get_credential_provider():
    global _credential_provider
    if _credential_provider is None:
        settings = get_settings()
        _credential_provider = create_credential_provider(settings.authentication, settings.pat)
    return _credential_provider


def get_client() -> AzureReposClient:
    return AzureReposClient(get_credential_provider(), timeout=get_settings().request_timeout)


@mcp.tool()
async def get_pr_changes(prUrl: str) -> dict:
    """
    Fetches all file changes in an Azure DevOps pull request with diffs.

    Only files that were added or edited are included. Each change contains the
    file path, the original file content (absent for new files) and a unified
    diff that lists only the changed lines.

    The pull request must be active and free of merge conflicts.

    Args:
        prUrl (str): The full URL of the Azure DevOps pull request,
            e.g. https://dev.azure.com/{org}/{project}/_git/{repo}/pullrequest/{id}

    Returns:
        dict: {"success": true, "changesCount": int, "changes": [{"path", "originalContent", "patch"}]}
    """
    logger.info(f"get_pr_changes: {prUrl}")
    try:
        async with get_client() as client:
            changes = await AzureReposArbiter(client).get_pr_changes(prUrl)
    except Exception as e:
        logger.error(f"get_pr_changes failed: {e}")
        raise ToolError(f"Error fetching PR changes: {e}") from e

    return {
        "success": True,
        "changesCount": len(changes),
        "changes": [change.model_dump(exclude_none=True) for change in changes],
    }


@mcp.tool()
async def post_pr_comment(
    prUrl: str,
    comment: str,
    filePath: str,
    rightFileStartLine: int,
    rightFileStartOffset: int,
    rightFileEndLine: int,
    rightFileEndOffset: int,
) -> dict:
    """
    Posts a comment to an Azure DevOps pull request thread.

    A new thread is created on the given file, anchored to a range in the
    right-hand (changed) side of the diff. Lines and offsets are 1-based.

    Args:
        prUrl (str): The full URL of the Azure DevOps pull request.
        comment (str): The comment text to post.
        filePath (str): File path to attach comment to (creates new thread).
        rightFileStartLine (int): Start line number in file to attach comment to.
        rightFileStartOffset (int): Offset in start line to attach comment to.
        rightFileEndLine (int): End line number in file to attach comment to.
        rightFileEndOffset (int): Offset in end line to attach comment to.

    Returns:
        dict: {"success": true}
    """
    logger.info(f"post_pr_comment: {prUrl} {filePath}:{rightFileStartLine}-{rightFileEndLine}")
    request = CommentRequest(
        path=filePath,
        startLine=rightFileStartLine,
        startOffset=rightFileStartOffset,
        endLine=rightFileEndLine,
        endOffset=rightFileEndOffset,
        text=comment,
    )
    try:
        async with get_client() as client:
            await AzureReposArbiter(client).post_pr_comment(prUrl, request)
    except Exception as e:
        logger.error(f"post_pr_comment failed: {e}")
        raise ToolError(f"Error posting comment: {e}") from e

    return {"success": True}


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Azure DevOps PR Helper MCP Server")
    parser.add_argument(
        "-a",
        "--authentication",
        choices=["interactive", "pat"],
        default=settings.authentication,
        help="Type of authentication to use (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=settings.log_level,
        help="Log level (default: %(default)s)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list] = None) -> None:
    args = parse_args(argv)
    configure_logger(args.log_level)
    set_credential_provider(create_credential_provider(args.authentication, get_settings().pat))
    logger.info(f"Azure DevOps PR Helper MCP Server running on stdio with {args.authentication} authentication")
    mcp.run()


if __name__ == "__main__":
    main()
