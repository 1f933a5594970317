from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

# フィールド名はAzure DevOps REST APIのJSONに合わせる（camelCase）


class PrLocator(BaseModel):
    # PR URLから取り出した識別子。リクエストごとに一度だけ生成する
    model_config = ConfigDict(frozen=True)

    organization: str
    project: str
    repository: str
    pullRequestId: int = Field(ge=1)


class Credential(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["static", "delegated"]
    token: str = Field(min_length=1)


class PullRequestSummary(BaseModel):
    pullRequestId: int
    status: str
    mergeStatus: Optional[str] = None  # マージ評価中は返らないことがある
    sourceRefName: Optional[str] = None
    targetRefName: Optional[str] = None


class FileItem(BaseModel):
    objectId: Optional[str] = None  # 変更後のblob
    originalObjectId: Optional[str] = None  # 変更前のblob
    gitObjectType: Optional[str] = None  # blob, tree, ...
    path: Optional[str] = None
    url: Optional[str] = None
    isFolder: Optional[bool] = None
    commitId: Optional[str] = None


class ChangeEntry(BaseModel):
    changeType: str  # add, edit, delete, rename, ...
    item: FileItem


class CommitDiffs(BaseModel):
    changes: List[ChangeEntry] = []


class FileDiff(BaseModel):
    path: str
    originalContent: Optional[str] = None
    patch: str


class CommentRequest(BaseModel):
    path: str
    startLine: int
    startOffset: int
    endLine: int
    endOffset: int
    text: str
