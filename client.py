import base64
from typing import Any, Dict, Optional, Type, TypeVar
import httpx
from pydantic import BaseModel, ValidationError
from errors import MalformedResponse, RemoteRequestFailed
from logger import get_logger
from models import Credential

logger = get_logger()

API_VERSION = "7.1"
DEFAULT_TIMEOUT = 30.0

T = TypeVar("T", bound=BaseModel)


def build_authorization_header(credential: Credential) -> str:
    """Credentialの種類に応じたAuthorizationヘッダーの値を作成

    Args:
        credential: Credential Providerが返した資格情報

    Returns:
        PATの場合は "Basic base64(:token)"、対話的サインインの場合は "Bearer token"
    """
    if credential.kind == "static":
        encoded = base64.b64encode(f":{credential.token}".encode("utf-8")).decode("ascii")
        return f"Basic {encoded}"
    return f"Bearer {credential.token}"


class AzureReposClient:
    def __init__(
        self,
        credential_provider,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """AzureReposClientを初期化

        Args:
            credential_provider: acquire()でCredentialを返すオブジェクト
            http_client: 使用するhttpx.AsyncClient（省略時は内部で作成し、close時に閉じる）
            timeout: リクエストのタイムアウト秒数
        """
        self.credential_provider = credential_provider
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

    async def __aenter__(self) -> "AzureReposClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _headers(self, accept: str, with_body: bool = False) -> Dict[str, str]:
        credential = await self.credential_provider.acquire()
        headers = {
            "Authorization": build_authorization_header(credential),
            "Accept": accept,
        }
        if with_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        context: str,
        headers: Dict[str, str],
        body: Optional[Any] = None,
    ) -> httpx.Response:
        logger.debug(f"{method} {url}")
        try:
            response = await self._http.request(method, url, headers=headers, json=body)
        except httpx.TransportError as e:
            raise RemoteRequestFailed(None, str(e) or type(e).__name__, context) from e

        if not response.is_success:
            logger.debug(f"{method} {url} -> HTTP {response.status_code}")
            raise RemoteRequestFailed(response.status_code, response.reason_phrase, context)

        return response

    async def send(
        self,
        method: str,
        url: str,
        context: str,
        body: Optional[Any] = None,
        response_model: Optional[Type[T]] = None,
    ) -> Optional[T]:
        """認証付きでJSON APIを呼び出す

        Args:
            method: HTTPメソッド
            url: api-versionを含む完全なURL
            context: エラー時に表示する操作名（例: "Failed to get PR details"）
            body: JSONとして送信する本文
            response_model: 応答をデコードするモデル（省略時は応答本文を読まない）

        Returns:
            response_modelのインスタンス、またはNone

        Raises:
            RemoteRequestFailed: 2xx以外の応答、または通信エラー
            MalformedResponse: 応答がresponse_modelの形式でない場合
        """
        headers = await self._headers("application/json", with_body=body is not None)
        response = await self._request(method, url, context, headers, body)

        if response_model is None:
            return None

        try:
            return response_model.model_validate(response.json())
        except ValidationError as e:
            raise MalformedResponse(context, f"{e.error_count()} validation error(s)") from e
        except ValueError as e:
            raise MalformedResponse(context, "invalid JSON") from e

    async def get_text(self, url: str, context: str) -> str:
        """blobなどの内容をテキストとして取得

        Returns:
            応答本文（空の場合は空文字列）
        """
        headers = await self._headers("text/plain")
        response = await self._request("GET", url, context, headers)
        return response.text or ""
