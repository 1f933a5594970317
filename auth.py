import asyncio
from typing import Optional
import msal
from errors import AuthenticationFailed, MissingCredential
from logger import get_logger
from models import Credential

logger = get_logger()

# Azure DevOps向けの公開クライアントとリソース
CLIENT_ID = "0d50963b-7bb9-4fe7-94c7-a99af00b5136"
AUTHORITY = "https://login.microsoftonline.com/common"
SCOPES = ["499b84ac-1321-427f-aa17-267ca6975798/.default"]


class StaticCredentialProvider:
    """事前に発行されたPersonal Access Token (PAT) をそのまま返す"""

    def __init__(self, token: Optional[str]):
        self._token = token

    async def acquire(self) -> Credential:
        if not self._token:
            raise MissingCredential()
        return Credential(kind="static", token=self._token)


class DelegatedCredentialProvider:
    """ブラウザでの対話的なサインインでOAuthトークンを取得する

    一度サインインしたアカウントをインスタンス内に保持し、次回以降は
    サイレント取得（キャッシュ済みトークン、またはリフレッシュトークンでの更新）を試みる。
    サイレント取得に失敗した場合のみ対話的なサインインをやり直す。

    対話的なサインインはユーザーの操作を待つため、完了までの時間に上限はない。
    同時に呼ばれた場合は実行中の取得処理を共有し、ブラウザを二重に開かない。
    """

    def __init__(self, app=None):
        """
        Args:
            app: msal.PublicClientApplication互換のオブジェクト（省略時は新規作成）
        """
        self._app = app or msal.PublicClientApplication(CLIENT_ID, authority=AUTHORITY)
        self._account = None
        self._pending: Optional[asyncio.Future] = None

    async def acquire(self) -> Credential:
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._acquire_token())
            self._pending.add_done_callback(self._clear_pending)

        # 待機側がキャンセルされても、共有している取得処理は継続させる
        token = await asyncio.shield(self._pending)
        return Credential(kind="delegated", token=token)

    def _clear_pending(self, future: asyncio.Future) -> None:
        if self._pending is future:
            self._pending = None

    async def _acquire_token(self) -> str:
        result = None

        if self._account is not None:
            try:
                result = await asyncio.to_thread(
                    self._app.acquire_token_silent, SCOPES, account=self._account
                )
            except Exception as e:
                logger.warning(f"Silent token acquisition failed: {e}")
                result = None

            if result and "access_token" not in result:
                logger.warning(
                    f"Silent token acquisition was rejected: {result.get('error')}"
                )
                result = None

        if not result:
            logger.info("Opening browser for interactive Azure DevOps sign-in")
            result = await asyncio.to_thread(self._app.acquire_token_interactive, SCOPES)

            if not result or not result.get("access_token"):
                detail = (result or {}).get("error_description")
                raise AuthenticationFailed(detail)

            self._account = self._find_account(result)

        return result["access_token"]

    def _find_account(self, result: dict):
        """対話的サインインの結果から、次回のサイレント取得に使うアカウントを探す"""
        claims = result.get("id_token_claims") or {}
        username = claims.get("preferred_username")
        accounts = self._app.get_accounts(username=username)
        return accounts[0] if accounts else None


def create_credential_provider(kind: str, pat: Optional[str] = None):
    """認証方式に応じたCredential Providerを作成

    Args:
        kind: "pat" または "interactive"
        pat: PAT方式で使うトークン

    Returns:
        StaticCredentialProvider または DelegatedCredentialProvider
    """
    if kind == "pat":
        if not pat:
            raise MissingCredential()
        return StaticCredentialProvider(pat)
    return DelegatedCredentialProvider()
