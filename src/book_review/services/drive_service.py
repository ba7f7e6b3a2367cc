"""
Google Drive 归档服务 - 服务账号上传/删除 Markdown 文件
"""
import io
import re
from typing import Any, Optional

import google_auth_httplib2
import httplib2
from google.auth.exceptions import GoogleAuthError, RefreshError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from book_review.core import Settings, get_settings, get_logger
from book_review.services.outcome import AdapterResult, FailureReason

logger = get_logger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive.file"]
MARKDOWN_MIME_TYPE = "text/markdown"
DISALLOWED_NAME_CHARS = re.compile(r"[^0-9A-Za-z\uac00-\ud7a3\u4e00-\u9fa5_\-]")

# Drive 调用中预期会出现的异常（TimeoutError 属于 OSError）
DRIVE_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError, ValueError)


def to_markdown_filename(title: str) -> str:
    """把标题转成安全的 .md 文件名"""
    base = re.sub(r"\.md$", "", title.strip(), flags=re.IGNORECASE)
    slug = DISALLOWED_NAME_CHARS.sub("", re.sub(r"\s+", "-", base))
    return f"{slug or 'review'}.md"


def _http_error_reason(error: HttpError) -> FailureReason:
    status = int(error.resp.status)
    if status == 429:
        return FailureReason.RATE_LIMITED
    if status in (401, 403):
        return FailureReason.UNAUTHORIZED
    if status >= 500:
        return FailureReason.UNAVAILABLE
    return FailureReason.INVALID_RESPONSE


class GoogleDriveService:
    """
    Google Drive 归档服务

    使用服务账号凭据；未配置凭据时所有操作返回 NOT_CONFIGURED
    """

    def __init__(self, settings: Optional[Settings] = None, drive: Any = None):
        settings = settings or get_settings()
        self.credentials_path = settings.google_drive_credentials_path
        self.parent_folder_id = settings.google_drive_parent_folder_id
        self.timeout = settings.google_drive_timeout
        self._drive = drive

    @property
    def configured(self) -> bool:
        return self._drive is not None or bool(self.credentials_path)

    def _get_drive(self):
        """延迟创建 Drive 客户端"""
        if self._drive is None:
            credentials = service_account.Credentials.from_service_account_file(
                self.credentials_path, scopes=SCOPES
            )
            http = google_auth_httplib2.AuthorizedHttp(
                credentials, http=httplib2.Http(timeout=self.timeout)
            )
            self._drive = build("drive", "v3", http=http, cache_discovery=False)
            logger.info("[DRIVE] Google Drive 客户端初始化完成")
        return self._drive

    def upload_markdown(self, title: str, markdown: str) -> AdapterResult[str]:
        """
        上传 Markdown 文件

        Args:
            title: 书评标题（用于生成文件名）
            markdown: 文件内容

        Returns:
            成功时为 Drive 文件ID
        """
        if not self.configured:
            logger.warning("[DRIVE] 未配置 Google Drive 凭据，跳过上传")
            return AdapterResult.failure(FailureReason.NOT_CONFIGURED, "Google Drive 凭据未配置")

        filename = to_markdown_filename(title)
        metadata = {"name": filename, "mimeType": MARKDOWN_MIME_TYPE}
        if self.parent_folder_id:
            metadata["parents"] = [self.parent_folder_id]

        media = MediaIoBaseUpload(
            io.BytesIO(markdown.encode("utf-8")),
            mimetype=MARKDOWN_MIME_TYPE,
            resumable=False,
        )
        logger.info(f"[DRIVE] 上传文件: filename='{filename}'")

        try:
            uploaded = self._get_drive().files().create(
                body=metadata,
                media_body=media,
                fields="id",
            ).execute()
        except DRIVE_ERRORS as e:
            return self._failure("上传", e)

        file_id = (uploaded or {}).get("id")
        if not file_id:
            logger.warning("[DRIVE] 上传响应中没有文件ID")
            return AdapterResult.failure(FailureReason.INVALID_RESPONSE, "Drive 返回的文件ID为空")

        logger.info(f"[DRIVE] 上传成功: file_id={file_id}")
        return AdapterResult.success(file_id)

    def delete_file(self, file_id: str) -> AdapterResult[None]:
        """删除 Drive 文件（文件已不存在视为成功）"""
        if not self.configured:
            logger.warning(f"[DRIVE] 未配置 Google Drive 凭据，无法删除: file_id={file_id}")
            return AdapterResult.failure(FailureReason.NOT_CONFIGURED, "Google Drive 凭据未配置")

        logger.info(f"[DRIVE] 删除文件: file_id={file_id}")
        try:
            self._get_drive().files().delete(fileId=file_id).execute()
        except HttpError as e:
            if int(e.resp.status) == 404:
                logger.info(f"[DRIVE] 文件已不存在: file_id={file_id}")
                return AdapterResult.success(None)
            return self._failure("删除", e)
        except DRIVE_ERRORS as e:
            return self._failure("删除", e)

        return AdapterResult.success(None)

    def _failure(self, action: str, error: Exception) -> AdapterResult:
        """把 Drive 调用中的异常归类为失败原因"""
        if isinstance(error, HttpError):
            reason = _http_error_reason(error)
        elif isinstance(error, TimeoutError):
            reason = FailureReason.TIMEOUT
        elif isinstance(error, (RefreshError, ValueError, FileNotFoundError)):
            # 凭据文件无效或授权失败
            reason = FailureReason.UNAUTHORIZED
        else:
            reason = FailureReason.UNAVAILABLE

        logger.warning(f"[DRIVE] {action}失败: reason={reason.value}, error={error}")
        return AdapterResult.failure(reason, str(error))


# 全局单例
_drive_service: Optional[GoogleDriveService] = None


def get_drive_service() -> GoogleDriveService:
    """获取 Drive 服务单例"""
    global _drive_service
    if _drive_service is None:
        _drive_service = GoogleDriveService()
    return _drive_service
