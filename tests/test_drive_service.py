"""
Google Drive 归档服务测试（Drive 客户端用 Mock 替代）
"""
from unittest.mock import Mock, patch

import httplib2
import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from book_review.core import Settings
from book_review.services import FailureReason, GoogleDriveService
from book_review.services import drive_service
from book_review.services.drive_service import to_markdown_filename


def _http_error(status: int) -> HttpError:
    resp = httplib2.Response({"status": status})
    return HttpError(resp, b'{"error": {"message": "drive error"}}')


@pytest.fixture
def drive():
    client = Mock()
    client.files.return_value.create.return_value.execute.return_value = {"id": "file-1"}
    client.files.return_value.delete.return_value.execute.return_value = ""
    return client


def _service(drive, parent_folder_id="") -> GoogleDriveService:
    settings = Settings(google_drive_parent_folder_id=parent_folder_id)
    return GoogleDriveService(settings, drive=drive)


class TestMarkdownFilename:
    @pytest.mark.parametrize(
        "title, expected",
        [
            ("My Book", "My-Book.md"),
            ("  解忧杂货店  ", "解忧杂货店.md"),
            ("책 리뷰", "책-리뷰.md"),
            ("notes.md", "notes.md"),
            ("C'est la vie!", "Cest-la-vie.md"),
            ("!!!", "review.md"),
        ],
    )
    def test_filename(self, title, expected):
        assert to_markdown_filename(title) == expected


class TestUploadMarkdown:
    """upload_markdown 测试"""

    def test_upload_returns_file_id(self, drive):
        result = _service(drive).upload_markdown("My Book", "# My Book\n\nGood.\n")

        assert result.ok
        assert result.value == "file-1"
        kwargs = drive.files.return_value.create.call_args.kwargs
        assert kwargs["body"] == {"name": "My-Book.md", "mimeType": "text/markdown"}
        assert kwargs["fields"] == "id"
        assert kwargs["media_body"].mimetype() == "text/markdown"

    def test_upload_into_parent_folder(self, drive):
        _service(drive, parent_folder_id="folder-9").upload_markdown("My Book", "x")

        body = drive.files.return_value.create.call_args.kwargs["body"]
        assert body["parents"] == ["folder-9"]

    def test_not_configured(self):
        service = GoogleDriveService(Settings(google_drive_credentials_path=""))

        result = service.upload_markdown("My Book", "x")

        assert not service.configured
        assert result.reason == FailureReason.NOT_CONFIGURED

    def test_missing_file_id(self, drive):
        drive.files.return_value.create.return_value.execute.return_value = {}

        result = _service(drive).upload_markdown("My Book", "x")

        assert result.reason == FailureReason.INVALID_RESPONSE

    @pytest.mark.parametrize(
        "error, reason",
        [
            (_http_error(429), FailureReason.RATE_LIMITED),
            (_http_error(403), FailureReason.UNAUTHORIZED),
            (_http_error(503), FailureReason.UNAVAILABLE),
            (_http_error(400), FailureReason.INVALID_RESPONSE),
            (TimeoutError("timed out"), FailureReason.TIMEOUT),
            (RefreshError("invalid_grant"), FailureReason.UNAUTHORIZED),
            (httplib2.ServerNotFoundError("no dns"), FailureReason.UNAVAILABLE),
        ],
    )
    def test_upload_failures(self, drive, error, reason):
        drive.files.return_value.create.return_value.execute.side_effect = error

        result = _service(drive).upload_markdown("My Book", "x")

        assert not result.ok
        assert result.reason == reason


class TestClientConfiguration:
    """Drive 客户端：按配置超时创建，单次请求"""

    def test_client_built_with_configured_timeout(self):
        settings = Settings(google_drive_credentials_path="/secrets/drive.json", google_drive_timeout=12)
        service = GoogleDriveService(settings)

        with patch.object(drive_service.service_account.Credentials, "from_service_account_file") as load, \
                patch.object(drive_service.httplib2, "Http") as http_cls, \
                patch.object(drive_service.google_auth_httplib2, "AuthorizedHttp") as authorized, \
                patch.object(drive_service, "build") as build:
            build.return_value.files.return_value.create.return_value.execute.return_value = {"id": "file-1"}

            result = service.upload_markdown("My Book", "x")

        assert result.value == "file-1"
        load.assert_called_once_with("/secrets/drive.json", scopes=drive_service.SCOPES)
        http_cls.assert_called_once_with(timeout=12)
        authorized.assert_called_once_with(load.return_value, http=http_cls.return_value)
        build.assert_called_once_with("drive", "v3", http=authorized.return_value, cache_discovery=False)

    def test_failed_upload_is_not_retried(self, drive):
        execute = drive.files.return_value.create.return_value.execute
        execute.side_effect = _http_error(503)

        result = _service(drive).upload_markdown("My Book", "x")

        assert result.reason == FailureReason.UNAVAILABLE
        execute.assert_called_once_with()


class TestDeleteFile:
    """delete_file 测试"""

    def test_delete(self, drive):
        result = _service(drive).delete_file("file-1")

        assert result.ok
        drive.files.return_value.delete.assert_called_once_with(fileId="file-1")

    def test_already_deleted_counts_as_success(self, drive):
        drive.files.return_value.delete.return_value.execute.side_effect = _http_error(404)

        assert _service(drive).delete_file("file-1").ok

    def test_delete_failure(self, drive):
        drive.files.return_value.delete.return_value.execute.side_effect = _http_error(500)

        result = _service(drive).delete_file("file-1")

        assert result.reason == FailureReason.UNAVAILABLE

    def test_delete_not_configured(self):
        service = GoogleDriveService(Settings(google_drive_credentials_path=""))

        assert service.delete_file("file-1").reason == FailureReason.NOT_CONFIGURED
