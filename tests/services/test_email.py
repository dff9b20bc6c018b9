"""Email service tests."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import aiosmtplib
import httpx
import pytest

from gatehouse.config import Settings
from gatehouse.services.email import (
    ConsoleEmailBackend,
    EmailService,
    ResendEmailBackend,
    SMTPEmailBackend,
    get_email_backend,
)


class TestConsoleEmailBackend:
    """Tests for console email backend."""

    @pytest.mark.asyncio
    async def test_send_logs_email(self, caplog):
        backend = ConsoleEmailBackend()

        with caplog.at_level(logging.INFO):
            result = await backend.send(
                to="test@example.com",
                subject="Test Subject",
                html="<p>Hello</p>",
                text="Hello",
            )

        assert result is True
        assert "test@example.com" in caplog.text
        assert "Test Subject" in caplog.text


class TestSMTPEmailBackend:
    """Tests for SMTP email backend."""

    @pytest.fixture
    def backend(self) -> SMTPEmailBackend:
        return SMTPEmailBackend(
            host="smtp.example.com",
            port=587,
            username="user",
            password="pass",
            from_address="noreply@example.com",
        )

    @pytest.mark.asyncio
    async def test_send_success(self, backend: SMTPEmailBackend):
        with patch("gatehouse.services.email.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            result = await backend.send(
                to="test@example.com",
                subject="Test",
                html="<p>Hello</p>",
                text="Hello",
            )

            assert result is True
            mock_send.assert_called_once()
            assert mock_send.call_args[1]["hostname"] == "smtp.example.com"

    @pytest.mark.asyncio
    async def test_send_failure(self, backend: SMTPEmailBackend):
        with patch(
            "gatehouse.services.email.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=aiosmtplib.SMTPConnectError("Connection failed"),
        ):
            result = await backend.send(
                to="test@example.com",
                subject="Test",
                html="<p>Hello</p>",
            )

            assert result is False


class TestResendEmailBackend:
    """Tests for Resend email backend."""

    @pytest.mark.asyncio
    async def test_send_success(self):
        backend = ResendEmailBackend(api_key="re_test_key", from_address="noreply@example.com")

        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = mock_response

            result = await backend.send(
                to="test@example.com",
                subject="Test",
                html="<p>Hello</p>",
                text="Hello",
            )

            assert result is True
            call_kwargs = mock_post.call_args[1]
            assert call_kwargs["json"]["to"] == ["test@example.com"]
            assert call_kwargs["headers"]["Authorization"] == "Bearer re_test_key"

    @pytest.mark.asyncio
    async def test_send_http_error(self):
        backend = ResendEmailBackend(api_key="re_test_key", from_address="noreply@example.com")

        mock_response = MagicMock()
        mock_response.status_code = 401
        mock_response.text = "Unauthorized"
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Unauthorized",
            request=MagicMock(),
            response=mock_response,
        )

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = mock_response

            result = await backend.send(to="test@example.com", subject="Test", html="<p>Hello</p>")

            assert result is False

    @pytest.mark.asyncio
    async def test_send_network_error(self):
        backend = ResendEmailBackend(api_key="re_test_key", from_address="noreply@example.com")

        with patch(
            "httpx.AsyncClient.post",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("Network error"),
        ):
            result = await backend.send(to="test@example.com", subject="Test", html="<p>Hello</p>")

            assert result is False


class TestGetEmailBackend:
    """Tests for get_email_backend factory."""

    def test_console_backend(self, test_settings: Settings):
        assert isinstance(get_email_backend(test_settings), ConsoleEmailBackend)

    def test_smtp_backend(self, test_settings: Settings):
        backend = get_email_backend(
            test_settings.model_copy(update={"email_backend": "smtp", "smtp_host": "smtp.example.com"})
        )

        assert isinstance(backend, SMTPEmailBackend)
        assert backend.host == "smtp.example.com"
        assert backend.from_address == test_settings.email_from

    def test_resend_backend(self, test_settings: Settings):
        backend = get_email_backend(
            test_settings.model_copy(update={"email_backend": "resend", "resend_api_key": "re_test_key"})
        )

        assert isinstance(backend, ResendEmailBackend)
        assert backend.api_key == "re_test_key"

    def test_invalid_backend(self, test_settings: Settings):
        with pytest.raises(ValueError, match="Unknown email backend"):
            get_email_backend(test_settings.model_copy(update={"email_backend": "pigeon"}))


class TestEmailService:
    """Tests for EmailService."""

    @pytest.mark.asyncio
    async def test_send_otp_code(self, test_settings: Settings):
        mock_backend = AsyncMock()
        mock_backend.send.return_value = True

        service = EmailService(backend=mock_backend, settings=test_settings)

        result = await service.send_otp_code("test@example.com", "482913")

        assert result is True
        call_kwargs = mock_backend.send.call_args[1]
        assert call_kwargs["to"] == "test@example.com"
        assert call_kwargs["subject"] == "Your verification code"
        assert "482913" in call_kwargs["html"]
        assert "Your verification code is: 482913" in call_kwargs["text"]

    @pytest.mark.asyncio
    async def test_send_welcome_escapes_username(self, test_settings: Settings):
        mock_backend = AsyncMock()
        mock_backend.send.return_value = True

        service = EmailService(backend=mock_backend, settings=test_settings)

        await service.send_welcome("test@example.com", "<script>")

        call_kwargs = mock_backend.send.call_args[1]
        assert "<script>" not in call_kwargs["html"]
        assert "&lt;script&gt;" in call_kwargs["html"]

    @pytest.mark.asyncio
    async def test_backend_failure_is_reported(self, test_settings: Settings):
        mock_backend = AsyncMock()
        mock_backend.send.return_value = False

        service = EmailService(backend=mock_backend, settings=test_settings)

        assert await service.send_otp_code("test@example.com", "123456") is False
