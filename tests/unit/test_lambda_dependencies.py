"""Unit tests for Lambda dependency factory."""

import os
from unittest.mock import MagicMock, Mock, patch

import pytest

from lambda_dependencies import get_backend_client, get_fastapi_app, initialize_lambda_environment

BACKEND_ENV = {"SUPABASE_URL": "https://project.example.com", "SUPABASE_ANON_KEY": "anon"}


def clear_caches() -> None:
    import lambda_dependencies as deps

    deps._backend_client = None
    deps._fastapi_app = None


@pytest.mark.unit
class TestGetBackendClient:
    """Tests for get_backend_client function."""

    def teardown_method(self) -> None:
        """Clear cached dependencies after each test."""
        clear_caches()

    @patch.dict(os.environ, BACKEND_ENV, clear=True)
    def test_creates_client_from_environment(self) -> None:
        client = get_backend_client()

        assert client.rest_url == "https://project.example.com/rest/v1"
        assert client.anon_key == "anon"

    @patch.dict(os.environ, BACKEND_ENV, clear=True)
    def test_caches_client(self) -> None:
        """Test that the same client is reused across invocations."""
        assert get_backend_client() is get_backend_client()

    @patch("lambda_dependencies.create_backend_client")
    def test_uses_shared_factory_once(self, mock_create_client: Mock) -> None:
        """Test that the Lambda path builds its client with the same factory as the API server."""
        mock_create_client.return_value = MagicMock()

        first = get_backend_client()
        second = get_backend_client()

        assert first is second is mock_create_client.return_value
        mock_create_client.assert_called_once_with()

    @patch.dict(os.environ, {}, clear=True)
    def test_raises_when_configuration_missing(self) -> None:
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_ANON_KEY"):
            get_backend_client()


@pytest.mark.unit
class TestGetFastapiApp:
    """Tests for get_fastapi_app function."""

    def teardown_method(self) -> None:
        clear_caches()

    @patch("lambda_dependencies.setup_observability")
    @patch("lambda_dependencies.create_app")
    @patch.dict(os.environ, {**BACKEND_ENV, "SESSION_COOKIE_SECURE": "false"}, clear=True)
    def test_creates_and_caches_app(self, mock_create_app: Mock, mock_setup_observability: Mock) -> None:
        """Test that the app is wired with the cached client and built once."""
        mock_app = MagicMock()
        mock_create_app.return_value = mock_app

        first = get_fastapi_app()
        second = get_fastapi_app()

        assert first is second is mock_app
        mock_create_app.assert_called_once_with(backend_client=get_backend_client(), secure_cookies=False)
        mock_setup_observability.assert_called_once_with(mock_app)


@pytest.mark.unit
class TestInitializeLambdaEnvironment:
    """Tests for initialize_lambda_environment function."""

    @patch("lambda_dependencies.configure_logging")
    @patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}, clear=True)
    def test_configures_logging_with_level(self, mock_configure_logging: Mock) -> None:
        initialize_lambda_environment()

        mock_configure_logging.assert_called_once_with("WARNING")

    @patch("lambda_dependencies.configure_logging")
    @patch.dict(os.environ, {}, clear=True)
    def test_defaults_to_info(self, mock_configure_logging: Mock) -> None:
        initialize_lambda_environment()

        mock_configure_logging.assert_called_once_with("INFO")
