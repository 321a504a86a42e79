"""
Unit tests for the Bedrock provider.

Tests provider functionality including:
- ConverseStream request construction
- Event handling on the background thread
- botocore error mapping
- Client construction from profile and region
"""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, NoCredentialsError, ProfileNotFound

from promptstream.core.config import TuningParameters
from promptstream.core.session import StreamingSession
from promptstream.providers.bedrock import BedrockProvider
from promptstream.utils.errors import (
    ConfigurationError,
    ProviderAuthenticationError,
    ProviderError,
    ProviderRateLimitError,
    ProviderUnavailableError,
)

MODEL_ID = "anthropic.claude-3-5-sonnet-20240620-v1:0"

# =============================================================================
# Fixtures
# =============================================================================


def delta(text: str) -> dict:
    return {"contentBlockDelta": {"delta": {"text": text}, "contentBlockIndex": 0}}


def client_error(code: str, status: int = 400) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} message"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        "ConverseStream",
    )


@pytest.fixture
def bedrock_client() -> MagicMock:
    """Provide a bedrock-runtime client replaying a short stream."""
    client = MagicMock()
    client.converse_stream.return_value = {
        "stream": [
            {"messageStart": {"role": "assistant"}},
            delta("Hel"),
            delta("lo"),
            {"contentBlockStop": {"contentBlockIndex": 0}},
            {"messageStop": {"stopReason": "end_turn"}},
            {"metadata": {"usage": {"inputTokens": 3, "outputTokens": 2}}},
        ]
    }
    return client


def make_provider(client, **kwargs) -> BedrockProvider:
    return BedrockProvider(
        model=MODEL_ID,
        region_or_endpoint="ap-northeast-1",
        client=client,
        **kwargs,
    )


# =============================================================================
# Request Tests
# =============================================================================


class TestBedrockRequest:
    """Tests for ConverseStream request construction."""

    def test_request_without_tuning(self, bedrock_client, recording_output):
        """Test no inferenceConfig is sent when no tuning is set."""
        provider = make_provider(bedrock_client)

        StreamingSession(recording_output).run("Explain", provider)
        provider.close()

        bedrock_client.converse_stream.assert_called_once_with(
            modelId=MODEL_ID,
            messages=[{"role": "user", "content": [{"text": "Explain"}]}],
        )

    def test_request_with_tuning(self, bedrock_client, recording_output):
        """Test tuning parameters map to inferenceConfig keys."""
        provider = make_provider(
            bedrock_client,
            tuning=TuningParameters(max_tokens=512, temperature=0.3, top_p=0.9),
        )

        StreamingSession(recording_output).run("Explain", provider)
        provider.close()

        kwargs = bedrock_client.converse_stream.call_args.kwargs
        assert kwargs["inferenceConfig"] == {"maxTokens": 512, "temperature": 0.3, "topP": 0.9}

    def test_partial_tuning(self, bedrock_client, recording_output):
        """Test only set parameters are sent."""
        provider = make_provider(bedrock_client, tuning=TuningParameters(temperature=0.0))

        StreamingSession(recording_output).run("Explain", provider)
        provider.close()

        kwargs = bedrock_client.converse_stream.call_args.kwargs
        assert kwargs["inferenceConfig"] == {"temperature": 0.0}


# =============================================================================
# Streaming Tests
# =============================================================================


class TestBedrockStreaming:
    """Tests for event handling."""

    def test_streams_deltas(self, bedrock_client, recording_output):
        """Test text deltas are delivered in order and other events ignored."""
        provider = make_provider(bedrock_client)

        outcome = StreamingSession(recording_output).run("Say hello", provider)
        provider.close()

        assert recording_output.chunks == ["Hel", "lo"]
        assert outcome.full_text == "Hello"
        assert outcome.provider == "bedrock"
        assert outcome.model == MODEL_ID

    def test_runs_on_background_thread(self, bedrock_client):
        """Test start_stream returns a handle that finishes asynchronously."""
        provider = make_provider(bedrock_client)
        sink = StreamingSession(lambda text: None)

        handle = provider.start_stream("p", sink)

        assert handle.wait(timeout=5)
        provider.close()
        assert handle.chunk_count == 2

    @pytest.mark.parametrize(
        "code,expected",
        [
            ("AccessDeniedException", ProviderAuthenticationError),
            ("ThrottlingException", ProviderRateLimitError),
            ("ServiceUnavailableException", ProviderUnavailableError),
        ],
    )
    def test_client_error_mapping(self, code, expected, recording_output):
        """Test well-known error codes map to specific provider errors."""
        client = MagicMock()
        client.converse_stream.side_effect = client_error(code)
        provider = make_provider(client)

        with pytest.raises(expected):
            StreamingSession(recording_output).run("p", provider)
        provider.close()

    def test_validation_error(self, recording_output):
        """Test other client errors keep the HTTP status and code."""
        client = MagicMock()
        client.converse_stream.side_effect = client_error("ValidationException", 400)
        provider = make_provider(client)

        with pytest.raises(ProviderError) as exc_info:
            StreamingSession(recording_output).run("p", provider)
        provider.close()

        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {"code": "ValidationException"}
        assert MODEL_ID in exc_info.value.message

    def test_no_credentials(self, recording_output):
        """Test missing AWS credentials map to an authentication error."""
        client = MagicMock()
        client.converse_stream.side_effect = NoCredentialsError()
        provider = make_provider(client)

        with pytest.raises(ProviderAuthenticationError):
            StreamingSession(recording_output).run("p", provider)
        provider.close()

    def test_error_mid_stream(self, recording_output):
        """Test a failure after some chunks keeps the delivered chunks."""

        def events():
            yield delta("par")
            raise client_error("ModelStreamErrorException")

        client = MagicMock()
        client.converse_stream.return_value = {"stream": events()}
        provider = make_provider(client)

        with pytest.raises(ProviderError):
            StreamingSession(recording_output).run("p", provider)
        provider.close()

        assert recording_output.chunks == ["par"]


# =============================================================================
# Client Construction Tests
# =============================================================================


class TestBedrockClient:
    """Tests for boto3 client construction."""

    def test_client_uses_profile_and_region(self):
        """Test the session uses credential_reference as the profile."""
        with patch("promptstream.providers.bedrock.boto3.Session") as session_cls:
            provider = BedrockProvider(
                model=MODEL_ID,
                region_or_endpoint="us-east-1",
                credential_reference="dev",
            )
            client = provider._get_client()

        session_cls.assert_called_once_with(profile_name="dev")
        call = session_cls.return_value.client.call_args
        assert call.args == ("bedrock-runtime",)
        assert call.kwargs["region_name"] == "us-east-1"
        assert client is session_cls.return_value.client.return_value

    def test_unknown_profile(self, recording_output):
        """Test an unknown profile is raised before streaming starts."""
        with patch(
            "promptstream.providers.bedrock.boto3.Session",
            side_effect=ProfileNotFound(profile="ghost"),
        ):
            provider = BedrockProvider(model=MODEL_ID, credential_reference="ghost")

            with pytest.raises(ConfigurationError):
                StreamingSession(recording_output).run("p", provider)

    def test_supports_all_tuning(self):
        """Test all tuning parameters are kept."""
        provider = make_provider(
            MagicMock(), tuning=TuningParameters(max_tokens=1, temperature=1.0, top_p=0.5)
        )

        assert provider.tuning.as_dict() == {"max_tokens": 1, "temperature": 1.0, "top_p": 0.5}
