"""Unit tests for HuggingFaceDescriber."""

from types import SimpleNamespace
import pytest
from unittest.mock import Mock, patch
import requests
from huggingface_hub.utils import HfHubHTTPError

from storyboard.core.errors import MalformedResponse, ProviderError, ProviderUnavailable
from storyboard.providers.huggingface import HuggingFaceDescriber
from storyboard.utils.image_codec import decode_image


class TestHuggingFaceDescriber:
    """Tests for HuggingFaceDescriber."""

    @patch('storyboard.providers.huggingface.InferenceClient')
    def test_initialization(self, mock_client):
        """Test describer initialization."""
        describer = HuggingFaceDescriber(api_key="hf_test_token", timeout=10)

        assert describer.model == HuggingFaceDescriber.DEFAULT_MODEL
        mock_client.assert_called_once_with(token="hf_test_token", timeout=10)

    @patch('storyboard.providers.huggingface.InferenceClient')
    def test_initialization_custom_model(self, mock_client):
        """Test describer with a custom model."""
        describer = HuggingFaceDescriber(api_key="hf_test_token", model="nlpconnect/vit-gpt2-image-captioning")
        assert describer.model == "nlpconnect/vit-gpt2-image-captioning"

    def test_initialization_no_api_key(self):
        """Test that an empty API key is rejected."""
        with pytest.raises(ValueError, match="HuggingFace API key is required"):
            HuggingFaceDescriber(api_key="")

    @patch('storyboard.providers.huggingface.InferenceClient')
    def test_describe(self, mock_client, sample_encoded_image):
        """Test captioning returns stripped text."""
        mock_client.return_value.image_to_text.return_value = SimpleNamespace(
            generated_text="  a man standing at a bar counter \n"
        )
        describer = HuggingFaceDescriber(api_key="hf_test_token")

        assert describer.describe(sample_encoded_image) == "a man standing at a bar counter"
        mock_client.return_value.image_to_text.assert_called_once_with(
            decode_image(sample_encoded_image),
            model=HuggingFaceDescriber.DEFAULT_MODEL
        )

    @patch('storyboard.providers.huggingface.InferenceClient')
    def test_describe_plain_string(self, mock_client, sample_encoded_image):
        """Test older clients returning a bare string."""
        mock_client.return_value.image_to_text.return_value = "a sketch of a car"
        describer = HuggingFaceDescriber(api_key="hf_test_token")

        assert describer.describe(sample_encoded_image) == "a sketch of a car"

    @patch('storyboard.providers.huggingface.InferenceClient')
    def test_describe_empty(self, mock_client, sample_encoded_image):
        """Test that empty output is malformed."""
        mock_client.return_value.image_to_text.return_value = SimpleNamespace(generated_text="   ")
        describer = HuggingFaceDescriber(api_key="hf_test_token")

        with pytest.raises(MalformedResponse):
            describer.describe(sample_encoded_image)

    @patch('storyboard.providers.huggingface.InferenceClient')
    def test_describe_http_error(self, mock_client, sample_encoded_image):
        """Test that API errors become ProviderError with the status."""
        response = Mock(status_code=503)
        mock_client.return_value.image_to_text.side_effect = HfHubHTTPError("Model is loading", response=response)
        describer = HuggingFaceDescriber(api_key="hf_test_token")

        with pytest.raises(ProviderError) as exc_info:
            describer.describe(sample_encoded_image)

        assert exc_info.value.status == 503

    @patch('storyboard.providers.huggingface.InferenceClient')
    def test_describe_network_error(self, mock_client, sample_encoded_image):
        """Test that transport errors become ProviderUnavailable."""
        mock_client.return_value.image_to_text.side_effect = requests.exceptions.ConnectionError("refused")
        describer = HuggingFaceDescriber(api_key="hf_test_token")

        with pytest.raises(ProviderUnavailable, match="refused"):
            describer.describe(sample_encoded_image)
