from anthropic import AsyncAnthropicBedrock

from ..errors import ConfigurationError
from ..models import ModelDescriptor, bedrock_default_model_id, bedrock_models, lookup_model
from .anthropic import AnthropicHandler

# Region family -> cross-region inference profile prefix
CROSS_REGION_PREFIXES = {
    "us": "us.",
    "eu": "eu.",
    "ap": "apac.",
}


class AwsBedrockHandler(AnthropicHandler):
    """
    Claude on AWS Bedrock. Credentials fall back to the default AWS chain
    when no access key is configured.
    """

    provider_name = "bedrock"

    def _create_client(self):
        if not self.options.aws_region:
            raise ConfigurationError("AWS region is required for Bedrock")
        return AsyncAnthropicBedrock(
            aws_access_key=self.options.aws_access_key,
            aws_secret_key=self.options.aws_secret_key,
            aws_session_token=self.options.aws_session_token,
            aws_region=self.options.aws_region,
            max_retries=0,
        )

    def get_model(self) -> ModelDescriptor:
        return lookup_model(self.options.api_model_id, bedrock_models, bedrock_default_model_id)

    def _request_model_id(self) -> str:
        model_id = self.get_model().id
        if not self.options.aws_use_cross_region_inference:
            return model_id
        prefix = CROSS_REGION_PREFIXES.get(self.options.aws_region[:2])
        if prefix is None:
            return model_id
        return prefix + model_id
