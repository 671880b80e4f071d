from anthropic import AsyncAnthropicVertex

from ..errors import ConfigurationError
from ..models import ModelDescriptor, lookup_model, vertex_default_model_id, vertex_models
from .anthropic import AnthropicHandler


class VertexHandler(AnthropicHandler):
    """
    Claude on GCP Vertex AI, authenticated with application default credentials.
    """

    provider_name = "vertex"

    def _create_client(self):
        if not self.options.vertex_project_id or not self.options.vertex_region:
            raise ConfigurationError("Project id and region are required for Vertex AI")
        return AsyncAnthropicVertex(
            project_id=self.options.vertex_project_id,
            region=self.options.vertex_region,
            max_retries=0,
        )

    def get_model(self) -> ModelDescriptor:
        return lookup_model(self.options.api_model_id, vertex_models, vertex_default_model_id)
