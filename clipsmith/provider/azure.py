"""Azure OpenAI provider for clipsmith.

Azure uses the same message format as OpenAI but with different:
- Endpoint format: /openai/deployments/{deployment}/{operation}
- Authentication: api-key header instead of Bearer token
- API versioning: ?api-version=YYYY-MM-DD query parameter
"""

from __future__ import annotations

from clipsmith.provider.openai_compat import OpenAICompatProvider

DEFAULT_API_VERSION = "2024-02-01"


class AzureOpenAIProvider(OpenAICompatProvider):
    """Provider for Azure OpenAI Service.

    The model id doubles as the deployment name.

    Example config.json:
        {
            "cloud": {
                "provider": {
                    "type": "azure",
                    "base_url": "https://my-resource.openai.azure.com",
                    "auth_method": "api-key",
                    "api_key_env": "AZURE_OPENAI_KEY"
                },
                "completion_model": "my-instruct-deployment"
            }
        }
    """

    def _build_endpoint(self, operation: str) -> str:
        api_version = self._config.api_version or DEFAULT_API_VERSION
        return (
            f"{self._base_url}/openai/deployments/{self._model}"
            f"/{operation}?api-version={api_version}"
        )
