from .api_client import ApiClient, ApiClientError, TokenStore  # noqa: F401
