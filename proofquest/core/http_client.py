"""
HTTP client configuration for the production connector, verifier and catalog.
NO GLOBAL instances - each collaborator owns its client's lifecycle.
"""

import httpx
from typing import Optional, Dict, Any

from proofquest.infra.config.settings import get_settings

settings = get_settings()


class HTTPClientConfig:
    """HTTP client configuration for calls to the ProofQuest backend"""

    @classmethod
    def get_timeout(cls, service: str) -> float:
        """Get timeout for specific service"""
        timeout_map = {
            "default": settings.HTTP_DEFAULT_TIMEOUT,
            "verifier": settings.HTTP_VERIFIER_TIMEOUT,
        }
        return timeout_map.get(service, settings.HTTP_DEFAULT_TIMEOUT)

    @classmethod
    def get_base_headers(cls) -> Dict[str, str]:
        """Get base headers for HTTP requests"""
        return {
            "User-Agent": f"ProofQuest-Client/{settings.APP_VERSION}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    @classmethod
    def create_client_config(cls, service: str = "default", timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Create HTTP client configuration (NOT the client itself).

        Args:
            service: Service name for timeout configuration
            timeout: Override timeout (optional)

        Returns:
            Dict with client configuration
        """
        client_timeout = timeout or cls.get_timeout(service)

        return {
            "base_url": settings.API_BASE_URL,
            "timeout": client_timeout,
            "limits": httpx.Limits(
                max_connections=settings.HTTP_MAX_CONNECTIONS,
                max_keepalive_connections=settings.HTTP_MAX_KEEPALIVE_CONNECTIONS
            ),
            "headers": cls.get_base_headers(),
            "follow_redirects": False,
        }


def create_client(service: str = "default", **kwargs) -> httpx.AsyncClient:
    """
    Create an HTTP client for one backend collaborator.
    The caller must close it (`await client.aclose()`).

    Args:
        service: Service name for configuration
        **kwargs: Additional httpx.AsyncClient arguments (e.g. transport)
    """
    config = HTTPClientConfig.create_client_config(service)
    config.update(kwargs)
    return httpx.AsyncClient(**config)


def error_message(response: httpx.Response) -> str:
    """Pull the human-readable error out of a backend error envelope"""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or f"HTTP {response.status_code}"
    if isinstance(error, str):
        return error
    return f"HTTP {response.status_code}"
