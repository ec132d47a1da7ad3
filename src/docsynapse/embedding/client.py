"""Factory for the OpenAI / Azure OpenAI SDK clients."""

from __future__ import annotations

import logging

from openai import AzureOpenAI, OpenAI

from docsynapse.config import AppConfig
from docsynapse.errors import ProviderError

LOGGER = logging.getLogger(__name__)


def use_azure(config: AppConfig) -> bool:
    """Azure is used when selected explicitly or when an Azure endpoint is set."""
    if config.embedding_provider == "azure":
        return True
    if config.embedding_provider == "openai":
        return False
    return bool(config.azure_endpoint)


def create_openai_client(config: AppConfig) -> OpenAI:
    """Build an SDK client with the configured timeout and retry budget."""
    if use_azure(config):
        if not config.azure_endpoint or not config.azure_api_key:
            raise ProviderError(
                "Azure OpenAI requires AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_KEY"
            )
        LOGGER.debug("Using Azure OpenAI endpoint %s", config.azure_endpoint)
        return AzureOpenAI(
            azure_endpoint=config.azure_endpoint,
            api_key=config.azure_api_key,
            api_version=config.azure_api_version,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
        )

    if not config.openai_api_key:
        raise ProviderError("OPENAI_API_KEY environment variable not set")
    return OpenAI(
        api_key=config.openai_api_key,
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )
