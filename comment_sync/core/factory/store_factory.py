"""
Factory for creating document store backends.
"""

from comment_sync.config import Config
from comment_sync.core.store.base import DocumentStore
from comment_sync.core.store.notion import NotionStore


class DocumentStoreFactory:
    """Factory for creating document stores from configuration."""

    @staticmethod
    def create(config: Config) -> DocumentStore:
        """
        Create document store from configuration.

        Args:
            config: Main configuration object

        Returns:
            Document store instance

        Raises:
            ConfigurationError: If the token or database ids are missing
        """
        return NotionStore(
            token=config.notion.token,
            source_database_id=config.notion.source_database_id,
            target_database_id=config.notion.target_database_id,
            action_database_id=config.notion.action_database_id,
            properties=config.properties,
            workflow=config.workflow,
            base_url=config.notion.base_url,
            api_version=config.notion.api_version,
            source_database_url=config.notion.source_database_url,
            timeout=config.notion.timeout,
            page_size=config.notion.page_size,
            max_retries=config.notion.max_retries,
            retry_delay=config.notion.retry_delay,
        )
