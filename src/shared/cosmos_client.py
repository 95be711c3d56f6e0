# Cosmos DB access with retry on throttling

from typing import Any, Dict, List, Optional

import backoff
from azure.cosmos import CosmosClient, exceptions
from azure.cosmos.container import ContainerProxy

from src.shared.logging_utils import get_logger
from src.specs.common.errors import ConfigurationError


class RetryableCosmosError(Exception):
    """Indicates a Cosmos DB operation that should be retried"""
    pass


_RETRYABLE_STATUS = (429, 503)  # Too Many Requests or Service Unavailable


def _raise_retryable(exc: exceptions.CosmosHttpResponseError, action: str) -> None:
    if exc.status_code in _RETRYABLE_STATUS:
        get_logger().warning("Retryable Cosmos error during %s: %s", action, exc)
        raise RetryableCosmosError(f"Retryable error during {action}: {exc}") from exc


class CosmosDBClient:
    MAX_RETRIES = 3
    OPERATION_TIMEOUT = 10.0    # 10s

    def __init__(self, connection_string: Optional[str], database_name: Optional[str]):
        if not connection_string or not database_name:
            raise ConfigurationError("Missing Cosmos DB connection string or database name")
        self.database_name = database_name
        self.client = CosmosClient.from_connection_string(
            connection_string,
            retry_total=self.MAX_RETRIES
        )
        self.database = self.client.get_database_client(database_name)
        self._containers: Dict[str, ContainerProxy] = {}

    def get_container(self, container_name: str) -> ContainerProxy:
        container = self._containers.get(container_name)
        if container is None:
            container = self.database.get_container_client(container_name)
            self._containers[container_name] = container
        return container

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def read_item(self, container_name: str, item_id: str, partition_key: str) -> Optional[Dict[str, Any]]:
        """Point read; returns None when the item does not exist."""
        container = self.get_container(container_name)
        try:
            return container.read_item(item=item_id, partition_key=partition_key)
        except exceptions.CosmosResourceNotFoundError:
            return None
        except exceptions.CosmosHttpResponseError as e:
            _raise_retryable(e, f"read of '{item_id}'")
            raise

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def query_items(
        self,
        container_name: str,
        query: str,
        parameters: Optional[List[Dict[str, Any]]] = None,
        partition_key: Optional[str] = None,
    ) -> List[Any]:
        """
        Query items with parameterized queries for safety

        Args:
            container_name: Name of the container
            query: The query to execute (use @param syntax for parameters)
            parameters: List of parameter dictionaries with 'name' and 'value'
            partition_key: Restricts the query to one partition when given

        Returns:
            List of matching items
        """
        container = self.get_container(container_name)
        kwargs: Dict[str, Any] = {"query": query, "parameters": parameters or []}
        if partition_key is not None:
            kwargs["partition_key"] = partition_key
        else:
            kwargs["enable_cross_partition_query"] = True
        try:
            return list(container.query_items(**kwargs))
        except exceptions.CosmosHttpResponseError as e:
            _raise_retryable(e, f"query on '{container_name}'")
            raise

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def upsert_item(self, container_name: str, item: Dict[str, Any]) -> Dict[str, Any]:
        """Create or update an item; the SDK routes it by the container's partition key path."""
        container = self.get_container(container_name)
        try:
            return container.upsert_item(body=item)
        except exceptions.CosmosHttpResponseError as e:
            _raise_retryable(e, f"upsert of '{item.get('id')}'")
            raise
