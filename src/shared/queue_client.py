"""
Azure Storage Queue utilities
"""
import os
from typing import Optional

from azure.core.exceptions import ResourceExistsError
from azure.storage.queue import QueueClient, TextBase64EncodePolicy

from src.specs.common.errors import ConfigurationError
from src.specs.queue.message import AutoSyncMessage
from src.shared.logging_utils import info as log_info, error as log_error


def get_queue_client(queue_name: str, conn_str: Optional[str] = None) -> QueueClient:
    """
    Get or create a queue client for the specified queue.

    Args:
        queue_name (str): Name of the queue
        conn_str (str): Storage connection string; defaults to AzureWebJobsStorage

    Returns:
        QueueClient: Azure Storage Queue client
    """
    conn_str = conn_str or os.environ.get("AzureWebJobsStorage")
    if not conn_str:
        raise ConfigurationError("AzureWebJobsStorage connection string not found")

    queue_client = QueueClient.from_connection_string(
        conn_str=conn_str,
        queue_name=queue_name,
        # Functions queue triggers expect base64 bodies by default
        message_encode_policy=TextBase64EncodePolicy(),
    )

    try:
        queue_client.create_queue()
        log_info(None, "queue:created", queue=queue_name)
    except ResourceExistsError:
        pass
    except Exception as e:
        log_error(None, "queue:create_failed", queue=queue_name, error=str(e))
        raise

    return queue_client


def enqueue_auto_sync(queue_client: QueueClient, message: AutoSyncMessage) -> None:
    queue_client.send_message(message.model_dump_json())
    log_info(message.runTraceId, "queue:auto_sync:enqueued", portfolioId=message.portfolioId)
