# ============================================================================
# SERVICE BUS JOB QUEUE
# ============================================================================
# STATUS: Infrastructure - Azure Service Bus work queue (service mode)
# PURPOSE: Async send / receive / settle of job messages
# EXPORTS: ServiceBusJobQueue
# INTERFACES: IJobQueue
# SOURCE: Azure Service Bus via connection string or DefaultAzureCredential
# ============================================================================
"""
Service Bus Job Queue

Wraps the azure-servicebus aio client behind IJobQueue. A single receiver
is opened lazily and reused; received messages stay locked until the
worker settles them with complete, abandon or dead_letter.

Each received message is registered with an AutoLockRenewer for
lock_renewal_seconds so its peek-lock outlives a long job; otherwise the
queue would redeliver the message to another worker mid-run.

Retry and backoff are the queue's own policy (max delivery count on the
queue entity). The worker never re-enqueues a job itself.
"""

import json
from typing import Any, Dict, List, Optional

from azure.identity.aio import DefaultAzureCredential
from azure.servicebus import ServiceBusMessage, ServiceBusReceivedMessage
from azure.servicebus.aio import AutoLockRenewer, ServiceBusClient, ServiceBusReceiver, ServiceBusSender
from azure.servicebus.exceptions import ServiceBusError

from config import QueueConfig
from exceptions import QueueError
from interfaces.repository import IJobQueue, QueuedJob
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "ServiceBusJobQueue")


class ServiceBusJobQueue(IJobQueue):
    """
    IJobQueue backed by one Service Bus queue.
    """

    def __init__(self, config: QueueConfig):
        if not config.is_configured:
            raise QueueError("SERVICE_BUS_CONNECTION or SERVICE_BUS_NAMESPACE must be set")
        self.config = config
        self.queue_name = config.jobs_queue
        self._credential: Optional[DefaultAzureCredential] = None
        self._client: Optional[ServiceBusClient] = None
        self._receiver: Optional[ServiceBusReceiver] = None
        self._sender: Optional[ServiceBusSender] = None
        self._lock_renewer: Optional[AutoLockRenewer] = None

    def _get_client(self) -> ServiceBusClient:
        if self._client is None:
            if self.config.connection_string:
                logger.info("🔑 Using Service Bus connection string")
                self._client = ServiceBusClient.from_connection_string(self.config.connection_string)
            else:
                logger.info(f"🔐 Using DefaultAzureCredential for namespace {self.config.namespace}")
                self._credential = DefaultAzureCredential()
                self._client = ServiceBusClient(
                    fully_qualified_namespace=self.config.namespace,
                    credential=self._credential,
                )
        return self._client

    def _get_receiver(self) -> ServiceBusReceiver:
        if self._receiver is None:
            self._receiver = self._get_client().get_queue_receiver(
                queue_name=self.queue_name,
                max_wait_time=self.config.max_wait_seconds,
            )
        return self._receiver

    async def send(self, body: Dict[str, Any]) -> None:
        if self._sender is None:
            self._sender = self._get_client().get_queue_sender(queue_name=self.queue_name)
        message = ServiceBusMessage(
            json.dumps(body, default=str),
            content_type="application/json",
            message_id=str(body.get("job_id")) if body.get("job_id") else None,
        )
        try:
            await self._sender.send_messages(message)
        except ServiceBusError as e:
            logger.error(f"❌ Failed to send message to {self.queue_name}: {e}")
            raise QueueError(f"Failed to send job message: {e}") from e
        logger.debug(f"📤 Message sent to {self.queue_name}")

    async def receive(self, max_count: int, max_wait: float) -> List[QueuedJob]:
        try:
            messages = await self._get_receiver().receive_messages(
                max_message_count=max_count,
                max_wait_time=max_wait,
            )
        except ServiceBusError as e:
            raise QueueError(f"Failed to receive from {self.queue_name}: {e}") from e
        if messages:
            if self._lock_renewer is None:
                self._lock_renewer = AutoLockRenewer()
            receiver = self._get_receiver()
            for message in messages:
                self._lock_renewer.register(
                    receiver, message,
                    max_lock_renewal_duration=self.config.lock_renewal_seconds,
                )
            logger.debug(
                f"🔒 Lock renewal registered for {len(messages)} message(s) "
                f"({self.config.lock_renewal_seconds}s)"
            )
        return [self._decode(message) for message in messages]

    @staticmethod
    def _decode(message: ServiceBusReceivedMessage) -> QueuedJob:
        try:
            body = json.loads(str(message))
        except json.JSONDecodeError as e:
            return QueuedJob(
                body=None, raw=message,
                delivery_count=message.delivery_count or 1,
                decode_error=str(e),
            )
        return QueuedJob(body=body, raw=message, delivery_count=message.delivery_count or 1)

    async def complete(self, item: QueuedJob) -> None:
        await self._get_receiver().complete_message(item.raw)

    async def abandon(self, item: QueuedJob) -> None:
        await self._get_receiver().abandon_message(item.raw)
        logger.debug(f"🔄 Message abandoned: {item.raw.message_id}")

    async def dead_letter(self, item: QueuedJob, reason: str, description: str = "") -> None:
        await self._get_receiver().dead_letter_message(
            item.raw,
            reason=reason,
            error_description=description[:1024],
        )
        logger.warning(f"☠️ Message dead-lettered: {item.raw.message_id} reason={reason}")

    async def close(self) -> None:
        if self._lock_renewer:
            await self._lock_renewer.close()
            self._lock_renewer = None
        if self._sender:
            await self._sender.close()
            self._sender = None
        if self._receiver:
            await self._receiver.close()
            self._receiver = None
        if self._client:
            await self._client.close()
            self._client = None
        if self._credential:
            await self._credential.close()
            self._credential = None
