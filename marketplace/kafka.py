import json, logging
from datetime import datetime, timezone

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from marketplace.config import Settings

logger = logging.getLogger(__name__)


class KafkaProducer:
    """Publishes marketplace events once the database work has committed.

    Delivery is best effort: a broker outage is logged and must not turn a
    completed sale into a failed request.
    """

    def __init__(self, bootstrap: str = Settings.KAFKA_BOOTSTRAP, topic: str = Settings.KAFKA_TOPIC):
        self.bootstrap = bootstrap
        self.topic = topic
        self._producer: AIOKafkaProducer | None = None

    async def start(self):
        if self._producer is None:
            producer = AIOKafkaProducer(bootstrap_servers=self.bootstrap)
            await producer.start()
            self._producer = producer
            logger.info("Kafka producer started")

    async def send(self, event: str, payload: dict, topic: str | None = None):
        message = {
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **payload,
        }
        try:
            if self._producer is None:
                await self.start()
            await self._producer.send_and_wait(topic or self.topic, json.dumps(message, default=str).encode())
        except KafkaError:
            logger.exception("Failed to publish %s event", event)
            return
        logger.debug("Sent event to Kafka: %s", message)

    async def stop(self):
        if self._producer:
            await self._producer.stop()
            self._producer = None
            logger.info("Kafka producer stopped")


async def publish(producer: KafkaProducer | None, event: str, **payload):
    if producer is not None:
        await producer.send(event, payload)
