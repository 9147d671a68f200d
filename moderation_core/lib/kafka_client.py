"""
Kafka client for the results topic and its dead letter queue
"""
import json
import logging
import time
from typing import Any, Callable, Dict, Union

from kafka import KafkaConsumer, KafkaProducer
from kafka.errors import KafkaError

logger = logging.getLogger(__name__)

Message = Union[Dict[str, Any], str]


def decode_message(raw: bytes) -> Message:
    """JSON object, or the raw text when the bytes are not valid UTF-8 JSON."""
    try:
        return json.loads(raw.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning(f"Undecodable message ({len(raw)} bytes)")
        return raw.decode('utf-8', errors='replace')


class MessageBroker:
    """
    Consumes scoring results and dead-letters the ones that fail.
    The producer is only needed for the DLQ, so it connects on first use.
    """

    def __init__(self, bootstrap_servers: str = 'localhost:9092', dlq_topic: str = 'moderation-dlq'):
        self.bootstrap_servers = bootstrap_servers
        self.dlq_topic = dlq_topic
        self.producer = None
        self.consumer = None

    def _get_producer(self) -> KafkaProducer:
        if self.producer is None:
            try:
                self.producer = KafkaProducer(
                    bootstrap_servers=self.bootstrap_servers,
                    value_serializer=lambda v: json.dumps(v, default=str).encode('utf-8'),
                    key_serializer=lambda k: k.encode('utf-8') if k else None,
                    acks='all',
                    retries=3,
                )
                logger.info(f"Kafka producer connected: {self.bootstrap_servers}")
            except KafkaError as e:
                logger.error(f"Failed to connect Kafka producer: {e}")
                raise
        return self.producer

    def publish_dlq(self, original_message: Message, error: str) -> bool:
        """Dead-letter a message with the error that stopped it, keyed by content id when known"""
        key = original_message.get('contentId') if isinstance(original_message, dict) else None
        dlq_message = {
            'original_message': original_message,
            'error': error,
            'timestamp': time.time(),
        }
        try:
            metadata = self._get_producer().send(self.dlq_topic, value=dlq_message, key=key).get(timeout=10)
        except KafkaError as e:
            logger.error(f"Failed to publish to {self.dlq_topic}: {e}")
            return False
        logger.debug(f"Dead-lettered to {self.dlq_topic} partition {metadata.partition} offset {metadata.offset}")
        return True

    def consume(self, topic: str, group_id: str, handler: Callable[[Message], Any]):
        """
        Feed every message on `topic` to `handler`; blocks.
        Offsets are committed only after the handler returns.
        """
        try:
            self.consumer = KafkaConsumer(
                topic,
                bootstrap_servers=self.bootstrap_servers,
                group_id=group_id,
                value_deserializer=decode_message,
                auto_offset_reset='earliest',
                enable_auto_commit=False,
            )
        except KafkaError as e:
            logger.error(f"Failed to subscribe to {topic}: {e}")
            raise
        logger.info(f"Consuming {topic} as group {group_id}")

        for record in self.consumer:
            handler(record.value)
            self.consumer.commit()

    def close(self):
        """Close producer and consumer"""
        if self.producer is not None:
            self.producer.close()
        if self.consumer is not None:
            self.consumer.close()
        logger.info("Kafka connections closed")
