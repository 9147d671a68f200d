"""
Ingestion worker - records scoring results from the external pipeline
"""
import logging
import time
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from moderation_core.lib.config import Settings, configure_logging
from moderation_core.lib.errors import ModerationError
from moderation_core.lib.kafka_client import Message, MessageBroker
from moderation_core.lib.metrics import metrics
from moderation_core.models.content import ModerationResult, ModerationResultCreate
from moderation_core.services.wiring import ModerationServices, build_services

logger = logging.getLogger(__name__)


class Pipeline:
    """Consumes result messages and feeds them to the recorder"""

    def __init__(
        self,
        services: Optional[ModerationServices] = None,
        broker: Optional[MessageBroker] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.services = services or build_services(settings=self.settings)
        self.broker = broker or MessageBroker(
            bootstrap_servers=self.settings.kafka_bootstrap_servers,
            dlq_topic=self.settings.dlq_topic,
        )
        logger.info("Pipeline initialized")

    def handle_result(self, message: Message) -> Optional[ModerationResult]:
        """
        One message from the results topic:
        1. Validate the payload
        2. Record it (status recompute + MODERATED event)
        3. Failures go to the DLQ; the consumer keeps running
        """
        start_time = time.time()
        try:
            payload = ModerationResultCreate.model_validate(message)
            result = self.services.recorder.record(payload)
        except (PydanticValidationError, ModerationError) as e:
            logger.warning(f"Rejected result message: {e}")
            self._dead_letter(message, str(e))
            return None
        except Exception as e:
            logger.error(f"Error processing result message: {e}")
            self._dead_letter(message, str(e))
            return None

        processing_time = int((time.time() - start_time) * 1000)
        logger.debug(f"Result {result.id} for content {result.content_id} processed in {processing_time}ms")
        return result

    def _dead_letter(self, message: Message, error: str):
        metrics.record_dlq()
        if not self.broker.publish_dlq(message, error):
            logger.error(f"Could not publish to DLQ, message dropped: {message}")

    def start(self):
        """Start consuming the results topic (blocks)"""
        self.services.store.init_schema()
        metrics.start(self.settings.metrics_port)
        logger.info(f"Consuming {self.settings.results_topic}...")
        try:
            self.broker.consume(
                self.settings.results_topic,
                'moderation-core',
                self.handle_result,
            )
        except KeyboardInterrupt:
            logger.info("Shutting down pipeline...")
        finally:
            self.services.store.close()
            self.broker.close()


def main():
    settings = Settings.from_env()
    configure_logging(settings)
    Pipeline(settings=settings).start()


if __name__ == '__main__':
    main()
