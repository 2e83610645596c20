import json
import logging
import aio_pika
from reconciler.config import RABBITMQ_URL, EVENT_EXCHANGE

logger = logging.getLogger(__name__)

connection = None
channel = None

async def setup_rabbitmq():
    global connection, channel
    try:
        connection = await aio_pika.connect_robust(RABBITMQ_URL)
        channel = await connection.channel()
        await channel.declare_exchange(EVENT_EXCHANGE, aio_pika.ExchangeType.TOPIC, durable=True)
        logger.info("RabbitMQ setup complete.")
    except Exception as e:
        logger.error(f"Error setting up RabbitMQ: {e}")

async def close_rabbitmq():
    global connection, channel
    if connection:
        await connection.close()
    connection = None
    channel = None

async def publish_event(exchange_name: str, routing_key: str, message_data: dict):
    """Fire-and-forget: failures are logged, never raised to the caller."""
    if not channel:
        logger.warning(f"RabbitMQ channel not available. Dropping {message_data['event_type']} event.")
        return

    message = aio_pika.Message(
        json.dumps(message_data).encode('utf-8'),
        content_type='application/json',
        delivery_mode=aio_pika.DeliveryMode.PERSISTENT
    )

    try:
        exchange = await channel.get_exchange(exchange_name)
        await exchange.publish(message, routing_key=routing_key)
        logger.info(f"Published event to {routing_key}: {message_data['event_type']}")
    except Exception as e:
        logger.error(f"Error publishing event: {e}")
