"""Row change notifications carried over Redis pub/sub."""
import json
import logging
from datetime import datetime, timezone

from redis.exceptions import RedisError

from messageboard.errors import ChangeFeedError


logger = logging.getLogger(__name__)

EVENTS = {"INSERT", "UPDATE", "DELETE"}
ALL_EVENTS = "*"


class Subscription:
    """Handle for one registered listener; released by ``ChangeFeed.unsubscribe``."""

    def __init__(self, table, event_filter, channel, worker):
        self.table = table
        self.event_filter = event_filter
        self.channel = channel
        self._worker = worker
        self.active = True


class ChangeFeed:
    def __init__(self, redis_client, channel_prefix="changes", poll_interval=0.1):
        self._redis = redis_client
        self._channel_prefix = channel_prefix
        self._poll_interval = poll_interval

    def channel_for(self, table: str) -> str:
        return f"{self._channel_prefix}:{table}"

    def publish(self, table: str, event: str, record: dict) -> bool:
        if event not in EVENTS:
            raise ValueError(f"Unknown change event: {event}")

        message = json.dumps(
            {
                "table": table,
                "event": event,
                "record": record,
                "commit_timestamp": datetime.now(timezone.utc).isoformat(),
            },
            default=str,
        )
        try:
            self._redis.publish(self.channel_for(table), message)
        except RedisError as e:
            # The row is already committed; listeners catch up on their next load.
            logger.warning("Change notification for %s lost: %s", table, e)
            return False
        return True

    def subscribe(self, table: str, event_filter: str, callback) -> Subscription:
        if event_filter != ALL_EVENTS and event_filter not in EVENTS:
            raise ValueError(f"Unknown change event filter: {event_filter}")

        channel = self.channel_for(table)

        def handle_message(message):
            try:
                payload = json.loads(message["data"])
            except (KeyError, TypeError, ValueError):
                logger.warning("Dropping malformed notification on %s", channel)
                return

            if event_filter != ALL_EVENTS and payload.get("event") != event_filter:
                return

            try:
                callback(payload)
            except Exception:
                logger.exception("Change listener on %s failed", channel)

        try:
            pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
            pubsub.subscribe(**{channel: handle_message})
            worker = pubsub.run_in_thread(sleep_time=self._poll_interval, daemon=True)
        except RedisError as e:
            raise ChangeFeedError(f"Could not subscribe to {table}") from e

        logger.debug("Subscribed to %s (%s)", channel, event_filter)
        return Subscription(table, event_filter, channel, worker)

    def unsubscribe(self, subscription: Subscription):
        if not subscription.active:
            return

        subscription.active = False
        # The worker closes its pubsub connection once its loop exits.
        subscription._worker.stop()
        logger.debug("Unsubscribed from %s", subscription.channel)
