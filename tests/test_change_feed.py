import json
import unittest

from fakes import FakeRedis


class TestChangeFeed(unittest.TestCase):
    def setUp(self):
        from messageboard.services.change_feed import ChangeFeed

        self.redis = FakeRedis()
        self.changes = ChangeFeed(self.redis, channel_prefix="test-changes")

    def test_publish_reaches_subscriber(self):
        received = []
        self.changes.subscribe("posts", "*", received.append)

        self.assertTrue(self.changes.publish("posts", "INSERT", {"id": 1}))

        self.assertEqual(len(received), 1)
        self.assertEqual(received[0]["table"], "posts")
        self.assertEqual(received[0]["event"], "INSERT")
        self.assertEqual(received[0]["record"], {"id": 1})
        self.assertIn("commit_timestamp", received[0])

    def test_channel_is_scoped_per_table(self):
        received = []
        self.changes.subscribe("posts", "*", received.append)

        self.changes.publish("user_data", "INSERT", {"id": "u1"})

        self.assertEqual(received, [])
        self.assertEqual(self.changes.channel_for("posts"), "test-changes:posts")

    def test_event_filter(self):
        received = []
        self.changes.subscribe("posts", "DELETE", received.append)

        self.changes.publish("posts", "INSERT", {"id": 1})
        self.changes.publish("posts", "DELETE", {"id": 1})

        self.assertEqual([payload["event"] for payload in received], ["DELETE"])

    def test_unknown_event_filter_rejected(self):
        with self.assertRaises(ValueError):
            self.changes.subscribe("posts", "TRUNCATE", lambda payload: None)

    def test_malformed_message_is_dropped(self):
        received = []
        self.changes.subscribe("posts", "*", received.append)

        with self.assertLogs("messageboard.services.change_feed", level="WARNING"):
            self.redis.publish("test-changes:posts", "{not json")

        self.assertEqual(received, [])

    def test_listener_failure_does_not_reach_publisher(self):
        def broken(payload):
            raise RuntimeError("listener bug")

        self.changes.subscribe("posts", "*", broken)

        with self.assertLogs("messageboard.services.change_feed", level="ERROR"):
            self.assertTrue(self.changes.publish("posts", "INSERT", {"id": 1}))

    def test_unsubscribe_is_idempotent(self):
        received = []
        subscription = self.changes.subscribe("posts", "*", received.append)

        self.changes.unsubscribe(subscription)
        self.changes.unsubscribe(subscription)
        self.changes.publish("posts", "INSERT", {"id": 2})

        self.assertFalse(subscription.active)
        self.assertEqual(received, [])
        self.assertEqual(self.redis.workers[0].stop_calls, 1)

    def test_publish_serializes_datetimes(self):
        from datetime import datetime

        self.changes.publish("posts", "INSERT", {"created_at": datetime(2026, 1, 1)})

        _, message = self.redis.published[0]
        self.assertEqual(json.loads(message)["record"]["created_at"], "2026-01-01 00:00:00")

    def test_publish_failure_is_reported_not_raised(self):
        from redis.exceptions import RedisError

        class BrokenRedis(FakeRedis):
            def publish(self, channel, message):
                raise RedisError("down")

        changes = type(self.changes)(BrokenRedis())
        self.assertFalse(changes.publish("posts", "INSERT", {"id": 1}))


if __name__ == "__main__":
    unittest.main()
