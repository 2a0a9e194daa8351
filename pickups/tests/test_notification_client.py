import unittest
from datetime import datetime, timezone as dt_timezone
from unittest.mock import MagicMock, patch

import requests

from pickups.clients.notification_client import (
    CHANNEL_EMAIL, CHANNEL_SMS, TYPE_OVERDUE, TYPE_REMINDER, NotificationClient
)


class NotificationClientTest(unittest.TestCase):

    def test_without_webhook_messages_are_only_logged(self):
        client = NotificationClient(webhook_url='')

        with patch('pickups.clients.notification_client.requests.post') as mock_post:
            self.assertTrue(client.send("hello", ["+23276000000"]))
        mock_post.assert_not_called()

    def test_no_recipients(self):
        client = NotificationClient(webhook_url='http://notify.local/hook')
        self.assertFalse(client.send("hello", [None, ""]))

    @patch('pickups.clients.notification_client.requests.post')
    def test_posts_payload_to_webhook(self, mock_post):
        mock_post.return_value = MagicMock(status_code=202)
        client = NotificationClient(webhook_url='http://notify.local/hook', timeout=2)

        self.assertTrue(client.send_overdue_alert(7, "+23276000000", "Main Street", 42))

        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], 'http://notify.local/hook')
        self.assertEqual(kwargs['timeout'], 2)
        payload = kwargs['json']
        self.assertEqual(payload['type'], TYPE_OVERDUE)
        self.assertEqual(payload['channel'], CHANNEL_SMS)
        self.assertEqual(payload['pickup_id'], 7)
        self.assertEqual(payload['recipients'], ["+23276000000"])
        self.assertEqual(payload['message'], "OVERDUE: Pickup at Main Street is now 42 minutes overdue.")

    @patch('pickups.clients.notification_client.requests.post')
    def test_delivery_failure_is_swallowed(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("unreachable")
        client = NotificationClient(webhook_url='http://notify.local/hook')

        self.assertFalse(client.notify_pickup_assignment(1, "+23276000000", "Main Street"))

    @patch('pickups.clients.notification_client.requests.post')
    def test_http_error_is_swallowed(self, mock_post):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        mock_post.return_value = response
        client = NotificationClient(webhook_url='http://notify.local/hook')

        self.assertFalse(client.notify_pickup_completion(1, "owner@example.com", "Main Street"))

    def test_helpers_pick_channel_and_type(self):
        client = NotificationClient(webhook_url='')
        with patch.object(client, 'send', return_value=True) as mock_send:
            client.send_pickup_reminder(3, "+23276000000", datetime(2024, 1, 1, 9, 30, tzinfo=dt_timezone.utc))
            client.notify_pickup_completion(3, "owner@example.com", "Main Street")

        reminder, completion = mock_send.call_args_list
        self.assertTrue(reminder.args[0].startswith("Reminder: Pickup scheduled at "))
        self.assertEqual(reminder.args[3], TYPE_REMINDER)
        self.assertEqual(completion.args[2], CHANNEL_EMAIL)
