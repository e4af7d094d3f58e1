from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.test import SimpleTestCase

from api.routing import websocket_urlpatterns
from api.services import campaign_group_name


class CampaignConsumerTest(SimpleTestCase):
    """Live donation updates reach sockets subscribed to the campaign"""

    async def connect(self, campaign_id):
        communicator = WebsocketCommunicator(URLRouter(websocket_urlpatterns), f'/ws/campaigns/{campaign_id}/')
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        return communicator

    async def test_receives_group_updates(self):
        communicator = await self.connect(5)

        await get_channel_layer().group_send(campaign_group_name(5), {
            'type': 'donation_update',
            'data': {'campaign_id': 5, 'collected_amount': 42.0},
        })

        message = await communicator.receive_json_from()
        self.assertEqual(message['type'], 'donation_update')
        self.assertEqual(message['data']['collected_amount'], 42.0)
        await communicator.disconnect()

    async def test_other_campaigns_are_not_delivered(self):
        communicator = await self.connect(6)

        await get_channel_layer().group_send(campaign_group_name(7), {
            'type': 'donation_update',
            'data': {'campaign_id': 7, 'collected_amount': 1.0},
        })

        self.assertTrue(await communicator.receive_nothing())
        await communicator.disconnect()

    async def test_client_messages_are_ignored(self):
        communicator = await self.connect(8)

        await communicator.send_json_to({'amount': 100})

        self.assertTrue(await communicator.receive_nothing())
        await communicator.disconnect()
