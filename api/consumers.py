import json
from channels.generic.websocket import AsyncWebsocketConsumer

from .services import campaign_group_name


class CampaignConsumer(AsyncWebsocketConsumer):
    """WebSocket consumer for a campaign's live donation total"""

    async def connect(self):
        campaign_id = self.scope['url_route']['kwargs']['campaign_id']
        self.room_group_name = campaign_group_name(campaign_id)

        # Join room group
        await self.channel_layer.group_add(
            self.room_group_name,
            self.channel_name
        )

        await self.accept()

    async def disconnect(self, close_code):
        # Leave room group
        await self.channel_layer.group_discard(
            self.room_group_name,
            self.channel_name
        )

    async def receive(self, text_data=None, bytes_data=None):
        """Viewers only listen; anything sent by a client is ignored"""
        return None

    async def donation_update(self, event):
        """Send donation update to WebSocket"""
        await self.send(text_data=json.dumps({
            'type': 'donation_update',
            'data': event['data']
        }))
