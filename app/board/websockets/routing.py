from django.urls import re_path

from app.board.websockets.consumers import BoardConsumer

websocket_urlpatterns = [
    re_path(r"ws/boards/(?P<board>[-\w]+)/$", BoardConsumer.as_asgi()),
]
