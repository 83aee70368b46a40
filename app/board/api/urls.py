from django.urls import path

from app.board.api.views import BoardMessagesView

urlpatterns = [
    path("boards/<slug:board>/messages/", BoardMessagesView.as_view(), name="board-messages"),
]
