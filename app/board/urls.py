from django.urls import path

from app.board.views import BoardPageView

urlpatterns = [
    path("<slug:board>/", BoardPageView.as_view(), name="board-page"),
]
