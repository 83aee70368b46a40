from django.apps import AppConfig
from django.core.exceptions import ImproperlyConfigured
from django.test.signals import setting_changed


class BoardConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "app.board"
    label = "board"
    verbose_name = "Mural de Mensagens"

    def ready(self) -> None:
        """Valida settings.BOARDS na inicialização; declaração inválida impede o boot."""
        from app.board.config import get_boards, reset_boards

        setting_changed.connect(reset_boards, dispatch_uid="board_reset_boards")

        get_boards.cache_clear()
        try:
            get_boards()
        except ValueError as exc:
            raise ImproperlyConfigured(str(exc)) from exc
