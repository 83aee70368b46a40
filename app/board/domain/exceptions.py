class BoardError(Exception):
    """Erro base do mural."""


class EmptyMessageError(BoardError, ValueError):
    """Mensagem vazia ou contendo apenas espaços."""


class UnknownBoardError(BoardError, LookupError):
    """Mural não declarado em settings.BOARDS."""

    def __init__(self, board: str):
        super().__init__(f"Mural desconhecido: {board}")
        self.board = board


class StoreError(BoardError):
    """Falha do store remoto ao ler ou gravar documentos."""
