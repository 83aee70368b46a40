from datetime import datetime
from typing import Optional

from django.utils import formats, timezone
from rest_framework import serializers

from app.board.domain.records import MessageRecord


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Data e hora no formato do idioma ativo. None enquanto o timestamp está pendente."""
    if value is None:
        return None
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    return formats.date_format(value, "DATETIME_FORMAT")


class MessageRecordSerializer(serializers.Serializer):
    """Serializer para leitura das mensagens do feed."""

    id = serializers.CharField(read_only=True)
    text = serializers.CharField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True, allow_null=True)
    created_at_display = serializers.SerializerMethodField()

    def get_created_at_display(self, obj: MessageRecord) -> Optional[str]:
        return format_timestamp(obj.created_at)


class PageSerializer(serializers.Serializer):
    """Serializer para uma página do mural."""

    page = serializers.IntegerField(source="number", read_only=True)
    total_pages = serializers.IntegerField(read_only=True)
    page_size = serializers.IntegerField(read_only=True)
    page_numbers = serializers.ListField(child=serializers.IntegerField(), read_only=True)
    has_previous = serializers.BooleanField(read_only=True)
    has_next = serializers.BooleanField(read_only=True)
    messages = MessageRecordSerializer(source="records", many=True, read_only=True)


class SubmitMessageSerializer(serializers.Serializer):
    """Serializer para envio de mensagem."""

    text = serializers.CharField(allow_blank=False, trim_whitespace=True)
