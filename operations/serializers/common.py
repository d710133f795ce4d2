import bleach
from rest_framework import serializers


def clean_text(value) -> str:
    """Strip markup and surrounding whitespace from free text."""
    return bleach.clean((value or '').strip(), tags=set(), strip=True)


class CleanCharField(serializers.CharField):
    """CharField whose value is passed through :func:`clean_text`."""

    def to_internal_value(self, data):
        return clean_text(super().to_internal_value(data))


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1)
    page_size = serializers.IntegerField(required=False, min_value=1)
