from __future__ import annotations

from rest_framework.renderers import JSONRenderer

_ENVELOPE_KEYS = frozenset({"data", "meta"})


class EnvelopeJSONRenderer(JSONRenderer):
    """
    Wrap successful Control API responses in a `{ "data": ... }` envelope.

    Error bodies come from `config.exception_handler.custom_exception_handler`
    and pass through untouched.
    """

    def render(self, data, accepted_media_type=None, renderer_context=None):
        response = renderer_context.get("response") if renderer_context else None
        if response is not None and response.status_code >= 400:
            return super().render(data, accepted_media_type, renderer_context)
        if isinstance(data, dict) and "data" in data and set(data) <= _ENVELOPE_KEYS:
            return super().render(data, accepted_media_type, renderer_context)
        return super().render({"data": data}, accepted_media_type, renderer_context)
