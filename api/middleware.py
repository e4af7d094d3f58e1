import html
import json

import bleach
from django.utils.deprecation import MiddlewareMixin


class InputSanitizationMiddleware(MiddlewareMixin):
    """
    Strip markup from incoming request bodies before any view parses them.

    Campaign descriptions and reviews are rendered by the frontend, so only a
    small set of formatting tags survives. Text is stored as typed: entities
    produced by cleaning are decoded again, so `Books & fees` stays as is.
    """

    ALLOWED_TAGS = ['p', 'br', 'strong', 'em', 'u', 'a', 'ul', 'ol', 'li']
    ALLOWED_ATTRIBUTES = {'a': ['href', 'title']}
    # Secrets are compared byte for byte and never rendered.
    UNTOUCHED_KEYS = {'password', 'password2', 'refresh', 'token'}

    def process_request(self, request):
        if request.method not in ('POST', 'PUT', 'PATCH'):
            return None

        if request.content_type == 'application/json':
            try:
                body = request.body
                if body:
                    data = json.loads(body)
                    request._body = json.dumps(self._sanitize_data(data)).encode('utf-8')
            except (json.JSONDecodeError, UnicodeDecodeError):
                # Leave malformed JSON for the parser to reject with a 400.
                pass

        elif request.POST:
            sanitized_post = request.POST.copy()
            for key in sanitized_post:
                if key in self.UNTOUCHED_KEYS:
                    continue
                sanitized_post.setlist(key, [
                    self._sanitize_string(value) if isinstance(value, str) else value
                    for value in sanitized_post.getlist(key)
                ])
            request.POST = sanitized_post

        return None

    def _sanitize_data(self, data):
        """Recursively sanitize data structures"""
        if isinstance(data, dict):
            return {
                key: value if key in self.UNTOUCHED_KEYS else self._sanitize_data(value)
                for key, value in data.items()
            }
        elif isinstance(data, list):
            return [self._sanitize_data(item) for item in data]
        elif isinstance(data, str):
            return self._sanitize_string(data)
        else:
            return data

    def _sanitize_string(self, value):
        """Strip dangerous HTML but allow some basic formatting"""
        cleaned = bleach.clean(
            value,
            tags=self.ALLOWED_TAGS,
            attributes=self.ALLOWED_ATTRIBUTES,
            strip=True
        )
        return html.unescape(cleaned).strip()
