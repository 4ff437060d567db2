"""Shared plumbing for the JSON API views.

Every endpoint follows the same contract: parse the request body, run the
query, map failures to a status code and return JSON. ``ApiView`` applies
that mapping in one place:

- missing credential tier          -> 500 "Server configuration error"
- StorefrontError subclasses       -> their own status code
- django.db.DatabaseError          -> 400 with the database message
- anything else                    -> 500 "Internal server error"
"""

import json
import logging

from django.db import DatabaseError
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from .conf import get_credential
from .exceptions import InvalidRequest, StorefrontError

logger = logging.getLogger(__name__)

PUBLIC = "public"
SERVICE = "service"


def error_response(message, status=400, **extra):
    """Build the JSON error envelope."""
    return JsonResponse({"error": message, **extra}, status=status)


def parse_json(request) -> dict:
    """Decode a JSON object request body.

    Raises:
        InvalidRequest: Body is not valid JSON or not an object
    """
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequest("Invalid JSON")
    if not isinstance(data, dict):
        raise InvalidRequest("Invalid JSON")
    return data


def require_fields(data: dict, *names: str) -> None:
    """Raise InvalidRequest naming the first missing or blank field."""
    for name in names:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidRequest(f"{name} is required")


@method_decorator(csrf_exempt, name="dispatch")
class ApiView(View):
    """Base view for JSON endpoints.

    Subclasses set ``credential_tier`` to the key tier they run under.
    Summary endpoints set ``fallback`` to a JSON body that is returned
    with 200 in place of any error response. Unsupported methods still
    get 405.
    """

    credential_tier = PUBLIC
    fallback = None

    def dispatch(self, request, *args, **kwargs):
        method = request.method.lower()
        if method not in self.http_method_names or not hasattr(self, method):
            return self.http_method_not_allowed(request, *args, **kwargs)

        response = self.guarded_dispatch(request, *args, **kwargs)
        if self.fallback is not None and response.status_code >= 400:
            logger.warning("Returning fallback for %s %s", request.method, request.path)
            return JsonResponse(dict(self.fallback))
        return response

    def guarded_dispatch(self, request, *args, **kwargs):
        if not get_credential(self.credential_tier):
            logger.error(
                "Missing %s credential, refusing %s %s",
                self.credential_tier,
                request.method,
                request.path,
            )
            return error_response("Server configuration error", status=500)

        try:
            return super().dispatch(request, *args, **kwargs)
        except StorefrontError as e:
            if e.status_code >= 500:
                logger.error("%s %s failed: %s", request.method, request.path, e.message)
            return error_response(e.message, status=e.status_code, **e.extra)
        except DatabaseError as e:
            logger.error("Database error in %s %s: %s", request.method, request.path, e)
            return error_response(str(e) or e.__class__.__name__, status=400)
        except Exception:
            logger.exception("Unhandled error in %s %s", request.method, request.path)
            return error_response("Internal server error", status=500)
