from fastapi.datastructures import Headers
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response

# Answered to unknown origins so the allow-list is never revealed
FALLBACK_ORIGIN = "https://example.com"

ALLOWED_METHODS = ["POST", "GET", "OPTIONS"]
ALLOWED_HEADERS = ["Content-Type", "Authorization"]
MAX_AGE_SECONDS = 86400


def preflight_headers(origin: str | None, allowed: tuple[str, ...] | list[str]) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin if origin in allowed else FALLBACK_ORIGIN,
        "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
        "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
        "Access-Control-Max-Age": str(MAX_AGE_SECONDS),
        "Access-Control-Allow-Credentials": "true",
    }


class AllowListCORSMiddleware(CORSMiddleware):
    """CORS for an explicit allow-list; preflights from other origins get a generic answer instead of a 400."""

    def __init__(self, app, allow_origins: tuple[str, ...] | list[str]):
        super().__init__(
            app,
            allow_origins=list(allow_origins),
            allow_methods=ALLOWED_METHODS,
            allow_headers=ALLOWED_HEADERS,
            allow_credentials=True,
            max_age=MAX_AGE_SECONDS,
        )
        self._allow_list = list(allow_origins)

    def preflight_response(self, request_headers: Headers) -> Response:
        requested_origin = request_headers["origin"]
        if self.is_allowed_origin(origin=requested_origin):
            return super().preflight_response(request_headers=request_headers)
        return PlainTextResponse("OK", status_code=200, headers=preflight_headers(None, self._allow_list))
