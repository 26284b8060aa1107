"""Session-bound CSRF token for state-changing requests."""
import secrets

from flask import Request, request, session

CSRF_SESSION_KEY = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def ensure_csrf_token() -> str:
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def _submitted_token(req: Request) -> str | None:
    token = req.headers.get(CSRF_HEADER) or req.form.get(CSRF_SESSION_KEY)
    if token:
        return token
    if req.is_json:
        data = req.get_json(silent=True)
        if isinstance(data, dict):
            return data.get(CSRF_SESSION_KEY)
    return None


def validate_csrf(req: Request) -> bool:
    submitted = _submitted_token(req)
    expected = session.get(CSRF_SESSION_KEY)
    if not submitted or not expected:
        return False
    return secrets.compare_digest(str(submitted), str(expected))


def csrf_protect(exempt_endpoint_prefixes: tuple[str, ...] = ("auth.",)):
    """
    before_request hook. Issues a token to every session and rejects unsafe
    methods whose token is missing or wrong. Login/logout are exempt.
    """
    ensure_csrf_token()
    if request.method not in UNSAFE_METHODS:
        return None
    if (request.endpoint or "").startswith(exempt_endpoint_prefixes):
        return None
    if not validate_csrf(request):
        return {"error": "CSRF token missing or invalid."}, 400
    return None
