"""
Error taxonomy for the journal API.

Services raise these; the handlers registered in ``main.py`` turn them into
``{"error": message}`` JSON responses with the matching status code.
"""


class JournalError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(JournalError):
    status_code = 400
    default_message = "Invalid input"


class Conflict(JournalError):
    status_code = 400
    default_message = "Email or Username already exists"


class AuthFailure(JournalError):
    # Same status and message whether the email or the password was wrong
    status_code = 400
    default_message = "Invalid email or password"


class Unauthorized(JournalError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(JournalError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(JournalError):
    status_code = 404
    default_message = "Not found"


class Internal(JournalError):
    status_code = 500
    default_message = "Internal server error"


class InvalidToken(Exception):
    """Raised by the token issuer when a token cannot be trusted"""


def validation_message(errors) -> str:
    """Build a single human readable message from pydantic error dicts"""
    missing = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        if error.get("type") == "missing":
            if not loc:
                return "Request body is required"
            missing.append(loc[-1])

    if missing:
        return f"Missing required fields: {', '.join(missing)}"

    if not errors:
        return InvalidInput.default_message

    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Malformed JSON body"

    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    msg = str(first.get("msg", "")).removeprefix("Value error, ")
    return f"{field}: {msg}" if field else msg
