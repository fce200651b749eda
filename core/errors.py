"""Error taxonomy shared by the dispatcher and the HTTP layer.

Every failure a caller can see is a ``ProtocolError`` with a stable ``code``.
``Unknown`` wraps persistence/internal failures; its ``detail`` is for the
server log and is never echoed back verbatim.
"""
from __future__ import annotations


class ProtocolError(Exception):
    code = "Unknown"
    # True for caller mistakes (bad credentials, missing rights, duplicates)
    user_error = True

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.code)
        self.detail = detail

    def __repr__(self) -> str:
        if self.detail:
            return f"{type(self).__name__}({self.detail!r})"
        return f"{type(self).__name__}()"


class LoginFailed(ProtocolError):
    code = "LoginFailed"


class UnknownToken(ProtocolError):
    code = "UnknownToken"


class Forbidden(ProtocolError):
    code = "Forbidden"


class UserExist(ProtocolError):
    code = "UserExist"


class InvalidProfile(ProtocolError):
    code = "InvalidProfile"


class Unknown(ProtocolError):
    code = "Unknown"
    user_error = False
