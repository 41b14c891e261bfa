"""Domain services behind the HTTP routers."""

from .accounts import AccountService
from .clips import ClipHistoryService
from .sessions import SessionTokenService
from .synthesis import Caller, SynthesisGateway, SynthesisResult
from .usage import UsageLedger

__all__ = [
    "AccountService",
    "Caller",
    "ClipHistoryService",
    "SessionTokenService",
    "SynthesisGateway",
    "SynthesisResult",
    "UsageLedger",
]
