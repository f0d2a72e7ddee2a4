__all__ = [
    # Exceptions
    "LLRPError",
    "LLRPDecodeError",
    "ReaderConnectionError",
    "ReaderTimeoutError",
]


class LLRPError(Exception):
    pass


class LLRPDecodeError(LLRPError):
    pass


class ReaderConnectionError(LLRPError):
    pass


class ReaderTimeoutError(ReaderConnectionError):
    pass
