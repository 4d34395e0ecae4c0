from __future__ import annotations


class PhraseTrainerError(Exception):
    code = "ERROR"


class ContentSourceError(PhraseTrainerError):
    code = "CONTENT_SOURCE"


class MissingSourceUrlError(ContentSourceError):
    code = "MISSING_SOURCE_URL"


class OfflineNoCacheError(ContentSourceError):
    """Offline, and neither memory nor disk holds a generation."""

    code = "OFFLINE_NO_CACHE"


class MalformedSourceError(ContentSourceError):
    """The fetched sheet was empty, unparseable or unreachable mid-fetch."""

    code = "MALFORMED_SOURCE"


class CorruptCacheError(ContentSourceError):
    code = "CORRUPT_CACHE"


class PersistFailureError(PhraseTrainerError):
    code = "PERSIST_FAILURE"


class SessionStateError(PhraseTrainerError):
    code = "SESSION_STATE"
