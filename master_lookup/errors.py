from __future__ import annotations


class MasterLookupError(RuntimeError):
    """Base class for errors surfaced to the caller as human-readable text."""


class DatasetUnavailableError(MasterLookupError):
    """Neither the local cache nor the network yielded the dataset."""


class StoreOpenError(MasterLookupError):
    """The local database could not be opened or its schema created."""


class StoreWriteError(MasterLookupError):
    """A bulk import was rejected; nothing from it was committed."""


class EmptyQueryError(MasterLookupError):
    pass


class LookupBusyError(MasterLookupError):
    pass
