"""Exceptions raised by chunkcache."""


class MemcacheError(Exception):
    """Base class for all chunkcache errors."""


class ConfigurationError(MemcacheError):
    """None of the configured memcache servers could be reached."""


class ServerLossError(MemcacheError):
    """Every server has dropped out of the active pool."""


class VersionMismatchError(MemcacheError):
    """Pickled API state was written by an incompatible version."""


class UnserializeError(MemcacheError):
    """A stored payload could not be decoded."""
