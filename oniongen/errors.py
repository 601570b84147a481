# -*- coding: utf-8 -*-


class OnionGenError(Exception):
    """Base class for every fatal error of a search run."""


class ConfigurationError(OnionGenError):
    """Invalid pattern, empty prefix list or bad numeric setting."""


class EntropyError(OnionGenError):
    """The secure random source failed; there is no safe fallback."""


class PersistenceError(OnionGenError):
    """A key directory or key file could not be written."""
