# -*- coding: utf-8 -*-
import logging
import re
from typing import List, Optional, Sequence

from oniongen.errors import ConfigurationError

BASE32_ALPHABET = set("abcdefghijklmnopqrstuvwxyz234567")


class PatternMatcher:
    """Regex mode: the pattern may match anywhere in the address."""

    def __init__(self, pattern: str):
        try:
            self.pattern = re.compile(pattern)
        except re.error as e:
            raise ConfigurationError("Invalid regular expression {!r}: {}".format(pattern, e))

    def match(self, address: str) -> Optional[str]:
        if self.pattern.search(address):
            return ""
        return None

    def __repr__(self):
        return "PatternMatcher({!r})".format(self.pattern.pattern)


class PrefixMatcher:
    """Prefix mode: first prefix in list order wins."""

    def __init__(self, prefixes: Sequence[str]):
        self.prefixes: List[str] = list(prefixes)
        if not self.prefixes:
            raise ConfigurationError("Prefix list is empty")
        for prefix in self.prefixes:
            if not set(prefix) <= BASE32_ALPHABET:
                logging.warning(
                    "Prefix {!r} contains characters outside a-z2-7 and can never match".format(prefix)
                )

    def match(self, address: str) -> Optional[str]:
        for prefix in self.prefixes:
            if address.startswith(prefix):
                return prefix
        return None

    def __repr__(self):
        return "PrefixMatcher({!r})".format(self.prefixes)


def build_matcher(pattern: Optional[str] = None, prefixes: Optional[Sequence[str]] = None):
    """
    Pick the match strategy for a run.

    A supplied prefix list disables the pattern. An empty list is an error
    rather than a silent fallback to the pattern.
    """
    if prefixes is not None:
        return PrefixMatcher(prefixes)
    if pattern is None:
        raise ConfigurationError("Either a pattern or a prefix list is required")
    return PatternMatcher(pattern)
