# -*- coding: utf-8 -*-
from dataclasses import dataclass


@dataclass
class SearchMetrics:
    total_keys: int
    elapsed: float
    matches: int = 0
    target: int = 0

    @property
    def keys_per_second(self) -> float:
        return attempts_per_second(self.total_keys, self.elapsed)

    def describe(self) -> str:
        return "{} elapsed, {:,} keys tested ({:,.0f} keys/s), {}/{} matches".format(
            format_duration(self.elapsed),
            self.total_keys,
            self.keys_per_second,
            self.matches,
            self.target,
        )


def attempts_per_second(attempts: int, elapsed: float) -> float:
    if elapsed <= 0:
        return 0.0
    return attempts / elapsed


def format_duration(seconds: float) -> str:
    secs = int(seconds)
    hh = secs // 3600
    mm = (secs % 3600) // 60
    ss = secs % 60
    return f"{hh}:{mm:02d}:{ss:02d}"
