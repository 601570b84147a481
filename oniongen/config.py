# -*- coding: utf-8 -*-
import enum
import json
import multiprocessing
from dataclasses import dataclass, field
from typing import Any, Dict, List

from oniongen.errors import ConfigurationError

LOG_FORMAT = "[%(levelname)s %(asctime)s] %(message)s"
DEFAULT_OUTPUT_PATH = "onion_v3_private_key"
DEFAULT_OUTPUT_DIR = "."
STATUS_INTERVAL = 30  # seconds between progress log lines
PROGRESS_BATCH = 4096  # attempts a worker accumulates before publishing them
STOP_CHECK_INTERVAL = 256  # attempts between stop flag checks
JOIN_TIMEOUT = 5.0


class OutputMode(str, enum.Enum):
    TOR = "tor"
    BITCOIN = "bitcoin"


def default_workers() -> int:
    return multiprocessing.cpu_count()


@dataclass(frozen=True)
class SearchSetting:
    count: int
    mode: OutputMode = OutputMode.TOR
    output_path: str = DEFAULT_OUTPUT_PATH
    output_dir: str = DEFAULT_OUTPUT_DIR
    workers: int = field(default_factory=default_workers)

    def __post_init__(self):
        if not isinstance(self.count, int) or self.count < 1:
            raise ConfigurationError("Number of addresses must be a positive integer")
        if not isinstance(self.workers, int) or self.workers < 1:
            raise ConfigurationError("Number of workers must be a positive integer")
        try:
            if not isinstance(self.mode, OutputMode):
                object.__setattr__(self, "mode", OutputMode(str(self.mode).lower()))
        except ValueError:
            raise ConfigurationError(
                "Invalid output mode: {}. Must be 'tor' or 'bitcoin'".format(self.mode)
            )
        if not self.output_path:
            object.__setattr__(self, "output_path", DEFAULT_OUTPUT_PATH)
        if not self.output_dir:
            object.__setattr__(self, "output_dir", DEFAULT_OUTPUT_DIR)


def read_prefix_file(path: str) -> List[str]:
    """One prefix per line; blank lines and '#' comments are skipped."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            prefixes = []
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                prefixes.append(line)
    except OSError as e:
        raise ConfigurationError("Cannot open prefix file: {}".format(e))
    if not prefixes:
        raise ConfigurationError("No valid prefixes found in {}".format(path))
    return prefixes


def load_config_file(path: str) -> Dict[str, Any]:
    """
    Read a JSON run configuration.

    Values live in nested groups ("search", "output", "performance") with
    camelCase keys; flat snake_case keys at the top level are accepted too.
    Only keys present in the file are returned.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigurationError("Failed to load {}: {}".format(path, e))
    if not isinstance(cfg, dict):
        raise ConfigurationError("{} must contain a JSON object".format(path))

    def group(name):
        value = cfg.get(name, {})
        return value if isinstance(value, dict) else {}

    search_cfg = group("search")
    out_cfg = group("output")
    perf_cfg = group("performance")
    lookup = {
        "pattern": (search_cfg, "pattern", "pattern"),
        "prefixes": (search_cfg, "prefixes", "prefixes"),
        "prefix_file": (search_cfg, "prefixFile", "prefix_file"),
        "count": (search_cfg, "count", "count"),
        "mode": (out_cfg, "mode", "mode"),
        "output_path": (out_cfg, "path", "output_path"),
        "output_dir": (out_cfg, "dir", "output_dir"),
        "workers": (perf_cfg, "workers", "workers"),
    }
    result = {}
    for name, (section, nested_key, flat_key) in lookup.items():
        if nested_key in section:
            result[name] = section[nested_key]
        elif flat_key in cfg:
            result[name] = cfg[flat_key]
    if "prefixes" in result and not isinstance(result["prefixes"], list):
        raise ConfigurationError("'prefixes' must be a list of strings")
    return result
