# -*- coding: utf-8 -*-
import multiprocessing
import queue
import threading

import pytest

from oniongen.config import OutputMode, SearchSetting

# RFC 8032, section 7.1, test 1
RFC_SEED = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
RFC_PUBLIC_KEY = bytes.fromhex("d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a")
RFC_ONION = "25njqamcweflpvkl73j4szahhihoc4xt3ktcgjnpaingr5yhkenl5sid"
RFC_PRIVATE_KEY_B64 = "nWGxne/9WmC6hEr0kuwsxERJxWl7MmkZcDusAxyuf2A="


def seed_sequence(*seeds):
    it = iter(seeds)

    def source(n):
        return next(it)

    return source


@pytest.fixture
def channels():
    """In-process stand-ins for the queue, stop event and counters of a search."""
    return {
        "intake": queue.Queue(),
        "stop_flag": threading.Event(),
        "claimed": multiprocessing.Value("i", 0),
        "total_attempts": multiprocessing.Value("Q", 0),
    }


@pytest.fixture
def tor_setting(tmp_path):
    return SearchSetting(count=1, mode=OutputMode.TOR, output_dir=str(tmp_path), workers=1)


@pytest.fixture
def bitcoin_setting(tmp_path):
    return SearchSetting(
        count=2, mode=OutputMode.BITCOIN, output_path=str(tmp_path / "onion_v3_private_key"), workers=1
    )
