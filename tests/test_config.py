# -*- coding: utf-8 -*-
import json

import pytest

from oniongen.config import (
    DEFAULT_OUTPUT_PATH,
    OutputMode,
    SearchSetting,
    load_config_file,
    read_prefix_file,
)
from oniongen.errors import ConfigurationError


def test_setting_defaults():
    setting = SearchSetting(count=3)
    assert setting.mode is OutputMode.TOR
    assert setting.output_path == DEFAULT_OUTPUT_PATH
    assert setting.output_dir == "."
    assert setting.workers >= 1


def test_setting_normalizes_mode():
    assert SearchSetting(count=1, mode="Bitcoin").mode is OutputMode.BITCOIN


@pytest.mark.parametrize("kwargs", [{"count": 0}, {"count": -2}, {"count": 1, "workers": 0}, {"count": 1, "mode": "i2p"}])
def test_setting_rejects_invalid_values(kwargs):
    with pytest.raises(ConfigurationError):
        SearchSetting(**kwargs)


def test_read_prefix_file(tmp_path):
    path = tmp_path / "prefixes.txt"
    path.write_text("# wanted\nabc\n\n  def  \n")
    assert read_prefix_file(str(path)) == ["abc", "def"]


def test_read_prefix_file_empty(tmp_path):
    path = tmp_path / "prefixes.txt"
    path.write_text("\n# nothing here\n")
    with pytest.raises(ConfigurationError, match="No valid prefixes"):
        read_prefix_file(str(path))


def test_read_prefix_file_missing(tmp_path):
    with pytest.raises(ConfigurationError, match="Cannot open prefix file"):
        read_prefix_file(str(tmp_path / "absent.txt"))


def test_load_config_file_nested_and_flat(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "search": {"prefixes": ["ab"], "count": 2},
        "output": {"mode": "bitcoin", "path": "keys.txt"},
        "workers": 3,
    }))
    assert load_config_file(str(path)) == {
        "prefixes": ["ab"],
        "count": 2,
        "mode": "bitcoin",
        "output_path": "keys.txt",
        "workers": 3,
    }


def test_load_config_file_errors(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError):
        load_config_file(str(path))
    path.write_text(json.dumps({"search": {"prefixes": "ab"}}))
    with pytest.raises(ConfigurationError, match="list"):
        load_config_file(str(path))
