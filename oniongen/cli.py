# -*- coding: utf-8 -*-
import logging
import multiprocessing
import sys

import click

from oniongen.config import (
    DEFAULT_OUTPUT_DIR,
    DEFAULT_OUTPUT_PATH,
    LOG_FORMAT,
    OutputMode,
    SearchSetting,
    default_workers,
    load_config_file,
    read_prefix_file,
)
from oniongen.errors import ConfigurationError, OnionGenError
from oniongen.searcher import benchmark as run_benchmark
from oniongen.searcher import run_search
from oniongen.utils.crypto import decode_private_key, encode_onion_address, get_public_key_from_seed
from oniongen.utils.matcher import build_matcher
from oniongen.utils.writers import BITCOIN_KEY_PREFIX

logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)


@click.group()
def cli():
    """Vanity Tor v3 onion address generator"""
    pass


def _parse_positive_int(value, what: str) -> int:
    message = "Number of {} must be a positive integer".format(what)
    if isinstance(value, bool):
        raise ConfigurationError(message)
    if isinstance(value, str):
        if not value.strip().isdigit():
            raise ConfigurationError(message)
        value = int(value)
    if not isinstance(value, int) or value < 1:
        raise ConfigurationError(message)
    return value


def resolve_search(args, values, file_values=None):
    """
    Turn positional arguments plus option/config values into (matcher, setting).

    The last positional argument is the number of addresses; a preceding one
    is the regex. When the config file supplies the count, a single
    positional argument is the regex. Config file values win over both.
    With prefixes the regex is not needed and is ignored.
    """
    file_values = file_values or {}
    positional = list(args)
    if len(positional) > 2:
        raise ConfigurationError("Too many arguments: {}".format(" ".join(positional)))
    if positional and not (len(positional) == 1 and "count" in file_values):
        values["count"] = positional.pop()
    if positional:
        values["pattern"] = positional.pop()
    values.update(file_values)
    if values.get("count") is None:
        raise ConfigurationError("Missing number of addresses to generate")

    prefixes = values.get("prefixes")
    if values.get("prefix_file"):
        prefixes = read_prefix_file(values["prefix_file"])
        logging.info("Loaded {} prefixes from {}".format(len(prefixes), values["prefix_file"]))
    if prefixes is not None and values.get("pattern"):
        logging.warning("Prefixes supplied, ignoring pattern {!r}".format(values["pattern"]))
    if prefixes is None and values.get("pattern") is None:
        raise ConfigurationError("Missing pattern; give a regex or use --prefix/--prefix-file")

    matcher = build_matcher(pattern=values.get("pattern"), prefixes=prefixes)
    setting = SearchSetting(
        count=_parse_positive_int(values["count"], "addresses"),
        mode=values.get("mode") or OutputMode.TOR,
        output_path=values.get("output_path") or DEFAULT_OUTPUT_PATH,
        output_dir=values.get("output_dir") or DEFAULT_OUTPUT_DIR,
        workers=_parse_workers(values.get("workers")),
    )
    return matcher, setting


def _parse_workers(value) -> int:
    if value is None:
        return default_workers()
    return _parse_positive_int(value, "workers")


@cli.command(context_settings={"show_default": True})
@click.argument("args", nargs=-1)
@click.option(
    "--config", "-c", type=click.Path(exists=True, dir_okay=False),
    help="Read parameters from a JSON file; its values override the options."
)
@click.option(
    "--mode", "-m", type=click.Choice([m.value for m in OutputMode], case_sensitive=False),
    default=OutputMode.TOR.value, help="Output format."
)
@click.option(
    "--output", "-o", "output_path", type=click.Path(dir_okay=False), default=DEFAULT_OUTPUT_PATH,
    help="Key file written in bitcoin mode."
)
@click.option(
    "--output-dir", type=click.Path(file_okay=False, dir_okay=True), default=DEFAULT_OUTPUT_DIR,
    help="Where Tor hidden service directories are created."
)
@click.option(
    "--prefix-file", "-p", type=click.Path(dir_okay=False), default=None,
    help="File with address prefixes, one per line. Disables the regex."
)
@click.option(
    "--prefix", "prefixes", type=str, multiple=True,
    help="Address prefix (repeatable, first listed wins). Disables the regex."
)
@click.option(
    "--workers", "-w", type=int, default=None,
    help="Worker processes (default: one per CPU)."
)
def search(args, config, mode, output_path, output_dir, prefix_file, prefixes, workers):
    """
    Search for onion addresses matching [PATTERN] and stop after COUNT matches.

    \b
    oniongen search "^test" 5
    oniongen search --mode bitcoin --output /path/to/onion_v3_private_key "^btc" 1
    oniongen search --mode bitcoin --prefix-file prefixes.txt 5
    """
    values = {
        "mode": mode,
        "output_path": output_path,
        "output_dir": output_dir,
        "prefix_file": prefix_file,
        "prefixes": list(prefixes) or None,
        "workers": workers,
        "pattern": None,
        "count": None,
    }
    try:
        file_values = load_config_file(config) if config else {}
        matcher, setting = resolve_search(args, values, file_values)
        run_search(matcher, setting)
    except OnionGenError as e:
        logging.error("{}".format(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logging.info("Stopped by user")
        sys.exit(130)


@cli.command(context_settings={"show_default": True})
@click.option("--seconds", type=float, default=5.0, help="Duration of the measurement.")
@click.option("--workers", "-w", type=int, default=None, help="Worker processes (default: one per CPU).")
def benchmark(seconds, workers):
    """Measure keypair-to-address throughput per worker."""
    workers = workers or default_workers()
    logging.info("Benchmarking {} worker(s) for {:.1f}s".format(workers, seconds))
    rates = run_benchmark(seconds, workers)
    for idx, rate in enumerate(rates):
        logging.info("Worker {}: {:,} keys/s".format(idx, int(rate)))
    click.echo("Total: {:,} keys/s".format(int(sum(rates))))


@cli.command(name="show-address")
@click.argument("keyfile", type=click.Path(exists=True, dir_okay=False))
def show_address(keyfile):
    """Print the onion address of every key in a bitcoin-format key file."""
    try:
        with open(keyfile, "r", encoding="utf-8") as f:
            lines = [line.strip() for line in f if line.strip()]
        for line in lines:
            if not line.startswith(BITCOIN_KEY_PREFIX):
                raise ConfigurationError("Not an {} key: {}".format(BITCOIN_KEY_PREFIX, line[:20]))
            seed = decode_private_key(line[len(BITCOIN_KEY_PREFIX):])
            click.echo("{}.onion".format(encode_onion_address(get_public_key_from_seed(seed))))
    except OnionGenError as e:
        logging.error("{}".format(e))
        sys.exit(1)


def main():
    multiprocessing.set_start_method("spawn", force=True)
    cli()


if __name__ == "__main__":
    main()
