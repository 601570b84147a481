# -*- coding: utf-8 -*-
import logging
import os
from typing import Sequence

import click

from oniongen.utils.crypto import expand_secret_key
from oniongen.utils.stats import attempts_per_second
from oniongen.errors import PersistenceError

TOR_SECRET_KEY_HEADER = b"== ed25519v1-secret: type0 ==\x00\x00\x00"
TOR_PUBLIC_KEY_HEADER = b"== ed25519v1-public: type0 ==\x00\x00\x00"
TOR_SECRET_KEY_FILE = "hs_ed25519_secret_key"
TOR_PUBLIC_KEY_FILE = "hs_ed25519_public_key"
TOR_HOSTNAME_FILE = "hostname"
BITCOIN_KEY_PREFIX = "ED25519-V3:"


def _write_private_file(path: str, data: bytes) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    os.chmod(path, 0o600)


def save_tor_keypair(onion_address: str, public_key: bytes, seed: bytes, output_dir: str = ".") -> str:
    """
    Write a Tor hidden service directory named after the address.

    Layout of the key files is tag(29) || 0x00 * 3 || key material, which is
    what tor reads from HiddenServiceDir.
    """
    service_dir = os.path.join(output_dir, onion_address)
    try:
        os.makedirs(service_dir, mode=0o700, exist_ok=True)
        os.chmod(service_dir, 0o700)
        _write_private_file(
            os.path.join(service_dir, TOR_SECRET_KEY_FILE),
            TOR_SECRET_KEY_HEADER + expand_secret_key(seed),
        )
        _write_private_file(
            os.path.join(service_dir, TOR_PUBLIC_KEY_FILE),
            TOR_PUBLIC_KEY_HEADER + public_key,
        )
        _write_private_file(
            os.path.join(service_dir, TOR_HOSTNAME_FILE),
            "{}.onion\n".format(onion_address).encode("utf-8"),
        )
    except OSError as e:
        raise PersistenceError("Failed to write Tor keys to {}: {}".format(service_dir, e)) from e
    logging.info("Saved Tor keys to {}".format(service_dir))
    return service_dir


def format_match_summary(match) -> str:
    line = "Generated address: {}.onion".format(match.onion_address)
    if match.prefix:
        line += " (matched prefix: {})".format(match.prefix)
    # rate comes from the reporting worker only
    line += " after {} attempts ({:.2f}/sec)".format(
        match.attempts, attempts_per_second(match.attempts, match.elapsed)
    )
    return line


def save_bitcoin_keys(matches: Sequence, output_path: str) -> str:
    """Write every match as an ED25519-V3 line, the format bitcoind loads for its onion service."""
    try:
        fd = os.open(output_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            for match in matches:
                f.write("{}{}\n".format(BITCOIN_KEY_PREFIX, match.private_key))
                click.echo(format_match_summary(match))
            f.flush()
    except OSError as e:
        raise PersistenceError("Error writing to file {}: {}".format(output_path, e)) from e
    click.echo("Bitcoin format keys saved to {}".format(output_path))
    return output_path
