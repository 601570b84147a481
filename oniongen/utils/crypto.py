# -*- coding: utf-8 -*-
import base64
import binascii
import hashlib
import secrets
from dataclasses import dataclass
from typing import Callable

from nacl.signing import SigningKey

from oniongen.errors import ConfigurationError, EntropyError

ONION_VERSION = b"\x03"
ONION_CHECKSUM_PREFIX = b".onion checksum"
ONION_ADDRESS_LENGTH = 56
SEED_SIZE = 32

SeedSource = Callable[[int], bytes]


@dataclass(frozen=True)
class KeyPair:
    public_key: bytes
    seed: bytes


def onion_checksum(public_key: bytes) -> bytes:
    digest = hashlib.sha3_256(ONION_CHECKSUM_PREFIX + public_key + ONION_VERSION).digest()
    return digest[:2]


def encode_onion_address(public_key: bytes) -> str:
    """base32(pubkey || checksum || version), lowercase, without the .onion suffix."""
    payload = public_key + onion_checksum(public_key) + ONION_VERSION
    return base64.b32encode(payload).decode("ascii").rstrip("=").lower()


def decode_onion_address(address: str) -> bytes:
    """Return the public key behind a v3 onion address after checking version and checksum."""
    address = address.strip().lower()
    if address.endswith(".onion"):
        address = address[: -len(".onion")]
    if len(address) != ONION_ADDRESS_LENGTH:
        raise ConfigurationError(
            "Onion address must be {} characters, got {}".format(ONION_ADDRESS_LENGTH, len(address))
        )
    try:
        payload = base64.b32decode(address.upper())
    except binascii.Error as e:
        raise ConfigurationError("Invalid base32 in onion address: {}".format(e))
    public_key, checksum, version = payload[:32], payload[32:34], payload[34:]
    if version != ONION_VERSION:
        raise ConfigurationError("Unsupported onion address version: {}".format(version.hex()))
    if checksum != onion_checksum(public_key):
        raise ConfigurationError("Onion address checksum mismatch")
    return public_key


def expand_secret_key(seed: bytes) -> bytes:
    """
    Expand a 32-byte ed25519 seed into the 64-byte clamped scalar/prefix pair
    stored in Tor's hs_ed25519_secret_key file.
    """
    h = bytearray(hashlib.sha512(seed).digest())
    h[0] &= 248
    h[31] &= 127
    h[31] |= 64
    return bytes(h)


def get_public_key_from_seed(seed: bytes) -> bytes:
    return bytes(SigningKey(seed).verify_key)


def generate_keypair(seed_source: SeedSource = secrets.token_bytes) -> KeyPair:
    try:
        seed = seed_source(SEED_SIZE)
    except Exception as e:
        raise EntropyError("Secure random source failed: {}".format(e)) from e
    if not isinstance(seed, (bytes, bytearray)) or len(seed) != SEED_SIZE:
        raise EntropyError("Secure random source returned an invalid seed")
    seed = bytes(seed)
    return KeyPair(public_key=get_public_key_from_seed(seed), seed=seed)


def encode_private_key(seed: bytes) -> str:
    return base64.b64encode(seed).decode("ascii")


def decode_private_key(encoded: str) -> bytes:
    try:
        seed = base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise ConfigurationError("Invalid base64 private key: {}".format(e))
    if len(seed) != SEED_SIZE:
        raise ConfigurationError(
            "Private key must decode to {} bytes; got {}".format(SEED_SIZE, len(seed))
        )
    return seed
