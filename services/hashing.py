"""
SHA-256 hashing for the note ledger.

digest() is the only hash primitive the ledger uses. ensure_digest_available()
is called once at startup so a broken or missing primitive stops the service
instead of letting it append unlinked records.
"""
import hashlib
import logging
from typing import Union

from .errors import HashingFailure

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "sha256"
DIGEST_HEX_LENGTH = 64

# FIPS 180-2 test vector
_KNOWN_INPUT = b"abc"
_KNOWN_DIGEST = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def digest(data: Union[bytes, str]) -> str:
     """Return the 64-char lowercase hex SHA-256 digest of data (str is UTF-8 encoded)."""
     if isinstance(data, str):
          data = data.encode("utf-8")
     return hashlib.sha256(data).hexdigest()


def ensure_digest_available() -> None:
     """
     Verify the hash primitive works.

     Raises:
          HashingFailure: If SHA-256 is unavailable or returns a wrong digest.
     """
     if HASH_ALGORITHM not in hashlib.algorithms_available:
          raise HashingFailure(f"{HASH_ALGORITHM} is not available in this interpreter")
     try:
          computed = digest(_KNOWN_INPUT)
     except (ValueError, TypeError) as exc:
          raise HashingFailure(f"{HASH_ALGORITHM} failed: {exc}") from exc
     if computed != _KNOWN_DIGEST:
          raise HashingFailure(f"{HASH_ALGORITHM} self-test returned {computed}")
     logger.debug("%s self-test passed", HASH_ALGORITHM)
