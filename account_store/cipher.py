"""
Cipher Codec Module

At-rest obfuscation for the account store and password fingerprinting.

WARNING: nothing here is cryptography. simple_hash is the djb2 string hash
(not collision resistant) and xor_stream is a repeating-key XOR that anyone
holding one plaintext/ciphertext pair can undo. Both are kept for
compatibility with existing store files.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

from .logging_config import get_logger


logger = get_logger("account_store.cipher")

PathLike = Union[str, Path]

HASH_SEED = 5381
HASH_MASK = (1 << 64) - 1  # wraps like an unsigned long


def simple_hash(text: str) -> str:
    """
    djb2 hash of the UTF-8 bytes of text, as a decimal string.

    Non-cryptographic: order sensitive and deterministic, nothing more.
    """
    h = HASH_SEED
    for byte in text.encode("utf-8"):
        h = (h * 33 + byte) & HASH_MASK
    return str(h)


def xor_stream(data: bytes, key: bytes) -> bytes:
    """XOR data against a repeating key. Applying it twice restores data."""
    if not key:
        raise ValueError("Cipher key must not be empty")
    key_len = len(key)
    return bytes(b ^ key[i % key_len] for i, b in enumerate(data))


def derive_file_key(passphrase: str) -> bytes:
    """Key used for the store file: the hash of a fixed passphrase"""
    return simple_hash(passphrase).encode("ascii")


def fingerprint_password(password: str) -> str:
    """Digest stored by the user-management collaborator instead of the password"""
    return simple_hash(password)


def verify_password(password: str, digest: str) -> bool:
    """Compare a password against a stored fingerprint"""
    return fingerprint_password(password) == digest


class EncryptionProvider(ABC):
    """Abstract base class for whole-file encryption providers"""

    @abstractmethod
    def encrypt(self, plaintext: bytes) -> bytes:
        """Encrypt plaintext and return ciphertext"""
        pass

    @abstractmethod
    def decrypt(self, ciphertext: bytes) -> bytes:
        """Decrypt ciphertext and return plaintext"""
        pass


class NoOpEncryptionProvider(EncryptionProvider):
    """No-operation provider; the store is written as plain text"""

    def __init__(self):
        logger.info("Using NoOpEncryptionProvider - store will NOT be obfuscated")

    def encrypt(self, plaintext: bytes) -> bytes:
        return plaintext

    def decrypt(self, ciphertext: bytes) -> bytes:
        return ciphertext


class XorStreamProvider(EncryptionProvider):
    """Legacy XOR stream keyed by the hash of a passphrase (symmetric)"""

    def __init__(self, passphrase: str):
        if not passphrase:
            raise ValueError("XorStreamProvider requires a non-empty passphrase")
        self.key = derive_file_key(passphrase)

    def encrypt(self, plaintext: bytes) -> bytes:
        return xor_stream(plaintext, self.key)

    def decrypt(self, ciphertext: bytes) -> bytes:
        return xor_stream(ciphertext, self.key)


def create_encryption_provider(provider_type: str, passphrase: str) -> EncryptionProvider:
    """Factory function to create encryption providers"""
    provider_type = provider_type.lower()

    if provider_type == "noop":
        return NoOpEncryptionProvider()

    if provider_type != "xor":
        logger.warning(f"Unknown encryption provider '{provider_type}' - using NoOpEncryptionProvider")
        return NoOpEncryptionProvider()

    if not passphrase:
        logger.warning("No passphrase provided - using NoOpEncryptionProvider")
        return NoOpEncryptionProvider()

    return XorStreamProvider(passphrase)


def encrypt_file(store_path: PathLike, provider: EncryptionProvider, staging_path: PathLike) -> None:
    """
    Seal the store: encrypt the staging file's content into store_path.

    The staging file is the source of truth here, so it must already hold
    the complete plaintext. A missing or unreadable staging file, or an
    unwritable store, raises OSError.
    """
    try:
        content = Path(staging_path).read_bytes()
    except OSError as e:
        logger.error(f"Unable to open {staging_path} for reading: {e}")
        raise

    try:
        Path(store_path).write_bytes(provider.encrypt(content))
    except OSError as e:
        logger.error(f"Unable to open {store_path} for writing: {e}")
        raise


def decrypt_file(store_path: PathLike, provider: EncryptionProvider) -> str:
    """Return the decrypted store content; a missing store is empty"""
    path = Path(store_path)
    if not path.exists():
        logger.debug(f"Store {path} does not exist yet - treating as empty")
        return ""

    try:
        content = path.read_bytes()
    except OSError as e:
        logger.error(f"Unable to open file for reading: {path}: {e}")
        raise

    return provider.decrypt(content).decode("utf-8", errors="replace")
