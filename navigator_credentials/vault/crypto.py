"""
Vault Crypto Core — Key derivation and authenticated encryption of credentials.

- Key derivation: PBKDF2-HMAC-SHA512(master_secret, SALT, 100k) → 32-byte key
- Encryption: AES-256-GCM with a random 128-bit nonce per call

Encrypted credentials are stored as three base64 strings:
``encrypted_key`` (ciphertext), ``iv`` (nonce) and ``auth_tag`` (GCM tag).

Security Note:
    Never log plaintext or ciphertext values.
    The derived key is recomputed on every operation and never stored.
"""
import os
import base64
import binascii
import logging
from typing import NamedTuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import ConfigurationError, IntegrityError

logger = logging.getLogger("navigator.vault")

KEY_LENGTH = 32  # AES-256
NONCE_SIZE = 16  # 128-bit nonce
TAG_SIZE = 16  # GCM tag
KDF_ITERATIONS = 100_000
# Shared by every deployment of this codebase, see DESIGN.md.
SALT = b"ai-orchestration-vault-v1"


class EncryptedSecret(NamedTuple):
    """Base64-encoded pieces of an encrypted credential."""
    encrypted_key: str
    iv: str
    auth_tag: str


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(master_secret: str, iterations: int = KDF_ITERATIONS) -> bytes:
    """Derive the 32-byte vault key from the master secret.

    Args:
        master_secret: Long-lived secret supplied by the host environment.
        iterations: PBKDF2 work factor.

    Returns:
        32-byte derived key.

    Raises:
        ConfigurationError: If the master secret is missing.
    """
    if not master_secret:
        raise ConfigurationError(
            "A master secret is required for credential encryption"
        )
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=KEY_LENGTH,
        salt=SALT,
        iterations=iterations,
    )
    return kdf.derive(master_secret.encode("utf-8"))


# ---------------------------------------------------------------------------
# Raw AEAD layer
# ---------------------------------------------------------------------------

def seal(plaintext: bytes, key: bytes) -> tuple[bytes, bytes, bytes]:
    """Encrypt bytes with AES-256-GCM under an already derived key.

    Returns:
        Tuple of (ciphertext, nonce, tag).
    """
    nonce = os.urandom(NONCE_SIZE)
    ct = AESGCM(key).encrypt(nonce, plaintext, None)
    return ct[:-TAG_SIZE], nonce, ct[-TAG_SIZE:]


def unseal(ciphertext: bytes, nonce: bytes, tag: bytes, key: bytes) -> bytes:
    """Verify the tag and decrypt bytes sealed by :func:`seal`.

    Raises:
        IntegrityError: If the tag does not authenticate the ciphertext.
    """
    if len(nonce) != NONCE_SIZE or len(tag) != TAG_SIZE:
        raise IntegrityError("Encrypted credential has malformed nonce or tag")
    try:
        return AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as err:
        raise IntegrityError(
            "Credential failed integrity check: tampered or corrupted record"
        ) from err


# ---------------------------------------------------------------------------
# Credential layer (string in, base64 out)
# ---------------------------------------------------------------------------

def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as err:
        raise IntegrityError("Encrypted credential is not valid base64") from err


def encrypt_with_key(plaintext: str, key: bytes) -> EncryptedSecret:
    """Encrypt a credential string under an already derived key."""
    ct, nonce, tag = seal(plaintext.encode("utf-8"), key)
    return EncryptedSecret(
        encrypted_key=_b64encode(ct),
        iv=_b64encode(nonce),
        auth_tag=_b64encode(tag),
    )


def decrypt_with_key(encrypted_key: str, iv: str, auth_tag: str, key: bytes) -> str:
    """Decrypt a credential string under an already derived key."""
    plaintext = unseal(
        _b64decode(encrypted_key), _b64decode(iv), _b64decode(auth_tag), key,
    )
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as err:
        raise IntegrityError("Decrypted credential is not valid UTF-8") from err


def encrypt_credential(plaintext: str, master_secret: str) -> EncryptedSecret:
    """Encrypt a credential for storage.

    Args:
        plaintext: Secret value (e.g. a provider API key).
        master_secret: Vault master secret; the key is derived on each call.

    Returns:
        EncryptedSecret with base64 ciphertext, nonce and tag.
    """
    return encrypt_with_key(plaintext, derive_key(master_secret))


def decrypt_credential(
    encrypted_key: str,
    iv: str,
    auth_tag: str,
    master_secret: str,
) -> str:
    """Decrypt a stored credential.

    Raises:
        IntegrityError: If any of the encrypted fields were altered.
        ConfigurationError: If the master secret is missing.
    """
    return decrypt_with_key(encrypted_key, iv, auth_tag, derive_key(master_secret))
