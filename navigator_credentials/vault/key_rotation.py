"""
Vault Re-encryption — Move every stored credential to a new master secret.

Operators run this when replacing the master secret. Records are processed
one at a time; a record that cannot be decrypted with the old secret, or
whose update fails (e.g. it was deleted meanwhile), is counted as an error
and left as it was, so the run can be repeated.

Security Note:
    Plaintext exists in memory only during re-encryption of each record.
    Never log plaintext or ciphertext values.
"""
import logging

from .crypto import derive_key, decrypt_with_key, encrypt_with_key
from .storage import CredentialStorage

logger = logging.getLogger("navigator.vault")


async def reencrypt_credentials(
    storage: CredentialStorage,
    old_secret: str,
    new_secret: str,
) -> dict:
    """Re-encrypt all credentials from ``old_secret`` to ``new_secret``.

    Args:
        storage: Credential store holding the records.
        old_secret: Master secret the records are currently encrypted with.
        new_secret: Master secret to encrypt with from now on.

    Returns:
        Stats dict with keys: total, rotated, errors.

    Raises:
        ConfigurationError: If either secret is empty.
    """
    old_key = derive_key(old_secret)
    new_key = derive_key(new_secret)
    stats = {"total": 0, "rotated": 0, "errors": 0}

    records = await storage.list_all_records()
    logger.info("Starting credential re-encryption (%d records)", len(records))

    for record in records:
        stats["total"] += 1
        try:
            plaintext = decrypt_with_key(
                record.encrypted_key, record.iv, record.auth_tag, old_key,
            )
            encrypted = encrypt_with_key(plaintext, new_key)
            await storage.update_record(
                record.id,
                encrypted_key=encrypted.encrypted_key,
                iv=encrypted.iv,
                auth_tag=encrypted.auth_tag,
                label=record.label,
            )
            stats["rotated"] += 1
        except Exception as err:
            logger.error(
                "Error re-encrypting credential id=%s provider=%s: %s",
                record.id, record.provider, err,
            )
            stats["errors"] += 1

    logger.info("Credential re-encryption complete: %s", stats)
    return stats
