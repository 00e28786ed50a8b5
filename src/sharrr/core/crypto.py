"""Cryptographic functions for sharrr.

This module provides:
- Authenticated encryption of chunks using AES-256-GCM
- One-way hashing of chunk keys with SHA-256
- ECDSA (P-256) signatures binding chunk keys to a sender
- Helpers to generate, encode and load key material
"""

import base64
import hashlib
import os

from cryptography.exceptions import InvalidSignature, InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from sharrr.core.errors import DecryptionError

# AES-GCM constants
KEY_SIZE = 32  # 256 bits
NONCE_SIZE = 12  # 96 bits (recommended for AES-GCM)
TAG_SIZE = 16
ENCRYPTION_OVERHEAD = NONCE_SIZE + TAG_SIZE


def generate_master_key() -> bytes:
    """Generate a random 256-bit master key for chunk encryption."""
    return AESGCM.generate_key(bit_length=KEY_SIZE * 8)


def encrypt_chunk(data: bytes, key: bytes) -> bytes:
    """Encrypt data using AES-256-GCM with a random nonce.

    Args:
        data: Plaintext data to encrypt.
        key: 32-byte encryption key.

    Returns:
        Encrypted data in format: nonce (12 bytes) || ciphertext || auth_tag (16 bytes)
    """
    nonce = os.urandom(NONCE_SIZE)
    aesgcm = AESGCM(key)
    ciphertext = aesgcm.encrypt(nonce, data, None)
    return nonce + ciphertext


def decrypt_chunk(encrypted: bytes, key: bytes) -> bytes:
    """Decrypt data encrypted with encrypt_chunk.

    Args:
        encrypted: Data in format: nonce (12 bytes) || ciphertext || auth_tag (16 bytes)
        key: 32-byte encryption key.

    Returns:
        Decrypted plaintext data.

    Raises:
        DecryptionError: If authentication fails (wrong key or tampered data).
    """
    if len(encrypted) < ENCRYPTION_OVERHEAD:
        raise DecryptionError("Encrypted chunk is truncated")
    nonce = encrypted[:NONCE_SIZE]
    ciphertext = encrypted[NONCE_SIZE:]
    try:
        aesgcm = AESGCM(key)
        return aesgcm.decrypt(nonce, ciphertext, None)
    except (InvalidTag, ValueError) as e:
        raise DecryptionError("Could not decrypt chunk: wrong key or corrupted data") from e


def encrypted_size(plain_size: int) -> int:
    """Return the size of a chunk of ``plain_size`` bytes once encrypted."""
    return plain_size + ENCRYPTION_OVERHEAD


def hash_key(identifier: str) -> str:
    """Hash a chunk key into its object-store name.

    Args:
        identifier: Random chunk key.

    Returns:
        Hex-encoded SHA-256 hash string (64 characters).
    """
    return hashlib.sha256(identifier.encode("utf-8")).hexdigest()


def generate_signing_key_pair() -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]:
    """Generate an ECDSA P-256 key pair for signing chunk keys."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    return private_key, private_key.public_key()


def sign_message(message: str, private_key: ec.EllipticCurvePrivateKey) -> str:
    """Sign a message with ECDSA/SHA-256.

    Returns:
        Base64-encoded DER signature.
    """
    signature = private_key.sign(message.encode("utf-8"), ec.ECDSA(hashes.SHA256()))
    return base64.b64encode(signature).decode("ascii")


def verify_signature(
    message: str,
    signature: str,
    public_key: ec.EllipticCurvePublicKey,
) -> bool:
    """Check a signature produced by sign_message.

    Malformed signatures are reported as invalid rather than raised.
    """
    try:
        raw = base64.b64decode(signature, validate=True)
        public_key.verify(raw, message.encode("utf-8"), ec.ECDSA(hashes.SHA256()))
    except (InvalidSignature, ValueError):
        return False
    return True


def export_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    """Serialize a public key as base64 DER SubjectPublicKeyInfo."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return base64.b64encode(der).decode("ascii")


def load_public_key(data: str) -> ec.EllipticCurvePublicKey:
    """Load a public key exported with export_public_key.

    Raises:
        ValueError: If the data is not a valid EC public key.
    """
    try:
        key = serialization.load_der_public_key(base64.b64decode(data))
    except UnsupportedAlgorithm as e:
        raise ValueError(f"Unsupported public key: {e}") from e
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError("Not an elliptic curve public key")
    return key


def encode_key(key: bytes) -> str:
    """Encode a symmetric key as URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(key).rstrip(b"=").decode("ascii")


def decode_key(encoded: str) -> bytes:
    """Decode a key produced by encode_key.

    Raises:
        ValueError: If the result is not a 256-bit key.
    """
    padding = "=" * (-len(encoded) % 4)
    try:
        key = base64.urlsafe_b64decode(encoded + padding)
    except ValueError as e:
        raise ValueError("Invalid key encoding") from e
    if len(key) != KEY_SIZE:
        raise ValueError(f"Invalid key length: expected {KEY_SIZE} bytes, got {len(key)}")
    return key
