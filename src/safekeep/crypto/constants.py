"""Cryptographic constants for safekeep."""

# PBKDF2-HMAC-SHA256 password key derivation
KDF_ITERATIONS = 100_000
KDF_MIN_ITERATIONS = 100_000
SALT_SIZE = 16

# AES-256-GCM constants
AES_KEY_SIZE = 32
AES_GCM_NONCE_SIZE = 12
AES_GCM_TAG_SIZE = 16

# RSA identity constants
RSA_KEY_SIZE = 2048
RSA_MIN_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537
# OAEP overhead with SHA-256: 2 * hash length + 2
OAEP_SHA256_OVERHEAD = 2 * 32 + 2

# Argon2id password verifier parameters
ARGON2_TIME_COST = 3
ARGON2_MEMORY_COST = 4096  # KiB
ARGON2_PARALLELISM = 1
ARGON2_HASH_LEN = 32
ARGON2_SALT_LEN = 16

PEM_PUBLIC_HEADER = "-----BEGIN PUBLIC KEY-----"
PEM_PUBLIC_FOOTER = "-----END PUBLIC KEY-----"
