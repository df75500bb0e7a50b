# Core Cryptography Module
"""
Core cryptographic primitives used by the ledger:
- SHA-256 digest service (hex and raw forms)
"""
