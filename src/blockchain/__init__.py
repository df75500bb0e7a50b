# Blockchain Module
"""
Proof-of-work ledger including:
- Immutable blocks (frozen dataclass) mined on construction
- SHA-256 chaining via prev_hash
- Adjustable difficulty (leading zero hex characters)
- Full chain validation
"""

_EXPORTS = {
    'Block': 'block',
    'ProofOfWork': 'block',
    'MiningError': 'block',
    'compute_block_hash': 'block',
    'recompute_digest': 'block',
    'mine_block': 'block',
    'DEFAULT_DIFFICULTY': 'block',
    'GENESIS_DATA': 'block',
    'GENESIS_PREV_HASH': 'block',
    'MAX_NONCE': 'block',
    'Blockchain': 'ledger',
    'ValidationError': 'ledger',
    'ValidationFailure': 'ledger',
    'create_blockchain': 'ledger',
    'HashEncoding': 'encoding',
    'FixedClock': 'clock',
    'system_clock': 'clock',
}


# Lazy imports to avoid RuntimeWarning when running modules directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module
    module = import_module(f".{_EXPORTS[name]}", __name__)
    return getattr(module, name)


__all__ = list(_EXPORTS)
