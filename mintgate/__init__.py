"""
MINTGATE: Authorization pipeline for a supply-capped mint

Gates the issuance of unique units behind a layered set of checks, and
either applies every mutation of a request or none of them.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                          MINT AUTHORIZER                                 │
    │                                                                          │
    │  ORCHESTRATION                                                          │
    │    authorizer.py  Public, allowlist and admin mint paths; admin ops     │
    │    state.py       Issuance state with journaled, atomic transactions    │
    │                                                                          │
    │  GATES                                                                  │
    │    phase.py       PRESALE → PUBLIC by threshold time or admin toggle    │
    │    merkle.py      Sorted-pair merkle allowlist, explicit allowlist      │
    │    quota.py       Per-wallet limits and the one-time allowlist bonus    │
    │    guards.py      Supply ceiling, payment reconciliation, access gates  │
    │                                                                          │
    │  AMBIENT                                                                │
    │    collection.py  Write-once collection config (YAML + JSON Schema)    │
    │    config.py      Runtime settings (env, YAML, defaults)                │
    │    observability.py  Structured JSON logging with correlation ids       │
    │    audit.py       Hash-chained audit trail                              │
    │    interfaces.py  Issuer / Clock / ValueTransfer and in-memory doubles  │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Invariants
──────────

    total_issued <= max_supply, checked before every increment.
    public_minted <= public_limit (+1 once the allowlist claim is used).
    allowlist_claimed moves false → true at most once.

Copyright (c) 2026 Momentum. All rights reserved.
"""

__version__ = "0.3.0"


def __getattr__(name):
    """Lazy import of public names on first access."""

    if name in ("MintAuthorizer", "MintRequest", "MintReceipt"):
        from mintgate import authorizer
        return getattr(authorizer, name)

    if name in ("CollectionConfig", "ConfigError", "AllowlistMode",
                "PhasePolicyKind", "load_collection_config"):
        from mintgate import collection
        return getattr(collection, name)

    if name in ("AllowlistTree", "AllowlistVerifier", "MerkleAllowlist",
                "ExplicitAllowlist", "verify_proof", "leaf_hash"):
        from mintgate import merkle
        return getattr(merkle, name)

    if name in ("Phase", "PhaseClock", "ThresholdPhasePolicy", "AdminTogglePhasePolicy"):
        from mintgate import phase
        return getattr(phase, name)

    if name in ("PaymentPolicy", "SupplyGuard", "PaymentGuard", "AccessControl"):
        from mintgate import guards
        return getattr(guards, name)

    if name in ("QuotaLedger", "WalletRecord"):
        from mintgate import quota
        return getattr(quota, name)

    if name in ("Issuer", "Clock", "ValueTransfer", "SystemClock", "ManualClock",
                "InMemoryLedger", "InMemoryTransfer"):
        from mintgate import interfaces
        return getattr(interfaces, name)

    if name in ("ErrorCode", "MintError"):
        from mintgate import errors
        return getattr(errors, name)

    raise AttributeError(f"module 'mintgate' has no attribute '{name}'")


__all__ = [
    "__version__",
    "MintAuthorizer",
    "MintRequest",
    "MintReceipt",
    "CollectionConfig",
    "ConfigError",
    "load_collection_config",
    "AllowlistTree",
    "MerkleAllowlist",
    "ExplicitAllowlist",
    "Phase",
    "PaymentPolicy",
    "WalletRecord",
    "InMemoryLedger",
    "InMemoryTransfer",
    "ManualClock",
    "ErrorCode",
    "MintError",
]
