"""
BOXOFFICE: event ticketing on a local development network

Sells tickets for tagged events in gOHM or USD stablecoins and mints an
NFT per admission, all against an in-process chain that behaves like a
Hardhat node: deterministic accounts, signed transactions, atomic reverts
and snapshot-backed fixtures.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │  CONTRACTS                                                              │
    │    ticket.py      Prices, sales and treasury withdrawal                 │
    │    nft.py         Inventory-bounded ERC-721 ticket collections          │
    │    tokens.py      ERC-20 ledger and mock gOHM / USDC / FRAX / DAI       │
    │    access.py      Single-owner access control                           │
    │                                                                         │
    │  NETWORK                                                                │
    │    chain.py       Dev chain: transactions, blocks, snapshots            │
    │    accounts.py    secp256k1 signers derived from a mnemonic             │
    │    fixtures.py    Snapshot-backed fixture loading                       │
    │                                                                         │
    │  TOOLING                                                                │
    │    deploy.py      Manifest-driven deployment                            │
    │    cli.py         Command-line interface                                │
    │    config.py      YAML / environment configuration                      │
    │    observability.py  Structured logging                                 │
    │    hardening.py   Input validation and ledger invariants                │
    │    units.py       Whole-token / base-unit conversion                    │
    └─────────────────────────────────────────────────────────────────────────┘

Copyright (c) 2026 Momentum. All rights reserved.
"""

__version__ = "0.1.0"


# Lazy imports to avoid circular dependencies
def __getattr__(name):
    """Lazy import BOXOFFICE modules on first access."""

    # Network exports
    if name in ("DevChain", "ContractHandle", "Contract", "Receipt", "Block",
                "TransactionReverted", "ChainError", "external", "view", "require"):
        from boxoffice import chain
        return getattr(chain, name)

    if name in ("Signer", "ZERO_ADDRESS", "derive_signers", "to_address"):
        from boxoffice import accounts
        return getattr(accounts, name)

    if name in ("FixtureLoader", "load_fixture"):
        from boxoffice import fixtures
        return getattr(fixtures, name)

    # Contract exports
    if name in ("Ticket",):
        from boxoffice import ticket
        return getattr(ticket, name)

    if name in ("InPersonTicketNFT", "OnlineTicketNFT", "TicketNFT", "ERC721"):
        from boxoffice import nft
        return getattr(nft, name)

    if name in ("ERC20", "MockToken", "MockGOHM", "MockUSDC", "MockFRAX", "MockDAI", "MOCK_TOKENS"):
        from boxoffice import tokens
        return getattr(tokens, name)

    # Tooling exports
    if name in ("deploy_ticketing", "TicketingDeployment", "load_manifest", "ManifestError"):
        from boxoffice import deploy
        return getattr(deploy, name)

    if name in ("parse_units", "format_units"):
        from boxoffice import units
        return getattr(units, name)

    raise AttributeError(f"module 'boxoffice' has no attribute {name!r}")
