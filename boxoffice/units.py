"""Token unit conversion.

Ledgers store integer base units; humans read whole tokens. A token with
``decimals = 18`` stores ``33`` DAI as ``33 * 10**18``.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from decimal import Decimal, localcontext
from typing import Union

from boxoffice.hardening import ValidationError, ValidationErrors, Validators


def unit_scale(decimals: int) -> int:
    """Base units per whole token."""
    if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= 77:
        raise ValueError(f"decimals must be an integer in [0, 77], got {decimals!r}")
    return 10 ** decimals


def parse_units(value: Union[str, int, Decimal], decimals: int = 18) -> int:
    """Convert a whole-token amount to integer base units.

    Mirrors ``ethers.utils.parseUnits``: fractional digits beyond the token's
    precision are rejected rather than rounded.
    """
    amount = Validators.validate_decimal(value).unwrap()
    scale = unit_scale(decimals)

    with localcontext() as ctx:
        ctx.prec = 100
        scaled = amount * scale
        if scaled != scaled.to_integral_value():
            raise ValidationErrors([
                ValidationError(
                    "amount",
                    f"more than {decimals} fractional digits",
                    value,
                )
            ])
        return int(scaled)


def format_units(value: int, decimals: int = 18) -> str:
    """Convert integer base units to a whole-token decimal string."""
    Validators.validate_uint(value).raise_if_invalid()
    whole, frac = divmod(value, unit_scale(decimals))
    if not frac:
        return f"{whole}.0"
    digits = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{digits}"
