"""
ERC-20 ledgers and the mock payment tokens accepted by the ticket sale.

Balances and allowances are integer base units. Revert reasons follow the
OpenZeppelin wording so failures read the same as on a Hardhat node.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from typing import Dict, Optional

from boxoffice.accounts import ZERO_ADDRESS, to_address
from boxoffice.chain import Contract, external, view
from boxoffice.config import get_config
from boxoffice.hardening import InvariantChecker, Validators
from boxoffice.units import unit_scale

MAX_UINT256 = Validators.MAX_UINT256


class ERC20(Contract):
    """Fungible token ledger."""

    def constructor(self, name: str, symbol: str, decimals: int, initial_supply: int = 0) -> None:
        scale = unit_scale(decimals)
        self.state.update({
            "name": name,
            "symbol": symbol,
            "decimals": decimals,
            "total_supply": 0,
            "balances": {},
            "allowances": {},
        })
        supply = Validators.validate_uint(initial_supply, "initial_supply").unwrap()
        if supply:
            self._mint(self.msg_sender, supply * scale)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    @view
    def name(self) -> str:
        return self.state["name"]

    @view
    def symbol(self) -> str:
        return self.state["symbol"]

    @view
    def decimals(self) -> int:
        return self.state["decimals"]

    @view
    def total_supply(self) -> int:
        return self.state["total_supply"]

    @view
    def balance_of(self, account: str) -> int:
        return self.state["balances"].get(to_address(account, "account"), 0)

    @view
    def allowance(self, owner: str, spender: str) -> int:
        key = _allowance_key(to_address(owner, "owner"), to_address(spender, "spender"))
        return self.state["allowances"].get(key, 0)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @external
    def transfer(self, to: str, amount: int) -> bool:
        self._transfer(self.msg_sender, to_address(to, "to"), _amount(amount))
        return True

    @external
    def approve(self, spender: str, amount: int) -> bool:
        self._approve(self.msg_sender, to_address(spender, "spender"), _amount(amount))
        return True

    @external
    def transfer_from(self, sender: str, recipient: str, amount: int) -> bool:
        sender = to_address(sender, "sender")
        amount = _amount(amount)
        self._spend_allowance(sender, self.msg_sender, amount)
        self._transfer(sender, to_address(recipient, "recipient"), amount)
        return True

    @external
    def increase_allowance(self, spender: str, added_value: int) -> bool:
        spender = to_address(spender, "spender")
        current = self.allowance(self.msg_sender, spender)
        self._approve(self.msg_sender, spender, _amount(current + _amount(added_value)))
        return True

    @external
    def decrease_allowance(self, spender: str, subtracted_value: int) -> bool:
        spender = to_address(spender, "spender")
        current = self.allowance(self.msg_sender, spender)
        subtracted_value = _amount(subtracted_value)
        self.require(current >= subtracted_value, "ERC20: decreased allowance below zero")
        self._approve(self.msg_sender, spender, current - subtracted_value)
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _transfer(self, sender: str, recipient: str, amount: int) -> None:
        self.require(sender != ZERO_ADDRESS, "ERC20: transfer from the zero address")
        self.require(recipient != ZERO_ADDRESS, "ERC20: transfer to the zero address")

        balances: Dict[str, int] = self.state["balances"]
        sender_balance = balances.get(sender, 0)
        self.require(sender_balance >= amount, "ERC20: transfer amount exceeds balance")

        balances[sender] = sender_balance - amount
        balances[recipient] = balances.get(recipient, 0) + amount
        self.emit("Transfer", sender=sender, recipient=recipient, value=amount)
        self.check_supply()

    def _mint(self, account: str, amount: int) -> None:
        self.require(account != ZERO_ADDRESS, "ERC20: mint to the zero address")
        self.state["total_supply"] += amount
        balances = self.state["balances"]
        balances[account] = balances.get(account, 0) + amount
        self.emit("Transfer", sender=ZERO_ADDRESS, recipient=account, value=amount)
        self.check_supply()

    def _approve(self, owner: str, spender: str, amount: int) -> None:
        self.require(owner != ZERO_ADDRESS, "ERC20: approve from the zero address")
        self.require(spender != ZERO_ADDRESS, "ERC20: approve to the zero address")
        self.state["allowances"][_allowance_key(owner, spender)] = amount
        self.emit("Approval", owner=owner, spender=spender, value=amount)

    def _spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        current = self.state["allowances"].get(_allowance_key(owner, spender), 0)
        # An unlimited approval is never decremented.
        if current != MAX_UINT256:
            self.require(current >= amount, "ERC20: insufficient allowance")
            self._approve(owner, spender, current - amount)

    def check_supply(self) -> None:
        """Raise InvariantViolation unless balances sum to the total supply."""
        InvariantChecker.check_supply_conserved(
            self.state["total_supply"],
            list(self.state["balances"].values()),
        )


def _allowance_key(owner: str, spender: str) -> str:
    return f"{owner}:{spender}"


def _amount(value: int) -> int:
    return Validators.validate_uint(value, "amount").unwrap()


class MockToken(ERC20):
    """
    Test-network stand-in for a real token.

    Metadata comes from class attributes; the deployer receives
    ``initial_supply`` whole tokens and anyone may mint more.
    """

    TOKEN_NAME = "Mock Token"
    TOKEN_SYMBOL = "MOCK"
    TOKEN_DECIMALS = 18

    def constructor(self, initial_supply: Optional[int] = None) -> None:
        if initial_supply is None:
            initial_supply = get_config().tokens.initial_supply.get()
        super().constructor(self.TOKEN_NAME, self.TOKEN_SYMBOL, self.TOKEN_DECIMALS, initial_supply)

    @external
    def mint(self, to: str, amount: int) -> bool:
        """Faucet: credit ``amount`` base units to ``to``."""
        self._mint(to_address(to, "to"), _amount(amount))
        return True


class MockGOHM(MockToken):
    TOKEN_NAME = "Governance OHM"
    TOKEN_SYMBOL = "gOHM"


class MockUSDC(MockToken):
    TOKEN_NAME = "USD Coin"
    TOKEN_SYMBOL = "USDC"
    TOKEN_DECIMALS = 6


class MockFRAX(MockToken):
    TOKEN_NAME = "Frax"
    TOKEN_SYMBOL = "FRAX"


class MockDAI(MockToken):
    TOKEN_NAME = "Dai Stablecoin"
    TOKEN_SYMBOL = "DAI"


MOCK_TOKENS = {
    "gohm": MockGOHM,
    "usdc": MockUSDC,
    "frax": MockFRAX,
    "dai": MockDAI,
}
