"""
Ticket NFTs.

Each successful purchase mints one ERC-721 token to the buyer. A ticket
contract holds a fixed inventory: token IDs run from 1 to
``ticket_inventories`` and a mint past the last one reverts with the generic
reason ``'Error'``. Only the bound Ticket sales contract may mint.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from typing import Dict

from boxoffice.access import Ownable
from boxoffice.accounts import ZERO_ADDRESS, to_address
from boxoffice.chain import Contract, external, view
from boxoffice.hardening import InvariantChecker, Validators

INVENTORY_EXHAUSTED = "Error"
NOT_TICKET_CONTRACT = "Caller is not the ticket contract"


class ERC721(Contract):
    """Non-fungible token ledger."""

    def constructor(self, name: str, symbol: str) -> None:
        self.state.update({
            "name": name,
            "symbol": symbol,
            "base_uri": "",
            "token_owners": {},
            "balances": {},
            "token_approvals": {},
            "operator_approvals": {},
        })

    @view
    def name(self) -> str:
        return self.state["name"]

    @view
    def symbol(self) -> str:
        return self.state["symbol"]

    @view
    def balance_of(self, owner: str) -> int:
        owner = to_address(owner, "owner")
        self.require(owner != ZERO_ADDRESS, "ERC721: address zero is not a valid owner")
        return self.state["balances"].get(owner, 0)

    @view
    def owner_of(self, token_id: int) -> str:
        owner = self.state["token_owners"].get(_token_id(token_id))
        self.require(owner is not None, "ERC721: invalid token ID")
        return owner

    @view
    def token_uri(self, token_id: int) -> str:
        self.owner_of(token_id)
        base = self.state["base_uri"]
        return f"{base}{token_id}" if base else ""

    @view
    def get_approved(self, token_id: int) -> str:
        self.owner_of(token_id)
        return self.state["token_approvals"].get(token_id, ZERO_ADDRESS)

    @view
    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        key = _operator_key(to_address(owner, "owner"), to_address(operator, "operator"))
        return self.state["operator_approvals"].get(key, False)

    @external
    def approve(self, to: str, token_id: int) -> None:
        to = to_address(to, "to")
        owner = self.owner_of(token_id)
        self.require(to != owner, "ERC721: approval to current owner")
        self.require(
            self.msg_sender == owner or self.is_approved_for_all(owner, self.msg_sender),
            "ERC721: approve caller is not token owner or approved for all",
        )
        self.state["token_approvals"][token_id] = to
        self.emit("Approval", owner=owner, approved=to, token_id=token_id)

    @external
    def set_approval_for_all(self, operator: str, approved: bool) -> None:
        operator = to_address(operator, "operator")
        self.require(operator != self.msg_sender, "ERC721: approve to caller")
        self.state["operator_approvals"][_operator_key(self.msg_sender, operator)] = bool(approved)
        self.emit("ApprovalForAll", owner=self.msg_sender, operator=operator, approved=bool(approved))

    @external
    def transfer_from(self, sender: str, recipient: str, token_id: int) -> None:
        token_id = _token_id(token_id)
        self.require(
            self._is_approved_or_owner(self.msg_sender, token_id),
            "ERC721: caller is not token owner or approved",
        )
        self._transfer(to_address(sender, "sender"), to_address(recipient, "recipient"), token_id)

    def _is_approved_or_owner(self, spender: str, token_id: int) -> bool:
        owner = self.owner_of(token_id)
        return (
            spender == owner
            or self.is_approved_for_all(owner, spender)
            or self.state["token_approvals"].get(token_id) == spender
        )

    def _transfer(self, sender: str, recipient: str, token_id: int) -> None:
        self.require(self.owner_of(token_id) == sender, "ERC721: transfer from incorrect owner")
        self.require(recipient != ZERO_ADDRESS, "ERC721: transfer to the zero address")

        self.state["token_approvals"].pop(token_id, None)
        balances: Dict[str, int] = self.state["balances"]
        balances[sender] -= 1
        balances[recipient] = balances.get(recipient, 0) + 1
        self.state["token_owners"][token_id] = recipient
        self.emit("Transfer", sender=sender, recipient=recipient, token_id=token_id)

    def _mint(self, to: str, token_id: int) -> None:
        self.require(to != ZERO_ADDRESS, "ERC721: mint to the zero address")
        self.require(token_id not in self.state["token_owners"], "ERC721: token already minted")

        balances = self.state["balances"]
        balances[to] = balances.get(to, 0) + 1
        self.state["token_owners"][token_id] = to
        self.emit("Transfer", sender=ZERO_ADDRESS, recipient=to, token_id=token_id)


def _operator_key(owner: str, operator: str) -> str:
    return f"{owner}:{operator}"


def _token_id(value: int) -> int:
    return Validators.validate_uint(value, "token_id").unwrap()


class TicketNFT(Ownable, ERC721):
    """
    Inventory-bounded ticket collection.

    The deployer owns the collection and sets the inventory; the Ticket sales
    contract given at deployment is the only minter.
    """

    NFT_NAME = "TicketNFT"
    NFT_SYMBOL = "TICKET"

    def constructor(self, ticket_contract: str) -> None:
        Ownable.constructor(self)
        ERC721.constructor(self, self.NFT_NAME, self.NFT_SYMBOL)
        self.state.update({
            "ticket_contract": to_address(ticket_contract, "ticket_contract"),
            "ticket_inventories": 0,
            "token_ids": 0,
        })

    @view
    def ticket_contract(self) -> str:
        return self.state["ticket_contract"]

    @view
    def ticket_inventories(self) -> int:
        return self.state["ticket_inventories"]

    @view
    def token_ids(self) -> int:
        """Last minted token ID, which is also the number minted so far."""
        return self.state["token_ids"]

    @view
    def remaining_inventory(self) -> int:
        return self.state["ticket_inventories"] - self.state["token_ids"]

    @external
    def set_ticket_inventories(self, count: int) -> None:
        self.only_owner()
        count = Validators.validate_uint(count, "count").unwrap()
        self.require(count >= self.state["token_ids"], "Inventory below minted tickets")

        self.state["ticket_inventories"] = count
        self.emit("TicketInventoriesSet", count=count)

    @external
    def set_ticket_contract(self, ticket_contract: str) -> None:
        self.only_owner()
        self.state["ticket_contract"] = to_address(ticket_contract, "ticket_contract")

    @external
    def set_base_uri(self, base_uri: str) -> None:
        self.only_owner()
        self.state["base_uri"] = Validators.validate_string(
            base_uri, "base_uri", min_length=0,
        ).unwrap()

    @external
    def mint(self, to: str) -> int:
        """Mint the next ticket to ``to``; returns its token ID."""
        self.require(self.msg_sender == self.state["ticket_contract"], NOT_TICKET_CONTRACT)
        self.require(
            self.state["token_ids"] < self.state["ticket_inventories"],
            INVENTORY_EXHAUSTED,
        )

        token_id = self.state["token_ids"] + 1
        InvariantChecker.check_monotonic_increase("token_ids", self.state["token_ids"], token_id)
        self.state["token_ids"] = token_id
        self._mint(to_address(to, "to"), token_id)
        return token_id


class InPersonTicketNFT(TicketNFT):
    NFT_NAME = "InPersonTicketNFT"
    NFT_SYMBOL = "IPTICKET"


class OnlineTicketNFT(TicketNFT):
    NFT_NAME = "OnlineTicketNFT"
    NFT_SYMBOL = "OLTICKET"
