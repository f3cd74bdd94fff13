"""
Ticket sales contract.

Sells admission to events identified by a tag such as ``2022-in-person``.
Every event carries two prices in whole tokens: one paid in any USD
stablecoin (USDC, FRAX, DAI) and one paid in gOHM. At purchase the price is
scaled by the payment token's decimals, pulled from the buyer with
``transfer_from`` and held by this contract until the owner sweeps it to the
treasury.

In-person purchases mint an ``InPersonTicketNFT``; virtual purchases mint an
``OnlineTicketNFT`` when one is bound. The ticket is minted before payment is
taken, so a sold-out event reverts with ``'Error'`` whatever the buyer's
balance.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from typing import Dict

from boxoffice.access import Ownable
from boxoffice.accounts import ZERO_ADDRESS, to_address
from boxoffice.chain import external, view
from boxoffice.hardening import Validators


GOHM = "gohm"
STABLECOINS = ("usdc", "frax", "dai")
ACCEPTED_TOKENS = (GOHM,) + STABLECOINS


class Ticket(Ownable):
    """Prices, sells and settles event tickets."""

    def constructor(
        self,
        treasury: str,
        online_ticket_nft: str,
        gohm: str,
        usdc: str,
        frax: str,
        dai: str,
    ) -> None:
        Ownable.constructor(self)

        treasury = to_address(treasury, "treasury")
        self.require(treasury != ZERO_ADDRESS, "Treasury is the zero address")

        tokens = {
            symbol: to_address(address, symbol)
            for symbol, address in zip(ACCEPTED_TOKENS, (gohm, usdc, frax, dai))
        }
        for address in tokens.values():
            self.require(address != ZERO_ADDRESS, "Token is the zero address")

        self.state.update({
            "treasury": treasury,
            "online_ticket_nft": to_address(online_ticket_nft, "online_ticket_nft"),
            "in_person_ticket_nft": ZERO_ADDRESS,
            "tokens": tokens,
            "usd_ticket_prices": {},
            "gohm_ticket_prices": {},
            "tickets_sold": {},
        })

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    @view
    def usd_ticket_prices(self, event_tag: str) -> int:
        return self.state["usd_ticket_prices"].get(_event_tag(event_tag), 0)

    @view
    def gohm_ticket_prices(self, event_tag: str) -> int:
        return self.state["gohm_ticket_prices"].get(_event_tag(event_tag), 0)

    @view
    def treasury(self) -> str:
        return self.state["treasury"]

    @view
    def in_person_ticket_nft(self) -> str:
        return self.state["in_person_ticket_nft"]

    @view
    def online_ticket_nft(self) -> str:
        return self.state["online_ticket_nft"]

    @view
    def accepted_tokens(self) -> Dict[str, str]:
        return dict(self.state["tokens"])

    @view
    def tickets_sold(self, event_tag: str) -> int:
        return self.state["tickets_sold"].get(_event_tag(event_tag), 0)

    @view
    def quote(self, token_symbol: str, event_tag: str) -> int:
        """Price of one ticket in base units of the given payment token."""
        symbol = _token_symbol(token_symbol)
        self.require(symbol in self.state["tokens"], "Unsupported token")

        table = "gohm_ticket_prices" if symbol == GOHM else "usd_ticket_prices"
        price = self.state[table].get(_event_tag(event_tag), 0)
        self.require(price > 0, "Ticket price not set")

        decimals = self.invoke(self.state["tokens"][symbol], "decimals")
        return price * 10 ** decimals

    # -------------------------------------------------------------------------
    # Owner configuration
    # -------------------------------------------------------------------------

    @external
    def set_ticket_price(self, event_tag: str, is_usd_price: bool, price: int) -> None:
        """Set the USD-stable price (``is_usd_price``) or the gOHM price of an event."""
        self.only_owner()
        event_tag = _event_tag(event_tag)
        price = Validators.validate_uint(price, "price").unwrap()
        is_usd_price = Validators.validate_bool(is_usd_price, "is_usd_price").unwrap()

        table = "usd_ticket_prices" if is_usd_price else "gohm_ticket_prices"
        self.state[table][event_tag] = price
        self.emit(
            "TicketPriceSet",
            event_tag=event_tag,
            currency="usd" if is_usd_price else GOHM,
            price=price,
        )

    @external
    def set_in_person_ticket_nft_addr(self, nft: str) -> None:
        self.only_owner()
        self.state["in_person_ticket_nft"] = to_address(nft, "in_person_ticket_nft")

    @external
    def set_online_ticket_nft_addr(self, nft: str) -> None:
        self.only_owner()
        self.state["online_ticket_nft"] = to_address(nft, "online_ticket_nft")

    @external
    def set_treasury(self, treasury: str) -> None:
        self.only_owner()
        treasury = to_address(treasury, "treasury")
        self.require(treasury != ZERO_ADDRESS, "Treasury is the zero address")
        self.state["treasury"] = treasury

    # -------------------------------------------------------------------------
    # Sales
    # -------------------------------------------------------------------------

    @external
    def buy_ticket(self, token_symbol: str, event_tag: str, is_in_person: bool) -> int:
        """Buy one ticket; returns the minted token ID, or 0 if no NFT applies."""
        buyer = self.msg_sender
        symbol = _token_symbol(token_symbol)
        event_tag = _event_tag(event_tag)
        is_in_person = Validators.validate_bool(is_in_person, "is_in_person").unwrap()
        amount = self.quote(symbol, event_tag)

        if is_in_person:
            nft = self.state["in_person_ticket_nft"]
            self.require(nft != ZERO_ADDRESS, "In-person ticket NFT not set")
        else:
            nft = self.state["online_ticket_nft"]

        token_id = self.invoke(nft, "mint", buyer) if nft != ZERO_ADDRESS else 0
        self.invoke(self.state["tokens"][symbol], "transfer_from", buyer, self.address, amount)

        sold = self.state["tickets_sold"]
        sold[event_tag] = sold.get(event_tag, 0) + 1
        self.emit(
            "TicketPurchased",
            buyer=buyer,
            event_tag=event_tag,
            is_in_person=is_in_person,
            token=symbol,
            amount=amount,
            token_id=token_id,
        )
        return token_id

    @external
    def withdraw_token(self) -> Dict[str, int]:
        """Sweep every accepted token's full balance to the treasury."""
        self.only_owner()
        treasury = self.state["treasury"]

        withdrawn: Dict[str, int] = {}
        for symbol, token in self.state["tokens"].items():
            balance = self.invoke(token, "balance_of", self.address)
            if not balance:
                continue
            self.invoke(token, "transfer", treasury, balance)
            withdrawn[symbol] = balance
            self.emit("Withdrawal", token=symbol, treasury=treasury, amount=balance)

        return withdrawn


def _event_tag(value: str) -> str:
    return Validators.validate_event_tag(value).unwrap()


def _token_symbol(value: str) -> str:
    return Validators.validate_token_symbol(value).unwrap()
