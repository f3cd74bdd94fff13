"""Single-owner access control for dev network contracts.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from boxoffice.accounts import ZERO_ADDRESS, to_address
from boxoffice.chain import Contract, external, view

NOT_OWNER = "Ownable: caller is not the owner"


class Ownable(Contract):
    """The deploying account owns the contract until ownership is transferred."""

    def constructor(self, *args) -> None:
        self.state["owner"] = self.msg_sender
        self.emit("OwnershipTransferred", previous_owner=ZERO_ADDRESS, new_owner=self.msg_sender)

    def only_owner(self) -> None:
        self.require(self.msg_sender == self.state["owner"], NOT_OWNER)

    @view
    def owner(self) -> str:
        return self.state["owner"]

    @external
    def transfer_ownership(self, new_owner: str) -> None:
        self.only_owner()
        new_owner = to_address(new_owner, "new_owner")
        self.require(new_owner != ZERO_ADDRESS, "Ownable: new owner is the zero address")

        previous = self.state["owner"]
        self.state["owner"] = new_owner
        self.emit("OwnershipTransferred", previous_owner=previous, new_owner=new_owner)
