"""Ticketing deployment.

Deploys the four mock payment tokens, the Ticket sales contract and its ticket
NFTs, then applies inventory and prices. A YAML manifest describes the sale:

    treasury: "0x78000b0605E81ea9df54b33f72ebC61B5F5c8077"
    inventory: 1
    events:
      - tag: 2022-in-person
        usd_price: 33
        gohm_price: 3

Manifests are checked against ``schemas/deployment.schema.json`` before
anything is deployed.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from jsonschema import Draft202012Validator

from boxoffice.accounts import ZERO_ADDRESS, Signer, to_address
from boxoffice.chain import ContractHandle, DevChain, Receipt
from boxoffice.config import get_config
from boxoffice.nft import InPersonTicketNFT, OnlineTicketNFT
from boxoffice.observability import Layer, get_logger, timed_operation
from boxoffice.ticket import Ticket
from boxoffice.tokens import MOCK_TOKENS
from boxoffice.units import parse_units

log = get_logger("deploy", Layer.DEPLOY)

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "deployment.schema.json"

DEFAULT_EVENT_TAG = "2022-in-person"

DEFAULT_MANIFEST: Dict[str, Any] = {
    "events": [
        {"tag": DEFAULT_EVENT_TAG, "usd_price": 33, "gohm_price": 3},
    ],
}


class ManifestError(Exception):
    """The deployment manifest is unreadable or violates the schema."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("Invalid deployment manifest: " + "; ".join(errors))


@lru_cache(maxsize=1)
def manifest_validator() -> Draft202012Validator:
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def validate_manifest(data: Any) -> Dict[str, Any]:
    """Return ``data`` if it is a valid manifest, else raise ManifestError."""
    errors = [
        f"{'/'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
        for err in sorted(manifest_validator().iter_errors(data), key=lambda e: list(map(str, e.absolute_path)))
    ]
    if not errors:
        tags = [event["tag"] for event in data["events"]]
        duplicates = sorted({tag for tag in tags if tags.count(tag) > 1})
        if duplicates:
            errors.append(f"events: duplicate tags {', '.join(duplicates)}")

    if errors:
        raise ManifestError(errors)
    return data


def load_manifest(path: Union[str, Path]) -> Dict[str, Any]:
    """Read and validate a YAML (or JSON) manifest file."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ManifestError([f"file not found: {path}"]) from None
    except yaml.YAMLError as e:
        raise ManifestError([f"invalid YAML in {path}: {e}"]) from e
    return validate_manifest(data)


def default_manifest() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_MANIFEST)


@dataclass
class TicketingDeployment:
    """Handles to every contract of one deployment, bound to the deployer."""
    chain: DevChain
    owner: Signer
    ticket: ContractHandle
    in_person_nft: ContractHandle
    tokens: Dict[str, ContractHandle]
    treasury: str
    events: List[str] = field(default_factory=list)
    online_nft: Optional[ContractHandle] = None

    def token(self, symbol: str) -> ContractHandle:
        try:
            return self.tokens[symbol.strip().lower()]
        except KeyError:
            raise KeyError(f"Unknown payment token {symbol!r}; expected one of {sorted(self.tokens)}") from None

    def fund(self, buyer: Signer, symbol: str, whole_tokens: Union[int, str]) -> int:
        """Send ``whole_tokens`` from the owner to ``buyer`` and approve the Ticket contract.

        Returns the amount in base units.
        """
        token = self.token(symbol)
        amount = parse_units(whole_tokens, token.decimals())
        token.transfer(buyer.address, amount)
        token.connect(buyer).approve(self.ticket.address, amount)
        return amount

    def buy(self, buyer: Signer, symbol: str, event_tag: str, in_person: bool = True) -> Receipt:
        return self.ticket.connect(buyer).buy_ticket(symbol, event_tag, in_person)

    def summary(self) -> Dict[str, Any]:
        return {
            "owner": self.owner.address,
            "treasury": self.treasury,
            "ticket": self.ticket.address,
            "in_person_nft": self.in_person_nft.address,
            "online_nft": self.online_nft.address if self.online_nft else None,
            "tokens": {symbol: handle.address for symbol, handle in self.tokens.items()},
            "events": list(self.events),
        }


@timed_operation(log, "deploy_ticketing")
def deploy_ticketing(
    chain: DevChain,
    manifest: Optional[Dict[str, Any]] = None,
    deployer: Optional[Signer] = None,
) -> TicketingDeployment:
    """Deploy and configure a complete ticket sale."""
    manifest = validate_manifest(default_manifest() if manifest is None else manifest)
    config = get_config()
    deployer = deployer or chain.default_signer

    supply = manifest.get("token_supply", config.tokens.initial_supply.get())
    treasury = to_address(manifest.get("treasury", config.ticketing.treasury_address.get()), "treasury")

    tokens = {
        symbol: chain.deploy(token_cls, supply, sender=deployer)
        for symbol, token_cls in MOCK_TOKENS.items()
    }

    ticket = chain.deploy(
        Ticket,
        treasury,
        ZERO_ADDRESS,
        tokens["gohm"],
        tokens["usdc"],
        tokens["frax"],
        tokens["dai"],
        sender=deployer,
    )

    in_person_nft = chain.deploy(InPersonTicketNFT, ticket, sender=deployer)
    in_person_nft.set_ticket_inventories(manifest.get("inventory", config.ticketing.default_inventory.get()))
    ticket.set_in_person_ticket_nft_addr(in_person_nft)

    online_nft = None
    if "online_inventory" in manifest:
        online_nft = chain.deploy(OnlineTicketNFT, ticket, sender=deployer)
        online_nft.set_ticket_inventories(manifest["online_inventory"])
        ticket.set_online_ticket_nft_addr(online_nft)

    if manifest.get("base_uri"):
        for nft in filter(None, (in_person_nft, online_nft)):
            nft.set_base_uri(manifest["base_uri"])

    for event in manifest["events"]:
        if "usd_price" in event:
            ticket.set_ticket_price(event["tag"], True, event["usd_price"])
        if "gohm_price" in event:
            ticket.set_ticket_price(event["tag"], False, event["gohm_price"])

    deployment = TicketingDeployment(
        chain=chain,
        owner=deployer,
        ticket=ticket,
        in_person_nft=in_person_nft,
        tokens=tokens,
        treasury=treasury,
        events=[event["tag"] for event in manifest["events"]],
        online_nft=online_nft,
    )
    log.info("Ticketing deployed", **deployment.summary())
    return deployment
