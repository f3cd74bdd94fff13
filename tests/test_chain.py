"""
Dev network tests.

Covers transaction atomicity, blocks and nonces, read-only calls, signature
checks and evm_snapshot / evm_revert semantics.
"""

import threading

import pytest

from boxoffice.accounts import Signer, contract_address
from boxoffice.chain import (
    ContractNotFound,
    DevChain,
    InvalidTransactionSignature,
    SnapshotError,
    TransactionReverted,
    UnknownMethod,
    require,
)
from boxoffice.config import get_config_manager
from boxoffice.hardening import ValidationErrors
from boxoffice.tokens import MockDAI


@pytest.fixture
def dai(chain):
    return chain.deploy(MockDAI, 100)


class TestAccounts:

    def test_default_accounts(self, chain):
        assert chain.chain_id == 31337
        assert len(chain.accounts) == 20
        assert len({s.address for s in chain.accounts}) == 20
        assert chain.default_signer is chain.accounts[0]

    def test_accounts_are_deterministic(self, chain):
        other = DevChain()
        assert [s.address for s in other.accounts] == [s.address for s in chain.accounts]

    def test_account_count_from_config(self):
        get_config_manager().set("chain.account_count", 3)
        assert len(DevChain().accounts) == 3


class TestTransactions:

    def test_deploy_mines_block(self, chain):
        deployer = chain.default_signer
        token = chain.deploy(MockDAI, 1)

        assert chain.block_number == 1
        assert chain.get_nonce(deployer) == 1
        assert token.address == contract_address(deployer.address, 0)
        assert chain.get_code(token) == "MockDAI"
        assert token.contract_name == "MockDAI"

    def test_receipt(self, dai, chain):
        receipt = dai.transfer(chain.accounts[1], 5)
        assert receipt.status == 1
        assert receipt.block_number == chain.block_number == 2
        assert chain.get_receipt(receipt.tx_hash) is receipt
        assert chain.latest_block.tx_hashes == (receipt.tx_hash,)
        assert receipt.to_dict()["method"] == "transfer"

    def test_block_timestamps(self, chain):
        genesis = chain.get_block(0).timestamp
        chain.mine(2)
        assert chain.timestamp == genesis + 2 * 12

        chain.increase_time(3600)
        chain.mine()
        assert chain.timestamp == genesis + 3 * 12 + 3600
        assert chain.latest_block.parent_hash == chain.get_block(2).hash

    def test_revert_is_atomic(self, dai, chain):
        block = chain.block_number
        nonce = chain.get_nonce(chain.accounts[1])

        with pytest.raises(TransactionReverted) as exc_info:
            dai.connect(chain.accounts[1]).transfer(chain.accounts[2], 1)

        assert exc_info.value.reason == "ERC20: transfer amount exceeds balance"
        assert chain.block_number == block
        assert chain.get_nonce(chain.accounts[1]) == nonce

    def test_python_error_rolls_back(self, dai, chain):
        block = chain.block_number
        with pytest.raises(ValidationErrors):
            dai.approve(chain.accounts[1], True)
        assert chain.block_number == block
        assert dai.allowance(chain.default_signer, chain.accounts[1]) == 0

    def test_failed_deploy_leaves_no_contract(self, chain):
        deployer = chain.default_signer
        with pytest.raises(ValidationErrors):
            chain.deploy(MockDAI, -1)
        assert chain.get_code(contract_address(deployer.address, 0)) is None
        assert chain.get_nonce(deployer) == 0

    def test_view_cannot_be_sent(self, dai, chain):
        with pytest.raises(UnknownMethod):
            chain.send_transaction(chain.default_signer, dai, "balance_of", (chain.default_signer,))

    def test_unknown_entry_point(self, dai):
        with pytest.raises(AttributeError):
            dai.rug_pull

    def test_contract_not_found(self, chain):
        with pytest.raises(ContractNotFound):
            chain.contract_at(chain.accounts[1])

    def test_call_simulates_external_method(self, dai, chain):
        block = chain.block_number
        assert chain.call(dai, "transfer", (chain.accounts[1], 5)) is True
        assert dai.balance_of(chain.accounts[1]) == 0
        assert chain.block_number == block

    def test_forged_signer_rejected(self, dai, chain):
        forged = Signer(
            private_key=chain.accounts[1].private_key,
            address=chain.default_signer.address,
        )
        with pytest.raises(InvalidTransactionSignature):
            dai.connect(forged).transfer(chain.accounts[1], 50)
        assert dai.balance_of(chain.accounts[1]) == 0

    def test_require(self):
        require(True)
        with pytest.raises(TransactionReverted, match="reverted with reason string 'nope'"):
            require(0, "nope")

    def test_concurrent_transactions_are_serialized(self, dai, chain):
        recipient = chain.accounts[1]

        def worker():
            for _ in range(5):
                dai.transfer(recipient, 1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert dai.balance_of(recipient) == 40
        assert chain.get_nonce(chain.default_signer) == 41
        assert chain.block_number == 41


class TestSnapshots:

    def test_revert_restores_state(self, dai, chain):
        snapshot = chain.snapshot()
        dai.transfer(chain.accounts[1], 10)
        late = chain.deploy(MockDAI, 1)

        chain.revert(snapshot)

        assert dai.balance_of(chain.accounts[1]) == 0
        assert chain.block_number == 1
        assert chain.get_nonce(chain.default_signer) == 1
        assert chain.get_code(late) is None

    def test_snapshot_is_consumed(self, chain):
        snapshot = chain.snapshot()
        chain.revert(snapshot)
        with pytest.raises(SnapshotError):
            chain.revert(snapshot)

    def test_revert_discards_later_snapshots(self, dai, chain):
        first = chain.snapshot()
        dai.transfer(chain.accounts[1], 1)
        second = chain.snapshot()

        chain.revert(first)
        with pytest.raises(SnapshotError):
            chain.revert(second)

    def test_snapshot_ids_increase(self, chain):
        first = chain.snapshot()
        second = chain.snapshot()
        assert second > first
