"""Snapshot-backed fixture loading."""

import pytest

from boxoffice.fixtures import FixtureSnapshotError, load_fixture
from boxoffice.tokens import MockDAI


class TestFixtureLoader:

    def test_fixture_runs_once(self, chain, load_fixture):
        runs = []

        def deploy_token():
            runs.append(1)
            return chain.deploy(MockDAI, 10)

        first = load_fixture(deploy_token)
        second = load_fixture(deploy_token)

        assert runs == [1]
        assert first == second

    def test_fixture_state_restored(self, chain, load_fixture):
        def deploy_token():
            return chain.deploy(MockDAI, 10)

        dai = load_fixture(deploy_token)
        dai.transfer(chain.accounts[1], 10 ** 18)
        chain.mine(3)

        dai = load_fixture(deploy_token)
        assert dai.balance_of(chain.accounts[1]) == 0
        assert chain.block_number == 1

    def test_later_fixtures_rerun_after_restore(self, chain, load_fixture):
        runs = {"base": 0, "funded": 0}

        def base():
            runs["base"] += 1
            return chain.deploy(MockDAI, 10)

        def funded():
            runs["funded"] += 1
            dai = load_fixture(base)
            dai.transfer(chain.accounts[1], 1)
            return dai

        load_fixture(funded)
        load_fixture(funded)
        assert runs == {"base": 1, "funded": 1}

        load_fixture(base)
        dai = load_fixture(funded)
        assert runs == {"base": 1, "funded": 2}
        assert dai.balance_of(chain.accounts[1]) == 1

    def test_lambda_rejected(self, chain, load_fixture):
        with pytest.raises(ValueError, match="named function"):
            load_fixture(lambda: chain.deploy(MockDAI))

    def test_snapshot_lost_underneath_fixture(self, chain, load_fixture):
        outer = chain.snapshot()

        def deploy_token():
            return chain.deploy(MockDAI, 1)

        load_fixture(deploy_token)
        chain.revert(outer)

        with pytest.raises(FixtureSnapshotError):
            load_fixture(deploy_token)

    def test_clear_forgets_fixtures(self, chain, load_fixture):
        runs = []

        def mine_block():
            runs.append(chain.mine().number)

        load_fixture(mine_block)
        load_fixture.clear()
        load_fixture(mine_block)
        assert runs == [1, 2]


def test_module_level_loader_is_per_chain(chain):
    runs = []

    def deploy_token():
        runs.append(1)
        return chain.deploy(MockDAI, 1)

    load_fixture(chain, deploy_token)
    load_fixture(chain, deploy_token)
    assert runs == [1]
