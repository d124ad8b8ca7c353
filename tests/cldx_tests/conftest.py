"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add src to Python path
project_root = Path(__file__).parent.parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(src_path))

import pytest

from cldx.core.clock import ManualClock
from cldx.core.config import LedgerConfig
from cldx.core.constants import ONE_TOKEN
from cldx.core.contracts.cloudax import CloudaxToken
from cldx.core.contracts.erc20 import ERC20Factory
from cldx.core.contracts.native import NativeCurrency
from cldx.treasury.deployment import deploy_treasury

OWNER = "0x" + "11" * 20
ALICE = "0x" + "22" * 20
BOB = "0x" + "33" * 20
MALLORY = "0x" + "44" * 20
PRESALE = "0x" + "55" * 20

START_TIME = 1_700_000_000

WALLET_FUNDING = 10_000 * ONE_TOKEN
ECO_RESERVE = 10_000 * ONE_TOKEN


@pytest.fixture
def clock():
    return ManualClock(START_TIME)


@pytest.fixture
def registry():
    return ERC20Factory()


@pytest.fixture
def native():
    return NativeCurrency()


@pytest.fixture
def cldx_token(registry, native):
    """Freshly deployed CLDX with trading still disabled."""
    return CloudaxToken.deploy(OWNER, initial_supply=1_000_000 * ONE_TOKEN, registry=registry, native=native)


@pytest.fixture
def deployment(clock):
    """Funded treasury: 10k CLDX for vesting, 10k ECO swap reserve, trading open."""
    return deploy_treasury(
        owner=OWNER,
        cldx_supply=1_000_000 * ONE_TOKEN,
        eco_supply=1_000_000 * ONE_TOKEN,
        wallet_funding=WALLET_FUNDING,
        eco_reserve=ECO_RESERVE,
        config=LedgerConfig(),
        time_provider=clock,
    )


@pytest.fixture
def wallet(deployment):
    return deployment.wallet
