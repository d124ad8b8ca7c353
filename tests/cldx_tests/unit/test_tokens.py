"""
Tests for the in-memory ERC20 token, the token adapter and the CLDX token.
"""

from __future__ import annotations

import pytest

from cldx.core.constants import DEAD_ADDRESS, ONE_TOKEN, UINT256_MAX, ZERO_ADDRESS
from cldx.core.contracts.cloudax import CloudaxToken
from cldx.core.contracts.erc20 import ERC20Factory, ERC20Token
from cldx.core.contracts.native import NativeCurrency
from cldx.core.contracts.token_interface import ERC20TokenAdapter, TokenService
from cldx.core.exceptions import (
    Blacklisted,
    InsufficientBalance,
    InsufficientContractBalance,
    InvalidAddress,
    TokenError,
    TradingDisabled,
    Unauthorized,
)

from conftest import ALICE, BOB, MALLORY, OWNER, PRESALE


@pytest.fixture
def token():
    factory = ERC20Factory()
    return factory.create_token(OWNER, "Test Token", "TST", initial_supply=1_000 * ONE_TOKEN)


class TestERC20Token:
    def test_create_token_mints_to_creator(self, token):
        assert token.total_supply == 1_000 * ONE_TOKEN
        assert token.balance_of(OWNER) == 1_000 * ONE_TOKEN
        assert token.address.startswith("0x") and len(token.address) == 42

    def test_transfer(self, token):
        token.transfer(OWNER, ALICE, 10 * ONE_TOKEN)
        assert token.balance_of(ALICE) == 10 * ONE_TOKEN
        assert token.balance_of(OWNER) == 990 * ONE_TOKEN
        assert token.events[-1].event_type == "Transfer"

    def test_transfer_exceeding_balance(self, token):
        with pytest.raises(TokenError, match="exceeds balance"):
            token.transfer(ALICE, BOB, 1)

    def test_transfer_to_zero_address(self, token):
        with pytest.raises(TokenError, match="zero address"):
            token.transfer(OWNER, ZERO_ADDRESS, 1)

    @pytest.mark.parametrize("amount", [-1, UINT256_MAX + 1, 1.5, True])
    def test_invalid_amounts(self, token, amount):
        with pytest.raises(TokenError):
            token.transfer(OWNER, ALICE, amount)

    def test_transfer_from_spends_allowance(self, token):
        token.approve(OWNER, ALICE, 5 * ONE_TOKEN)
        token.transfer_from(ALICE, OWNER, BOB, 2 * ONE_TOKEN)
        assert token.balance_of(BOB) == 2 * ONE_TOKEN
        assert token.allowance(OWNER, ALICE) == 3 * ONE_TOKEN

    def test_transfer_from_infinite_allowance(self, token):
        token.approve(OWNER, ALICE, UINT256_MAX)
        token.transfer_from(ALICE, OWNER, BOB, ONE_TOKEN)
        assert token.allowance(OWNER, ALICE) == UINT256_MAX

    def test_transfer_from_without_allowance(self, token):
        with pytest.raises(TokenError, match="insufficient allowance"):
            token.transfer_from(ALICE, OWNER, BOB, 1)

    def test_mint_is_owner_only(self, token):
        with pytest.raises(TokenError, match="not owner"):
            token.mint(MALLORY, MALLORY, ONE_TOKEN)

    def test_burn(self, token):
        token.burn(OWNER, 100 * ONE_TOKEN)
        assert token.total_supply == 900 * ONE_TOKEN
        with pytest.raises(TokenError, match="burn amount exceeds balance"):
            token.burn(ALICE, 1)

    def test_restore_truncates_events(self, token):
        state = token.snapshot()
        token.transfer(OWNER, ALICE, ONE_TOKEN)
        token.approve(ALICE, BOB, ONE_TOKEN)
        token.restore(state)
        assert token.balance_of(ALICE) == 0
        assert token.allowance(ALICE, BOB) == 0
        assert len(token.events) == state["event_count"]

    def test_serialization_roundtrip(self, token):
        token.approve(OWNER, ALICE, 7)
        restored = ERC20Token.from_dict(token.to_dict())
        assert restored.address == token.address
        assert restored.balance_of(OWNER) == token.balance_of(OWNER)
        assert restored.allowance(OWNER, ALICE) == 7

    def test_factory_lookup(self, token):
        factory = ERC20Factory()
        factory.register(token)
        assert factory.get_token(token.address.upper().replace("0X", "0x")) is token
        with pytest.raises(TokenError, match="unknown token"):
            factory.get_token(MALLORY)


class TestTokenAdapter:
    def test_adapter_is_token_service(self, token):
        assert isinstance(ERC20TokenAdapter(token, OWNER), TokenService)

    def test_transfer_uses_holder(self, token):
        adapter = ERC20TokenAdapter(token, OWNER)
        assert adapter.transfer(ALICE, ONE_TOKEN) is True
        assert token.balance_of(ALICE) == ONE_TOKEN

    def test_rejection_becomes_false(self, token):
        adapter = ERC20TokenAdapter(token, ALICE)
        assert adapter.transfer(BOB, ONE_TOKEN) is False
        assert adapter.transfer_from(OWNER, BOB, ONE_TOKEN) is False


class TestCloudaxToken:
    def test_metadata(self, cldx_token):
        assert cldx_token.name == "Cloudax"
        assert cldx_token.symbol == "CLDX"
        assert cldx_token.decimals == 18
        assert cldx_token.balance_of(OWNER) == 1_000_000 * ONE_TOKEN

    def test_requires_owner(self):
        with pytest.raises(InvalidAddress):
            CloudaxToken(owner=ZERO_ADDRESS)

    def test_trading_disabled_blocks_holders(self, cldx_token):
        cldx_token.transfer(OWNER, ALICE, 100 * ONE_TOKEN)
        with pytest.raises(TradingDisabled, match="not enabled"):
            cldx_token.transfer(ALICE, BOB, ONE_TOKEN)

    def test_enable_trading(self, cldx_token):
        cldx_token.transfer(OWNER, ALICE, 100 * ONE_TOKEN)
        cldx_token.set_trading_enabled(OWNER, True)
        cldx_token.transfer(ALICE, BOB, ONE_TOKEN)
        assert cldx_token.balance_of(BOB) == ONE_TOKEN
        assert cldx_token.is_trading_enabled()

    def test_trading_can_be_disabled_again(self, cldx_token):
        cldx_token.transfer(OWNER, ALICE, 100 * ONE_TOKEN)
        cldx_token.set_trading_enabled(OWNER, True)
        cldx_token.set_trading_enabled(OWNER, False)
        with pytest.raises(TradingDisabled):
            cldx_token.transfer(ALICE, BOB, ONE_TOKEN)

    def test_set_trading_enabled_is_owner_only(self, cldx_token):
        with pytest.raises(Unauthorized):
            cldx_token.set_trading_enabled(MALLORY, True)

    def test_presale_address_is_exempt(self, cldx_token):
        cldx_token.setup_presale_address(OWNER, PRESALE)
        cldx_token.transfer(OWNER, PRESALE, 100 * ONE_TOKEN)
        cldx_token.transfer(PRESALE, ALICE, ONE_TOKEN)
        assert cldx_token.balance_of(ALICE) == ONE_TOKEN

    def test_setup_presale_address_is_owner_only(self, cldx_token):
        with pytest.raises(Unauthorized):
            cldx_token.setup_presale_address(MALLORY, MALLORY)

    def test_blacklisted_recipient(self, cldx_token):
        cldx_token.set_blacklisted(OWNER, ALICE, True)
        assert cldx_token.is_blacklisted(ALICE)
        with pytest.raises(Blacklisted, match="blacklisted"):
            cldx_token.transfer(OWNER, ALICE, ONE_TOKEN)

    def test_blacklisted_sender(self, cldx_token):
        cldx_token.set_trading_enabled(OWNER, True)
        cldx_token.transfer(OWNER, ALICE, ONE_TOKEN)
        cldx_token.set_blacklisted(OWNER, ALICE, True)
        with pytest.raises(Blacklisted, match="blacklisted"):
            cldx_token.transfer(ALICE, BOB, ONE_TOKEN)

    def test_blacklist_is_owner_only(self, cldx_token):
        with pytest.raises(Unauthorized):
            cldx_token.set_blacklisted(MALLORY, ALICE, True)

    def test_transfer_from_respects_gate(self, cldx_token):
        cldx_token.transfer(OWNER, ALICE, 10 * ONE_TOKEN)
        cldx_token.approve(ALICE, BOB, 10 * ONE_TOKEN)
        with pytest.raises(TradingDisabled):
            cldx_token.transfer_from(BOB, ALICE, BOB, ONE_TOKEN)
        assert cldx_token.allowance(ALICE, BOB) == 10 * ONE_TOKEN

    def test_withdraw_tokens_moves_exact_amount(self, cldx_token):
        cldx_token.transfer(OWNER, cldx_token.address, 1_000 * ONE_TOKEN)
        cldx_token.withdraw_tokens(OWNER, cldx_token.address, BOB, 1_000 * ONE_TOKEN)
        assert cldx_token.balance_of(BOB) == 1_000 * ONE_TOKEN
        assert cldx_token.balance_of(cldx_token.address) == 0

    def test_withdraw_foreign_token(self, cldx_token, registry):
        other = registry.create_token(OWNER, "Other", "OTH", initial_supply=50)
        other.transfer(OWNER, cldx_token.address, 50)
        cldx_token.withdraw_tokens(OWNER, other.address, ALICE, 20)
        assert other.balance_of(ALICE) == 20
        assert other.balance_of(cldx_token.address) == 30

    def test_withdraw_tokens_insufficient(self, cldx_token):
        with pytest.raises(InsufficientContractBalance):
            cldx_token.withdraw_tokens(OWNER, cldx_token.address, BOB, 1)

    def test_withdraw_tokens_is_owner_only(self, cldx_token):
        cldx_token.transfer(OWNER, cldx_token.address, ONE_TOKEN)
        with pytest.raises(Unauthorized):
            cldx_token.withdraw_tokens(MALLORY, cldx_token.address, MALLORY, ONE_TOKEN)
        assert cldx_token.balance_of(cldx_token.address) == ONE_TOKEN

    def test_withdraw_unknown_token(self, cldx_token):
        with pytest.raises(TokenError):
            cldx_token.withdraw_tokens(OWNER, MALLORY, BOB, 1)

    def test_withdraw_ether(self, cldx_token, native):
        native.credit(ALICE, 5 * ONE_TOKEN)
        cldx_token.receive(ALICE, 5 * ONE_TOKEN)
        assert cldx_token.native_balance() == 5 * ONE_TOKEN

        cldx_token.withdraw_ether(OWNER, BOB, 2 * ONE_TOKEN)
        assert native.balance_of(BOB) == 2 * ONE_TOKEN
        assert cldx_token.native_balance() == 3 * ONE_TOKEN

        with pytest.raises(InsufficientContractBalance):
            cldx_token.withdraw_ether(OWNER, BOB, 4 * ONE_TOKEN)
        with pytest.raises(Unauthorized):
            cldx_token.withdraw_ether(MALLORY, MALLORY, ONE_TOKEN)

    def test_receive_requires_native_balance(self, cldx_token):
        with pytest.raises(InsufficientBalance):
            cldx_token.receive(ALICE, 1)

    def test_ownership_transfer_moves_exemption(self, cldx_token):
        cldx_token.transfer_ownership(OWNER, ALICE)
        with pytest.raises(TradingDisabled):
            cldx_token.transfer(OWNER, BOB, ONE_TOKEN)
        with pytest.raises(Unauthorized):
            cldx_token.set_trading_enabled(OWNER, True)

    def test_serialization_roundtrip(self, cldx_token):
        cldx_token.set_blacklisted(OWNER, MALLORY, True)
        cldx_token.setup_presale_address(OWNER, PRESALE)
        restored = CloudaxToken.from_dict(cldx_token.to_dict(), native=NativeCurrency())
        assert restored.is_blacklisted(MALLORY)
        assert restored.presale_address == PRESALE
        assert restored.balance_of(OWNER) == cldx_token.balance_of(OWNER)
        assert not restored.is_trading_enabled()

    def test_burn_sink_can_receive(self, cldx_token):
        cldx_token.transfer(OWNER, DEAD_ADDRESS, ONE_TOKEN)
        assert cldx_token.balance_of(DEAD_ADDRESS) == ONE_TOKEN
