import pytest

from solana_insights.models import MalformedPayloadError
from solana_insights.schemas import (
    DexScreenerTokenPairs, JupiterHistoricalPrice, JupiterPrices, LargestAccount,
    PerformanceSample, SupplySnapshot, TokenAccountOwner, TransactionDetails,
    parse_market_volume, parse_mint_account, parse_signature, parse_token_account,
    parse_token_list, parse_token_metadata,
)


def token_account_entry(mint="MintA", amount="2500000", decimals=6, ui_amount=2.5):
    token_amount = {"amount": amount, "decimals": decimals}
    if ui_amount is not None:
        token_amount["uiAmount"] = ui_amount
    return {
        "pubkey": "AccountA",
        "account": {"data": {"parsed": {"info": {
            "mint": mint, "owner": "OwnerA", "tokenAmount": token_amount,
        }, "type": "account"}}},
    }


def test_dexscreener_price_uses_highest_volume_pair():
    payload = {"pairs": [
        {"priceUsd": "1.10", "volume": {"h24": 100}},
        {"priceUsd": "1.25", "volume": {"h24": 9000}},
        {"priceUsd": "0.90", "volume": {"h24": 50}},
    ]}

    assert DexScreenerTokenPairs.from_payload(payload).spot_price() == 1.25


def test_dexscreener_without_pairs_prices_at_zero():
    assert DexScreenerTokenPairs.from_payload({"pairs": None}).spot_price() == 0.0


def test_dexscreener_bad_price_is_malformed():
    with pytest.raises(MalformedPayloadError):
        DexScreenerTokenPairs.from_payload({"pairs": [{"priceUsd": "n/a"}]})


def test_jupiter_prices():
    prices = JupiterPrices.from_payload({"data": {"MintA": {"price": "0.5"}, "MintB": {}}})

    assert prices.price_for("MintA") == 0.5
    assert prices.price_for("MintB") == 0.0
    assert prices.price_for("MintC") == 0.0


def test_jupiter_prices_without_data_is_malformed():
    with pytest.raises(MalformedPayloadError):
        JupiterPrices.from_payload({"error": "rate limited"})


def test_jupiter_historical_price():
    assert JupiterHistoricalPrice.from_payload({"data": {"price": 0.02}}).price == 0.02
    assert JupiterHistoricalPrice.from_payload({"data": {}}).price == 0.0


def test_token_list_skips_incomplete_entries():
    entries = parse_token_list([
        {"address": "MintA", "symbol": "BONK", "name": "Bonk", "decimals": 5},
        {"symbol": "NOADDR"},
        "garbage",
        {"address": "MintB", "symbol": "WIF"},
    ])

    assert [(e.address, e.symbol, e.decimals) for e in entries] == [("MintA", "BONK", 5), ("MintB", "WIF", 0)]


def test_token_metadata_falls_back_to_unknown_labels():
    metadata = parse_token_metadata({"symbol": "", "name": None})

    assert metadata.symbol == "Unknown"
    assert metadata.name == "Unknown Token"
    assert parse_token_metadata({"symbol": "BONK", "name": "Bonk"}).name == "Bonk"


def test_market_volume():
    assert parse_market_volume({"data": {"volume24h": "1234.5"}}) == 1234.5
    assert parse_market_volume({"volume24h": 10}) == 10.0
    assert parse_market_volume({}) == 0.0


def test_token_account():
    account = parse_token_account(token_account_entry())

    assert account.address == "AccountA"
    assert account.mint == "MintA"
    assert account.owner == "OwnerA"
    assert account.amount == "2500000"
    assert account.ui_amount == 2.5
    assert not account.is_nft


def test_token_account_nft_and_missing_ui_amount():
    account = parse_token_account(token_account_entry(amount="1", decimals=0, ui_amount=None))

    assert account.ui_amount == 1
    assert account.is_nft


def test_token_account_missing_mint_is_malformed():
    entry = token_account_entry()
    del entry["account"]["data"]["parsed"]["info"]["mint"]

    with pytest.raises(MalformedPayloadError):
        parse_token_account(entry)


def test_mint_account():
    value = {"data": {"parsed": {"type": "mint", "info": {
        "decimals": 9, "supply": "1000000000000", "mintAuthority": None, "freezeAuthority": "Freezer",
    }}}}

    info = parse_mint_account("MintA", value)

    assert info.decimals == 9
    assert info.supply == "1000000000000"
    assert info.freeze_authority == "Freezer"


def test_non_mint_account_is_malformed():
    with pytest.raises(MalformedPayloadError):
        parse_mint_account("MintA", {"data": {"parsed": {"type": "account", "info": {}}}})
    with pytest.raises(MalformedPayloadError):
        parse_mint_account("MintA", None)


def test_token_account_owner():
    value = {"data": {"parsed": {"info": {"owner": "OwnerA", "tokenAmount": {"decimals": 6}}}}}

    owner = TokenAccountOwner.from_account_value(value)

    assert owner.owner == "OwnerA"
    assert owner.decimals == 6


def test_signature_status():
    ok = parse_signature({"signature": "sig1", "slot": 5, "blockTime": 1700000000, "err": None})
    failed = parse_signature({"signature": "sig2", "slot": 6, "err": {"InstructionError": [0, "Custom"]}})

    assert ok.status == "success"
    assert ok.block_time == 1700000000
    assert failed.status == "failed"
    assert failed.block_time is None


def test_transaction_details_resolve_program_ids():
    payload = {
        "meta": {"fee": 5000, "preBalances": [10, 20], "postBalances": [5, 20]},
        "transaction": {"message": {
            "accountKeys": ["Payer", "Program"],
            "instructions": [{"programIdIndex": 1, "data": "3Bxs"}],
        }},
    }

    details = TransactionDetails.from_payload(payload)

    assert details.fee == 5000
    assert details.pre_balances == [10, 20]
    assert details.instructions == [{"program_id": "Program", "data": "3Bxs"}]


def test_cluster_payloads():
    sample = PerformanceSample.from_payload({"numTransactions": 6000, "numSlots": 150, "samplePeriodSecs": 60})
    supply = SupplySnapshot.from_payload({"value": {"total": 500, "circulating": 400}})
    largest = LargestAccount.from_payload({"address": "Whale", "lamports": 10})

    assert (sample.num_transactions, sample.sample_period_secs) == (6000, 60)
    assert (supply.total, supply.circulating) == (500, 400)
    assert largest.lamports == 10
