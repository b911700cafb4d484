from balance_watch.utils.formatting import display_symbol, format_balance


def test_one_bitcoin():
    assert format_balance(100_000_000, "Bitcoin") == "1.0000 BTC"


def test_btc_label_uses_satoshi_scale():
    assert format_balance(40_000_000, "BTC") == "0.4000 BTC"


def test_one_ether():
    assert format_balance(1_000_000_000_000_000_000, "Ethereum") == "1.0000 ETH"


def test_zero_balance_for_any_chain():
    assert format_balance(0, "Bitcoin") == "0.0000 BTC"
    assert format_balance(0, "Base") == "0.0000 ETH"
    assert format_balance(0, "MyChain") == "0.0000 ETH"


def test_non_bitcoin_chains_are_labelled_eth():
    assert display_symbol("Arbitrum") == "ETH"
    assert display_symbol("bitcoin") == "ETH"
    assert format_balance(2_500_000_000_000_000_000, "Arbitrum") == "2.5000 ETH"


def test_rounds_to_four_decimals():
    assert format_balance(123_456_789, "Bitcoin") == "1.2346 BTC"
    assert format_balance(1, "Bitcoin") == "0.0000 BTC"


def test_balances_beyond_64_bits():
    # 100 ETH in wei does not fit in a u64
    assert format_balance(100 * 10**18, "Sepolia") == "100.0000 ETH"
